"""
Saber - Prompt Templates & User-Facing Strings
================================================
Centralised prompt management for the query router and the fixed
replies sent back through the messaging channel.  All prompts live here
so they can be reviewed and tuned independently of application logic.

Each routing outcome has a template plus its generation options:

``GREETING_PROMPT``
    Casual, short, friendly reply.  Higher temperature, tiny budget.
``DIRECT_PROMPT``
    No sufficient context — answer the question directly.
``GROUNDED_PROMPT``
    Answer using the retrieved context block.

Exports
-------
GREETING_PROMPT, DIRECT_PROMPT, GROUNDED_PROMPT, CONTEXT_LINE,
GREETING_OPTIONS, ANSWER_OPTIONS,
CAPTION_EMPTY_FALLBACK, CAPTION_FAILED_FALLBACK,
LLM_UNAVAILABLE, LLM_EMPTY_RESPONSE,
IMAGE_RECEIVED_REPLY, IMAGE_PROCESSING_FAILED, IMAGE_NOT_FOUND,
IMAGE_SEND_FAILED, QUERY_FAILED, IMAGE_QUERY_PATTERN, IMAGE_QUERY_PHRASES.
"""

import re

# ══════════════════════════════════════════════════════════════════════
#  ROUTER PROMPTS
# ══════════════════════════════════════════════════════════════════════

GREETING_PROMPT: str = """Responda de forma curta, simpática e em português, como se fosse uma conversa natural.

Mensagem: {query}
Resposta:"""

DIRECT_PROMPT: str = """Responda em português de forma clara e objetiva à pergunta abaixo.

Pergunta:
{query}

Resposta:"""

GROUNDED_PROMPT: str = """Você é um assistente técnico. Use o contexto abaixo para responder em português, de forma clara e objetiva.

Contexto:
{context}

Pergunta:
{query}

Resposta:"""

# One retrieved chunk inside the grounded context block.
CONTEXT_LINE: str = "- {text}"


# ══════════════════════════════════════════════════════════════════════
#  GENERATION OPTIONS
# ══════════════════════════════════════════════════════════════════════

GREETING_OPTIONS: dict[str, float | int] = {"temperature": 0.7, "max_tokens": 50}
ANSWER_OPTIONS: dict[str, float | int] = {"temperature": 0.0, "max_tokens": 220}


# ══════════════════════════════════════════════════════════════════════
#  COLLABORATOR FALLBACKS
# ══════════════════════════════════════════════════════════════════════

CAPTION_EMPTY_FALLBACK: str = "Imagem recebida (sem descrição)."
CAPTION_FAILED_FALLBACK: str = "Imagem recebida (não consegui descrever)."

LLM_UNAVAILABLE: str = "⚠️ LLaMA não disponível."
LLM_EMPTY_RESPONSE: str = "⚠️ Não consegui gerar resposta."


# ══════════════════════════════════════════════════════════════════════
#  CHANNEL REPLIES
# ══════════════════════════════════════════════════════════════════════

IMAGE_RECEIVED_REPLY: str = 'Imagem recebida e descrita como: "{caption}"'
IMAGE_PROCESSING_FAILED: str = "Não consegui processar a imagem."
IMAGE_NOT_FOUND: str = "Não encontrei nenhuma imagem correspondente."
IMAGE_SEND_FAILED: str = "Encontrei a imagem, mas não consegui enviá-la."
QUERY_FAILED: str = "Erro ao processar sua solicitação."


# ══════════════════════════════════════════════════════════════════════
#  PHOTO REQUEST DETECTION
# ══════════════════════════════════════════════════════════════════════
# "me manda uma foto de X" / "foto de X" → text-to-image lookup for X.
# Phrases are stripped in order, longest first.

IMAGE_QUERY_PATTERN: re.Pattern[str] = re.compile(r"me manda uma foto de|foto de", re.IGNORECASE)
IMAGE_QUERY_PHRASES: tuple[re.Pattern[str], ...] = (re.compile(r"me manda uma foto de", re.IGNORECASE), re.compile(r"foto de", re.IGNORECASE))

# Messages this short are never treated as photo requests.
IMAGE_QUERY_MIN_LENGTH: int = 5
