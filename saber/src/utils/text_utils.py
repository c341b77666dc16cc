"""
Saber - Text Utilities
=======================
Helper functions for splitting knowledge files into retrievable chunks
and for recognising photo requests in chat messages.

These utilities are consumed by the ``IndexingPipeline`` and the
``RAGManager`` and should remain stateless and side-effect-free.
"""

from __future__ import annotations

import re
from pathlib import Path

from saber.config.prompt_templates import IMAGE_QUERY_MIN_LENGTH, IMAGE_QUERY_PATTERN, IMAGE_QUERY_PHRASES

# ── Chunk boundary ─────────────────────────────────────────────────────
# Two or more consecutive newlines separate chunks.  Knowledge files are
# written as blank-line-delimited Q&A pairs or bullets, so this boundary
# must stay stable for existing files to index the same way.
_CHUNK_BOUNDARY_RE = re.compile(r"\n{2,}")

# File extensions the text branch indexes (compared lower-cased)
KNOWLEDGE_EXTENSIONS: frozenset[str] = frozenset({".txt", ".md"})


# ── Public API ─────────────────────────────────────────────────────────

def split_into_chunks(text: str) -> list[str]:
    """
    Split raw document text on blank-line boundaries.

    Each piece is stripped of surrounding whitespace and empty pieces
    are dropped.  There is no size cap.

    Examples::

        "A\\n\\nB\\n\\n\\nC"  → ["A", "B", "C"]
        "  \\n\\n  "         → []
    """
    return [piece.strip() for piece in _CHUNK_BOUNDARY_RE.split(text) if piece.strip()]


def is_knowledge_file(path: Path) -> bool:
    """Return True for regular ``.txt`` / ``.md`` files (case-insensitive)."""
    return path.is_file() and path.suffix.lower() in KNOWLEDGE_EXTENSIONS


def is_image_request(text: str) -> bool:
    """True when *text* asks for a stored photo ("me manda uma foto de …")."""
    return bool(IMAGE_QUERY_PATTERN.search(text)) and len(text.strip()) > IMAGE_QUERY_MIN_LENGTH


def extract_image_query(text: str) -> str:
    """
    Strip the photo-request phrase and return the description to search for.

    ``"Me manda uma foto de um gato"`` → ``"um gato"``
    """
    for phrase in IMAGE_QUERY_PHRASES:
        text = phrase.sub("", text, count=1)
    return text.strip()
