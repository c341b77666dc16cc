"""
Saber - QueryRouter
====================
Classifies an incoming text query and assembles the prompt the
generator should answer.  Evaluated in order:

    1. **Greeting** — the lower-cased, trimmed query starts with a
       configured greeting phrase → casual prompt, no retrieval.
    2. **Ungrounded** — embed, retrieve ``TOP_K``; no results or a top
       score below ``SIM_THRESHOLD`` → direct-answer prompt, the weak
       context is discarded.
    3. **Grounded** — retrieved chunks become a bulleted context block
       (descending score) inside the context prompt.

The router never calls the generator; its only side effect is the
query embedding + retrieval.

Usage:
    router = QueryRouter(text_store, embedder)
    routed = await router.route("Explique o protocolo X")
    answer = await generator.generate(routed.prompt, temperature=routed.temperature, max_tokens=routed.max_tokens)
"""

from __future__ import annotations

from collections.abc import Sequence

from saber.config.prompt_templates import ANSWER_OPTIONS, CONTEXT_LINE, DIRECT_PROMPT, GREETING_OPTIONS, GREETING_PROMPT, GROUNDED_PROMPT
from saber.config.settings import settings
from saber.src.core.collaborators import TextEmbedder
from saber.src.core.retriever import TextRetriever
from saber.src.database.schemas import RetrievalResult, RoutedPrompt, RoutingDecision
from saber.src.database.text_index_store import TextIndexStore
from saber.src.utils.logger import get_logger

logger = get_logger(__name__)


class QueryRouter:
    """
    Greeting / grounded / ungrounded prompt construction.

    Parameters
    ----------
    text_store
        Resident text index to retrieve from.
    embedder
        Query embedder (same model the index was built with).
    retriever
        Optional custom ``TextRetriever``.
    threshold
        Minimum top score for a grounded answer.  Defaults to ``settings.SIM_THRESHOLD``.
    greetings
        Greeting prefixes.  Defaults to ``settings.GREETINGS``.
    """

    __slots__ = ("_store", "_embedder", "_retriever", "_threshold", "_greetings")

    def __init__(self, text_store: TextIndexStore, embedder: TextEmbedder, retriever: TextRetriever | None = None, threshold: float | None = None, greetings: Sequence[str] | None = None) -> None:
        self._store = text_store
        self._embedder = embedder
        self._retriever = retriever or TextRetriever()
        self._threshold: float = settings.SIM_THRESHOLD if threshold is None else threshold
        self._greetings: tuple[str, ...] = tuple(g.lower() for g in (greetings or settings.GREETINGS))


    def is_greeting(self, query: str) -> bool:
        """True when the normalised query starts with a greeting phrase."""
        lower = query.lower().strip()
        return any(lower.startswith(g) for g in self._greetings)


    async def route(self, query: str) -> RoutedPrompt:
        """Classify *query* and build its prompt."""
        if self.is_greeting(query):
            logger.info("[ROUTER] greeting: '%s'", query[:50])
            return RoutedPrompt(decision=RoutingDecision.GREETING, prompt=GREETING_PROMPT.format(query=query), **GREETING_OPTIONS)

        query_embedding = self._embedder.embed_query(query)
        dimensions = self._store.index.dimensions
        if dimensions and len(query_embedding) not in dimensions:
            logger.warning("[ROUTER] query embedding has %d dims, index has %s — rebuild the index for the current embedding model.", len(query_embedding), sorted(dimensions))
        results = self._retriever.retrieve(query_embedding, self._store.docs)
        top_score = results[0].score if results else None

        if top_score is None or top_score < self._threshold:
            logger.info("[ROUTER] ungrounded: top=%s < %.2f for '%s'", "n/a" if top_score is None else f"{top_score:.3f}", self._threshold, query[:50])
            return RoutedPrompt(decision=RoutingDecision.UNGROUNDED, prompt=DIRECT_PROMPT.format(query=query), top_score=top_score, **ANSWER_OPTIONS)

        logger.info("[ROUTER] grounded: %d chunk(s), top=%.3f (%s)", len(results), top_score, results[0].chunk.id)
        prompt = GROUNDED_PROMPT.format(context=self.format_context(results), query=query)
        return RoutedPrompt(decision=RoutingDecision.GROUNDED, prompt=prompt, results=results, top_score=top_score, **ANSWER_OPTIONS)


    @staticmethod
    def format_context(results: Sequence[RetrievalResult]) -> str:
        """One ``- <text>`` line per result, in the given order."""
        return "\n".join(CONTEXT_LINE.format(text=r.chunk.text) for r in results)
