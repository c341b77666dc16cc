"""
Saber - RAG Engine
===================
Transport-facing facade over the indexing and retrieval components.

The messaging channel hands every inbound event to
``RAGManager.handle_message`` and sends back whatever it returns.
The finer-grained handlers are public too:

``handle_text_query(text)``
    route → generate → reply text (``None`` for empty input, a fallback
    reply when the query cannot be embedded).
``handle_image_received(data)``
    image branch of the indexing pipeline → ``ImageReceipt``.
``handle_image_query(text)``
    embed the description → best stored image (``ImageMatch`` or ``None``).

Dispatch order in ``handle_message`` (one message at a time):
    1. Image payload        → store + describe, reply with the caption.
    2. Photo request text   → "me manda uma foto de X" → best image for X.
    3. Any other text       → RAG answer.
    4. Nothing usable       → no reply.

Usage:
    from saber.src.core.rag_engine import RAGManager
    rag = RAGManager.from_collaborators(collaborators)
    rag.start()
    reply = await rag.handle_message(InboundMessage(text="Explique o protocolo X"))
"""

from __future__ import annotations

import time
from pathlib import Path

from saber.config.prompt_templates import IMAGE_NOT_FOUND, IMAGE_PROCESSING_FAILED, IMAGE_RECEIVED_REPLY, IMAGE_SEND_FAILED, QUERY_FAILED
from saber.src.core.collaborators import Collaborators, Generator, ImageEmbedder
from saber.src.core.ingestor import IndexingPipeline
from saber.src.core.retriever import ImageRetriever, TextRetriever
from saber.src.core.router import QueryRouter
from saber.src.database.image_index_store import ImageIndexStore
from saber.src.database.schemas import ImageMatch, ImageReceipt, InboundMessage, OutboundReply
from saber.src.database.text_index_store import TextIndexStore
from saber.src.utils.logger import get_logger
from saber.src.utils.text_utils import extract_image_query, is_image_request

logger = get_logger(__name__)


class RAGManager:
    """
    Orchestrates routing, generation and image lookup for one process.

    Parameters
    ----------
    router
        Builds prompts for text queries.
    generator
        Answers prompts.
    pipeline
        Indexing pipeline (text rebuild + image ingestion).
    image_store
        Image index searched by photo requests.
    image_embedder
        Embeds photo descriptions into the image embedding space.
    image_retriever
        Optional custom ``ImageRetriever``.
    """

    __slots__ = ("_router", "_generator", "_pipeline", "_image_store", "_image_embedder", "_image_retriever")

    def __init__(self, router: QueryRouter, generator: Generator, pipeline: IndexingPipeline, image_store: ImageIndexStore, image_embedder: ImageEmbedder, image_retriever: ImageRetriever | None = None) -> None:
        self._router = router
        self._generator = generator
        self._pipeline = pipeline
        self._image_store = image_store
        self._image_embedder = image_embedder
        self._image_retriever = image_retriever or ImageRetriever()


    @classmethod
    def from_collaborators(cls, collaborators: Collaborators, text_store: TextIndexStore | None = None, image_store: ImageIndexStore | None = None, top_k: int | None = None) -> "RAGManager":
        """Wire stores, retrievers, router and pipeline around *collaborators*."""
        text_store = text_store or TextIndexStore()
        image_store = image_store or ImageIndexStore()
        router = QueryRouter(text_store, collaborators.text_embedder, retriever=TextRetriever(top_k))
        pipeline = IndexingPipeline(text_store, image_store, collaborators.text_embedder, collaborators.image_embedder, collaborators.captioner)
        return cls(router, collaborators.generator, pipeline, image_store, collaborators.image_embedder)


    @property
    def pipeline(self) -> IndexingPipeline:
        return self._pipeline


    def start(self) -> int:
        """Make sure a text index exists.  Returns its chunk count."""
        return len(self._pipeline.ensure_text_index())

    # ══════════════════════════════════════════════════════════════════
    #  HANDLERS
    # ══════════════════════════════════════════════════════════════════

    async def handle_text_query(self, text: str) -> str | None:
        """Answer *text*; ``None`` when it is blank, ``QUERY_FAILED`` if routing fails."""
        if not text or not text.strip():
            return None

        t_start = time.perf_counter()
        try:
            routed = await self._router.route(text)
        except Exception:
            logger.exception("[RAG] Routing failed for '%s'.", text[:50])
            return QUERY_FAILED
        answer = await self._generator.generate(routed.prompt, temperature=routed.temperature, max_tokens=routed.max_tokens)
        logger.info("[RAG] %s answer in %.1fms (%d chars).", routed.decision.value, (time.perf_counter() - t_start) * 1000, len(answer))
        return answer


    async def handle_image_received(self, data: bytes) -> ImageReceipt:
        """Store and index a received image."""
        record = self._pipeline.ingest_image(data)
        return ImageReceipt(caption=record.caption, stored_path=record.file_path)


    async def handle_image_query(self, text: str) -> ImageMatch | None:
        """Find the stored image that best matches the description *text*."""
        if not text or not text.strip():
            return None
        try:
            query_embedding = self._image_embedder.embed_query(text)
        except Exception:
            logger.exception("[RAG] Failed to embed image query.")
            return None
        match = self._image_retriever.retrieve_best(query_embedding, self._image_store.load())
        if match is None:
            logger.info("[RAG] No image available for '%s'.", text[:50])
        else:
            logger.info("[RAG] Image for '%s': %s (score=%.3f).", text[:50], match.record.file_path, match.score)
        return match


    async def handle_message(self, message: InboundMessage) -> OutboundReply | None:
        """Dispatch one inbound message and return the reply to send, if any."""
        if message.image is not None:
            try:
                receipt = await self.handle_image_received(message.image)
            except Exception:
                logger.exception("[RAG] Failed to process image from %s.", message.sender or "unknown")
                return OutboundReply(text=IMAGE_PROCESSING_FAILED)
            return OutboundReply(text=IMAGE_RECEIVED_REPLY.format(caption=receipt.caption))

        text = message.text
        if is_image_request(text):
            match = await self.handle_image_query(extract_image_query(text))
            if match is None:
                return OutboundReply(text=IMAGE_NOT_FOUND)
            image_path = Path(match.record.file_path)
            if not image_path.is_file():
                logger.error("[RAG] Indexed image is missing on disk: %s", image_path)
                return OutboundReply(text=IMAGE_SEND_FAILED)
            return OutboundReply(text=match.record.caption, image_path=image_path)

        if not text.strip():
            return None

        logger.info("[RAG] Message from %s: %s", message.sender or "unknown", text[:80])
        try:
            answer = await self.handle_text_query(text)
        except Exception:
            logger.exception("[RAG] Text query failed.")
            return OutboundReply(text=QUERY_FAILED)
        return OutboundReply(text=answer) if answer else None
