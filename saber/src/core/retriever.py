"""
Saber - Retrievers
===================
Brute-force cosine-similarity search over the two indexes.

``TextRetriever``
    Ranks every chunk against a query embedding and returns the top
    ``k`` (stable sort, so ties keep index order).  No threshold here —
    the router decides what a weak match means.

``ImageRetriever``
    Returns the single best image record.  Records without an
    embedding are skipped and, unlike text retrieval, no similarity
    threshold is applied: the best available image is always returned.
"""

from __future__ import annotations

from collections.abc import Sequence

from saber.config.settings import settings
from saber.src.database.schemas import Chunk, ImageMatch, ImageRecord, RetrievalResult
from saber.src.utils.logger import get_logger
from saber.src.utils.vector_math import cosine_similarity

logger = get_logger(__name__)


class TextRetriever:
    """
    Top-K chunk retrieval.

    Parameters
    ----------
    top_k
        Default number of results.  Defaults to ``settings.TOP_K``.
    """

    __slots__ = ("_top_k",)

    def __init__(self, top_k: int | None = None) -> None:
        self._top_k: int = top_k or settings.TOP_K


    @property
    def top_k(self) -> int:
        return self._top_k


    def retrieve(self, query_embedding: Sequence[float], chunks: Sequence[Chunk], k: int | None = None) -> list[RetrievalResult]:
        """
        Score *chunks* against *query_embedding* and return the best *k*.

        Results are sorted by descending score; an index smaller than
        *k* yields all of its chunks.  The chunks are not modified.
        """
        limit = k if k is not None else self._top_k
        scored = [RetrievalResult(chunk=chunk, score=cosine_similarity(query_embedding, chunk.embedding)) for chunk in chunks]
        scored.sort(key=lambda r: r.score, reverse=True)
        top = scored[:limit]

        if top:
            logger.debug("[RETRIEVE] %d chunk(s) scored, top=%.3f (%s), returning %d.", len(scored), top[0].score, top[0].chunk.id, len(top))
        return top


class ImageRetriever:
    """Best-match image lookup (no threshold)."""

    __slots__ = ()

    @staticmethod
    def retrieve_best(query_embedding: Sequence[float], records: Sequence[ImageRecord]) -> ImageMatch | None:
        """
        Return the highest-scoring record, or ``None`` if none has an embedding.

        The comparison is strict, so on an exact tie the earlier record wins.
        """
        best: ImageRecord | None = None
        best_score = 0.0

        for record in records:
            if not record.embedding:
                continue
            score = cosine_similarity(query_embedding, record.embedding)
            if best is None or score > best_score:
                best, best_score = record, score

        if best is None:
            logger.debug("[RETRIEVE] No image with an embedding among %d record(s).", len(records))
            return None

        logger.debug("[RETRIEVE] Best image %s (score=%.3f).", best.file_path, best_score)
        return ImageMatch(record=best, score=best_score)
