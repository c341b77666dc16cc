"""
Saber - IndexingPipeline
=========================
Turns knowledge files and received images into index records.

Text branch — ``build_text_index``
    scan ``KNOWLEDGE_DIR`` for ``.txt`` / ``.md`` → chunk on blank lines
    → embed → store.  Always a full rebuild: the previous index is
    replaced wholesale.  ``ensure_text_index`` runs it lazily when no
    usable index exists on disk.

Image branch — ``ingest_image``
    store bytes → caption (fallback string on failure) → embed →
    append to the image index.  Never deduplicates.

Key design decisions:
    • **Dependency Injection** – stores and model collaborators are
      passed in; the pipeline owns no model handles.
    • **Deterministic ids** – ``"<file>#<index>"`` from the sorted file
      list, so rebuilding an unchanged folder yields identical ids.
    • **Degrade, don't fail** – a file that cannot be read or embedded
      is logged and skipped; a failed caption or image embedding still
      produces a record.

Usage:
    from saber.src.core.ingestor import IndexingPipeline
    pipeline = IndexingPipeline(text_store, image_store, embedder, image_embedder, captioner)
    index = pipeline.ensure_text_index()
"""

from __future__ import annotations

import time
from pathlib import Path

from saber.config.prompt_templates import CAPTION_EMPTY_FALLBACK, CAPTION_FAILED_FALLBACK
from saber.config.settings import settings
from saber.src.core.collaborators import Captioner, ImageEmbedder, TextEmbedder
from saber.src.database.image_index_store import ImageIndexStore
from saber.src.database.schemas import Chunk, ImageRecord, TextIndex
from saber.src.database.text_index_store import TextIndexStore
from saber.src.utils.logger import get_logger
from saber.src.utils.text_utils import is_knowledge_file, split_into_chunks

logger = get_logger(__name__)


class IndexingPipeline:
    """
    Corpus and image ingestion.

    Parameters
    ----------
    text_store
        Destination for the rebuilt text index.
    image_store
        Destination for image assets and records.
    text_embedder
        Embeds knowledge chunks.
    image_embedder
        Embeds received images.
    captioner
        Describes received images.
    source_dir
        Override the knowledge directory.  Defaults to ``settings.KNOWLEDGE_DIR``.
    """

    __slots__ = ("_text_store", "_image_store", "_text_embedder", "_image_embedder", "_captioner", "_source_dir")

    def __init__(self, text_store: TextIndexStore, image_store: ImageIndexStore, text_embedder: TextEmbedder, image_embedder: ImageEmbedder, captioner: Captioner, source_dir: Path | None = None) -> None:
        self._text_store = text_store
        self._image_store = image_store
        self._text_embedder = text_embedder
        self._image_embedder = image_embedder
        self._captioner = captioner
        self._source_dir: Path = Path(source_dir or settings.KNOWLEDGE_DIR)

    # ══════════════════════════════════════════════════════════════════
    #  TEXT BRANCH
    # ══════════════════════════════════════════════════════════════════

    def ensure_text_index(self) -> TextIndex:
        """Return the persisted index, rebuilding it first if it is missing or empty."""
        if self._text_store.is_empty:
            logger.info("Text index is empty — building from %s.", self._source_dir)
            return self.build_text_index()
        return self._text_store.index


    def build_text_index(self, source_dir: Path | None = None) -> TextIndex:
        """
        Rebuild the text index from every knowledge file in *source_dir*.

        Returns
        -------
        TextIndex
            The new index, already persisted and resident in the store.
        """
        t_start = time.perf_counter()
        source = Path(source_dir or self._source_dir)
        source.mkdir(parents=True, exist_ok=True)

        files = sorted((f for f in source.iterdir() if is_knowledge_file(f)), key=lambda f: f.name)
        if not files:
            logger.warning("No .txt/.md files found in %s", source)

        index = TextIndex()
        files_indexed = 0
        for filepath in files:
            chunks = self._index_file(filepath)
            if chunks:
                index.docs.extend(chunks)
                files_indexed += 1

        self._text_store.save(index)

        elapsed = time.perf_counter() - t_start
        logger.info("Index built — %d/%d file(s), %d chunk(s) in %.2fs.", files_indexed, len(files), len(index), elapsed)
        return index


    def _index_file(self, filepath: Path) -> list[Chunk]:
        """Chunk and embed one file.  Returns ``[]`` if it is empty or fails."""
        try:
            raw_text = self._read_file(filepath)
        except (OSError, UnicodeDecodeError):
            logger.exception("Failed to read knowledge file: %s", filepath.name)
            return []

        pieces = split_into_chunks(raw_text)
        if not pieces:
            logger.warning("Skipping empty file: %s", filepath.name)
            return []

        t_embed = time.perf_counter()
        try:
            vectors = list(self._text_embedder.embed_documents(pieces))
        except Exception:
            logger.exception("Embedding failed for %s — file skipped.", filepath.name)
            return []
        embed_ms = (time.perf_counter() - t_embed) * 1000

        if len(vectors) != len(pieces):
            logger.error("Embedder returned %d vector(s) for %d chunk(s) of %s — file skipped.", len(vectors), len(pieces), filepath.name)
            return []
        chunks = [
            Chunk(id=Chunk.make_id(filepath.name, i), source_file=filepath.name, text=text, embedding=vector)
            for i, (text, vector) in enumerate(zip(pieces, vectors, strict=True))
        ]

        logger.info("File '%s' → %d chunk(s), embedded in %.1fms.", filepath.name, len(pieces), embed_ms)
        return chunks


    @staticmethod
    def _read_file(filepath: Path) -> str:
        """Read a knowledge file as UTF-8 (cp1252 fallback)."""
        try:
            return filepath.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return filepath.read_text(encoding="cp1252")

    # ══════════════════════════════════════════════════════════════════
    #  IMAGE BRANCH
    # ══════════════════════════════════════════════════════════════════

    def ingest_image(self, data: bytes) -> ImageRecord:
        """
        Store, caption, embed and index one received image.

        Raises
        ------
        OSError
            If the image file or the index cannot be written.
        """
        t_start = time.perf_counter()
        stored_path = self._image_store.save_asset(data)

        caption = self._describe(data)
        embedding = self._embed_image(data)

        record = ImageRecord(file_path=str(stored_path), caption=caption, embedding=embedding)
        self._image_store.append(record)

        logger.info("Image '%s' ingested in %.1fms — caption: %s", stored_path.name, (time.perf_counter() - t_start) * 1000, caption)
        return record


    def _describe(self, data: bytes) -> str:
        try:
            caption = self._captioner.caption(data)
        except Exception:
            logger.exception("Captioning failed — using fallback caption.")
            return CAPTION_FAILED_FALLBACK
        return caption or CAPTION_EMPTY_FALLBACK


    def _embed_image(self, data: bytes) -> list[float] | None:
        try:
            return self._image_embedder.embed_image(data)
        except Exception:
            logger.exception("Image embedding failed — record stored without embedding.")
            return None
