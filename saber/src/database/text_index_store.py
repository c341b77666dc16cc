"""
Saber - TextIndexStore
=======================
Owns the text-chunk index: loads it from its JSON file, keeps it
resident in memory, and mirrors it back to disk on every rebuild.

File format::

    {"docs": [{"id": "faq.md#0", "file": "faq.md", "text": "...", "embedding": [...]}, ...]}

Design decisions:
  • **Missing or malformed file → empty index.**  A corrupt file is
    logged and treated as absent, which makes the caller rebuild it.
  • **Whole-file overwrite** on save (atomic replace), never partial
    updates — the index only changes through a full rebuild.

Usage:
    from saber.src.database.text_index_store import TextIndexStore
    store = TextIndexStore()
    if store.is_empty:
        ...  # rebuild through IndexingPipeline
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from saber.config.settings import settings
from saber.src.database.persistence import read_json, write_json_atomic
from saber.src.database.schemas import Chunk, TextIndex
from saber.src.utils.logger import get_logger

logger = get_logger(__name__)


class TextIndexStore:
    """
    File-backed, memory-resident text index.

    Parameters
    ----------
    index_path
        Override the index file.  Defaults to ``settings.VECTOR_INDEX_PATH``.
    """

    __slots__ = ("_path", "_index")

    def __init__(self, index_path: Path | None = None) -> None:
        self._path: Path = Path(index_path or settings.VECTOR_INDEX_PATH)
        self._index: TextIndex = self.load()


    @property
    def path(self) -> Path:
        return self._path


    @property
    def index(self) -> TextIndex:
        """The resident index (as last loaded or saved)."""
        return self._index


    @property
    def docs(self) -> list[Chunk]:
        return self._index.docs


    @property
    def is_empty(self) -> bool:
        return self._index.is_empty


    def load(self) -> TextIndex:
        """
        Read the index file and make it the resident index.

        Returns an empty ``TextIndex`` when the file is missing or
        cannot be parsed.
        """
        if not self._path.exists():
            logger.info("No text index at %s — starting empty.", self._path)
            self._index = TextIndex()
            return self._index

        try:
            self._index = TextIndex.model_validate(read_json(self._path))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            logger.warning("Unreadable text index at %s (%s) — treating as empty.", self._path, exc.__class__.__name__)
            self._index = TextIndex()
            return self._index

        dimensions = self._index.dimensions
        if len(dimensions) > 1:
            logger.warning("Text index at %s mixes embedding sizes %s — rebuild it with a single model.", self._path, sorted(dimensions))
        logger.info("Loaded text index from %s (%d chunks, dim=%s).", self._path, len(self._index), ",".join(str(d) for d in sorted(dimensions)) or "n/a")
        return self._index


    def save(self, index: TextIndex) -> None:
        """Overwrite the index file with *index* and make it resident."""
        write_json_atomic(self._path, index.model_dump(mode="json", by_alias=True))
        self._index = index
        logger.info("Saved text index to %s (%d chunks).", self._path, len(index))


    def count(self) -> int:
        """Return the number of chunks in the resident index."""
        return len(self._index)


    def __repr__(self) -> str:
        return f"TextIndexStore(path='{self._path}', chunks={self.count()})"
