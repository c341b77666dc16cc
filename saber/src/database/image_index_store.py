"""
Saber - ImageIndexStore
========================
Append-only index of received images plus the directory holding the
image files themselves.

File format (top-level array)::

    [{"file": "images/1700000000000_ab12….jpg", "caption": "...", "embedding": [...]}, ...]

Design decisions:
  • **Not memory-resident** — every ``load()`` reads the file, so a
    restarted process sees everything appended before it.
  • **Guarded read-modify-write** — ``append()`` runs load → append →
    save inside a per-file ``threading.Lock``; concurrent appends in
    one process are serialised instead of silently dropping records.
  • **Missing or malformed file → empty list**, logged as a warning.

Usage:
    from saber.src.database.image_index_store import ImageIndexStore
    store = ImageIndexStore()
    path = store.save_asset(image_bytes)
    store.append(ImageRecord(file=str(path), caption="a cat", embedding=[...]))
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from saber.config.settings import settings
from saber.src.database.persistence import read_json, write_json_atomic
from saber.src.database.schemas import ImageRecord
from saber.src.utils.logger import get_logger

logger = get_logger(__name__)

_RECORDS_ADAPTER = TypeAdapter(list[ImageRecord])

# ── Per-file write locks ──────────────────────────────────────────────
_LOCKS_GUARD = threading.Lock()
_file_locks: dict[str, threading.Lock] = {}


def _lock_for(path: Path) -> threading.Lock:
    """Return the shared lock guarding writes to *path*."""
    key = str(path.resolve())
    with _LOCKS_GUARD:
        if key not in _file_locks:
            _file_locks[key] = threading.Lock()
        return _file_locks[key]


class ImageIndexStore:
    """
    File-backed image index and image asset directory.

    Parameters
    ----------
    index_path
        Override the index file.  Defaults to ``settings.IMAGE_INDEX_PATH``.
    image_dir
        Override the asset directory.  Defaults to ``settings.IMAGE_DIR``.
    """

    __slots__ = ("_path", "_image_dir", "_lock")

    def __init__(self, index_path: Path | None = None, image_dir: Path | None = None) -> None:
        self._path: Path = Path(index_path or settings.IMAGE_INDEX_PATH)
        self._image_dir: Path = Path(image_dir or settings.IMAGE_DIR)
        self._image_dir.mkdir(parents=True, exist_ok=True)
        self._lock: threading.Lock = _lock_for(self._path)


    @property
    def path(self) -> Path:
        return self._path


    @property
    def image_dir(self) -> Path:
        return self._image_dir


    def load(self) -> list[ImageRecord]:
        """Read every record from disk (empty list if missing or unreadable)."""
        if not self._path.exists():
            return []
        try:
            return _RECORDS_ADAPTER.validate_python(read_json(self._path))
        except (json.JSONDecodeError, ValidationError, OSError) as exc:
            logger.warning("Unreadable image index at %s (%s) — treating as empty.", self._path, exc.__class__.__name__)
            return []


    def append(self, record: ImageRecord) -> int:
        """
        Append *record* to the durable index.

        Returns
        -------
        int
            Number of records in the index after the append.
        """
        with self._lock:
            records = self.load()
            records.append(record)
            write_json_atomic(self._path, _RECORDS_ADAPTER.dump_python(records, mode="json", by_alias=True))

        logger.info("Image indexed: %s (index now has %d records).", record.file_path, len(records))
        return len(records)


    def save_asset(self, data: bytes) -> Path:
        """
        Write raw image bytes under a unique ``<epoch-ms>_<sha1>.jpg`` name.

        The hash covers the first 16 bytes only; a numeric suffix is added
        if two images land on the same name.
        """
        digest = hashlib.sha1(data[:16]).hexdigest()
        stem = f"{int(time.time() * 1000)}_{digest}"
        target = self._image_dir / f"{stem}.jpg"

        with self._lock:
            suffix = 1
            while target.exists():
                target = self._image_dir / f"{stem}_{suffix}.jpg"
                suffix += 1
            target.write_bytes(data)

        logger.debug("Stored image asset %s (%d bytes).", target.name, len(data))
        return target


    def count(self) -> int:
        """Return the number of records currently on disk."""
        return len(self.load())


    def __repr__(self) -> str:
        return f"ImageIndexStore(path='{self._path}', images={self.count()})"
