"""
Saber - JSON File Persistence
==============================
Whole-file JSON read/write helpers shared by both index stores.

Writes go to a sibling temp file that is then ``os.replace``-d over the
target, so a crash mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from saber.src.utils.logger import get_logger

logger = get_logger(__name__)

JsonValue = dict | list | str | int | float | bool | None


def read_json(path: Path) -> JsonValue:
    """
    Parse *path* as JSON.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    json.JSONDecodeError
        If the content is not valid JSON.
    """
    return json.loads(path.read_text(encoding="utf-8"))


def write_json_atomic(path: Path, payload: JsonValue) -> None:
    """Serialise *payload* (2-space indent) and atomically replace *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except OSError:
        logger.error("Failed to write %s", path)
        Path(tmp_name).unlink(missing_ok=True)
        raise
