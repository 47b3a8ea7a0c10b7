"""Whole-file JSON persistence shared by the commit cache, vector index and sessions."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class CacheWriteError(Exception):
    """A cache file could not be written. Computed results may be lost."""


def read_json(path: Path) -> Any | None:
    """Read a JSON file, returning None when it is missing or unreadable."""
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Could not parse %s: %s", path, e)
        return None


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON to a temp file beside ``path`` and rename it into place.

    Readers either see the previous file or the new one, never a partial write.

    Raises:
        CacheWriteError: if the directory or file cannot be written.
    """
    tmp = path.with_name(f"{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
    except OSError as e:
        if tmp.exists():
            tmp.unlink()
        raise CacheWriteError(f"Failed to write {path}: {e}") from e
