"""Caching utilities for brewshard."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class JsonFileCache:
    """A single JSON document on disk, valid for ``ttl_seconds`` after writing.

    Freshness is judged by the file's modification time, so a cache written
    by an earlier process is reused as long as it is recent enough.
    Unreadable or corrupt files are treated as a miss.

    Args:
        path: Location of the cache file.
        ttl_seconds: Time-to-live in seconds.  ``0`` disables expiry.
    """

    def __init__(self, path: Path, ttl_seconds: float = 3600.0) -> None:
        self.path = path
        self._ttl = ttl_seconds

    def age(self) -> float | None:
        """Seconds since the cache file was written, or ``None`` if absent."""
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return None
        return max(time.time() - mtime, 0.0)

    def is_fresh(self) -> bool:
        age = self.age()
        if age is None:
            return False
        return self._ttl <= 0 or age <= self._ttl

    def get(self) -> Any | None:
        """Return the cached document or ``None`` if missing, expired or corrupt."""
        if not self.is_fresh():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache %s: %s", self.path, exc)
            return None

    def put(self, value: Any) -> None:
        """Write *value* as JSON, creating parent directories."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(value), encoding="utf-8")
        logger.debug("Cache written to %s", self.path)

    def clear(self) -> bool:
        """Delete the cache file.  Returns ``True`` if a file was removed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
