"""File cache for metadata responses, expired by file modification time."""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path

from .utils import ensure_directory

LOGGER = logging.getLogger(__name__)

EXPIRY_HOURS = 168


class CacheCategory(str, Enum):
    METADATA = "metadata"
    TRACKS = "tracks"
    REVIEWS = "reviews"


class ExpiringFileCache:
    """Stores one JSON document per ``(key, category)`` as ``{key}.{category}.json``.

    The cache is an optimisation only: read and write failures are logged at
    debug level and behave like a miss.
    """

    def __init__(self, cache_dir: Path, ttl_hours: int = EXPIRY_HOURS) -> None:
        self.cache_dir = cache_dir
        self.ttl_hours = ttl_hours
        self._ttl_seconds = ttl_hours * 3600

    def _cache_path(self, key: str, category: CacheCategory) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self.cache_dir / f"{safe_key}.{CacheCategory(category).value}.json"

    def is_expired(self, key: str, category: CacheCategory) -> bool:
        """True when the entry is missing or older than the TTL."""
        try:
            mtime = self._cache_path(key, category).stat().st_mtime
        except OSError:
            return True
        return time.time() - mtime > self._ttl_seconds

    def get(self, key: str, category: CacheCategory) -> str | None:
        cache_file = self._cache_path(key, category)
        if not cache_file.exists():
            return None
        if self.is_expired(key, category):
            LOGGER.debug("Cache entry expired: %s", cache_file.name)
            try:
                cache_file.unlink(missing_ok=True)
            except OSError as exc:
                LOGGER.debug("Failed to remove expired cache file %s: %s", cache_file, exc)
            return None
        try:
            return cache_file.read_text(encoding="utf-8")
        except OSError as exc:
            LOGGER.debug("Failed to read cache file %s: %s", cache_file, exc)
            return None

    def put(self, key: str, category: CacheCategory, data: str) -> None:
        cache_file = self._cache_path(key, category)
        try:
            ensure_directory(cache_file.parent)
            cache_file.write_text(data, encoding="utf-8")
        except OSError as exc:
            LOGGER.debug("Failed to write cache file %s: %s", cache_file, exc)

    def clear(self, key: str | None = None, category: CacheCategory | None = None) -> int:
        """Delete matching entries and return how many were removed.

        With no arguments every entry goes; ``key`` alone removes all
        categories for that key.
        """
        if not self.cache_dir.is_dir():
            return 0
        if key is not None and category is not None:
            targets = [self._cache_path(key, category)]
        elif key is not None:
            targets = [self._cache_path(key, cat) for cat in CacheCategory]
        elif category is not None:
            targets = list(self.cache_dir.glob(f"*.{CacheCategory(category).value}.json"))
        else:
            targets = list(self.cache_dir.glob("*.json"))

        removed = 0
        for cache_file in targets:
            try:
                if cache_file.exists():
                    cache_file.unlink()
                    removed += 1
            except OSError as exc:
                LOGGER.debug("Failed to remove cache file %s: %s", cache_file, exc)
        if removed:
            LOGGER.debug("Removed %d cache entries from %s", removed, self.cache_dir)
        return removed
