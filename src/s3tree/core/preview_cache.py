"""Bounded LRU of object previews, keyed by object key."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Any

from s3tree.constants import PREVIEW_CACHE_MAX_ENTRIES

logger = logging.getLogger("s3tree.preview_cache")


class PreviewCache:
    """LRU cache for previews (decoded images, text snippets, ...).

    Thread-safe: all access is protected by one lock. Reads promote the entry,
    so they mutate the ordering as much as writes do.
    """

    def __init__(self, max_entries: int = PREVIEW_CACHE_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._max_entries = max_entries
        self._cache: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def contains(self, key: str) -> bool:
        with self._lock:
            return key in self._cache

    def get(self, key: str) -> Any | None:
        """Get a preview, promoting it to MRU. Returns None on miss."""
        with self._lock:
            if key not in self._cache:
                return None
            self._cache.move_to_end(key)
            return self._cache[key]

    def put(self, key: str, preview: Any) -> None:
        """Store a preview, evicting the LRU entry if over capacity."""
        with self._lock:
            self._cache[key] = preview
            self._cache.move_to_end(key)
            while len(self._cache) > self._max_entries:
                evicted, _ = self._cache.popitem(last=False)
                logger.debug("Evicted preview '%s'", evicted)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Returns True if it existed."""
        with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
