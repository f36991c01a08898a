"""Per-process TTL cache of successful contributor lists, keyed by doc id."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Optional

from wiki_api.models.contributor import ContributorRecord


class AttributionCache:
    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 512) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._entries: "OrderedDict[str, tuple[float, str, list[ContributorRecord]]]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, key: str, now: Optional[float] = None) -> Optional[tuple[str, list[ContributorRecord]]]:
        if not self.enabled:
            return None
        now = time.time() if now is None else now
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, source_path, rows = entry
            if expires_at <= now:
                del self._entries[key]
                return None
            return source_path, [row.model_copy() for row in rows]

    def put(self, key: str, source_path: str, rows: list[ContributorRecord], now: Optional[float] = None) -> None:
        if not self.enabled:
            return
        now = time.time() if now is None else now
        with self._lock:
            self._entries[key] = (now + self._ttl, source_path, [row.model_copy() for row in rows])
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
