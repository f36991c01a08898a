"""RateLimitStore abstraction + in-memory fixed-window backend.

The store owns the read-check-write on a window counter so a shared backend
(Redis, Postgres) can replace the in-memory one without touching callers.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class RateLimitWindowRecord:
    window_start: float
    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    admitted: bool
    retry_after_seconds: int


class RateLimitStore(Protocol):
    """Protocol for admission stores. Implementations: InMemoryRateLimitStore."""

    def admit(self, key: str, now: Optional[float] = None) -> RateLimitDecision:
        ...

    def reset(self) -> None:
        ...


class InMemoryRateLimitStore:
    """Fixed-window counter kept in process memory.

    Windows are aligned to floor(now / window) * window. Requests straddling a
    window boundary can see up to 2 * limit admissions in a short span; that is
    the accepted cost of a fixed window. Not persisted, reset on restart.
    """

    def __init__(self, limit: int = 10, window_seconds: int = 60, purpose: str = "contributors") -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self._limit = limit
        self._window = window_seconds
        self._purpose = purpose
        self._records: dict[tuple[str, str, float], RateLimitWindowRecord] = {}
        self._lock = threading.Lock()

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _sweep_expired(self, now: float) -> None:
        expired = [k for k, rec in self._records.items() if rec.reset_at <= now]
        for k in expired:
            del self._records[k]

    def admit(self, key: str, now: Optional[float] = None) -> RateLimitDecision:
        now = time.time() if now is None else now
        window_start = math.floor(now / self._window) * self._window
        reset_at = window_start + self._window
        retry_after = max(1, math.ceil(reset_at - now))
        composite = (self._purpose, key, window_start)

        with self._lock:
            record = self._records.get(composite)
            if record is None or record.reset_at <= now:
                self._records[composite] = RateLimitWindowRecord(window_start=window_start, count=1, reset_at=reset_at)
                self._sweep_expired(now)
                return RateLimitDecision(admitted=True, retry_after_seconds=retry_after)
            if record.count >= self._limit:
                return RateLimitDecision(admitted=False, retry_after_seconds=retry_after)
            record.count += 1
            return RateLimitDecision(admitted=True, retry_after_seconds=retry_after)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
