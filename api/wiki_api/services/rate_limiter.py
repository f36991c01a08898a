"""Per-caller admission control for contributor lookups."""

from __future__ import annotations

import logging
from typing import Optional

from wiki_api.adapters.rate_limit_store import InMemoryRateLimitStore, RateLimitDecision, RateLimitStore
from wiki_api.config import AttributionSettings

logger = logging.getLogger(__name__)


class ClientRateLimiter:
    """Owns one RateLimitStore; constructed once per app and injected into routes."""

    def __init__(self, store: RateLimitStore) -> None:
        self._store = store

    @classmethod
    def from_settings(cls, settings: AttributionSettings) -> "ClientRateLimiter":
        store = InMemoryRateLimitStore(
            limit=settings.rate_limit_per_window,
            window_seconds=settings.rate_limit_window_seconds,
        )
        return cls(store)

    @property
    def store(self) -> RateLimitStore:
        return self._store

    def admit(self, caller_key: str, now: Optional[float] = None) -> RateLimitDecision:
        decision = self._store.admit(caller_key, now=now)
        if not decision.admitted:
            logger.info(
                "contributors_rate_limited client=%s retry_after=%s",
                caller_key,
                decision.retry_after_seconds,
            )
        return decision

    def reset(self) -> None:
        self._store.reset()
