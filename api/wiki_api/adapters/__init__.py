"""Adapters for process-shared state: the rate limit store."""

from wiki_api.adapters.rate_limit_store import InMemoryRateLimitStore, RateLimitDecision, RateLimitStore

__all__ = ["InMemoryRateLimitStore", "RateLimitDecision", "RateLimitStore"]
