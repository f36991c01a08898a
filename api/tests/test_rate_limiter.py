from __future__ import annotations

import threading

import pytest

from wiki_api.adapters.rate_limit_store import InMemoryRateLimitStore
from wiki_api.config import AttributionSettings
from wiki_api.services.rate_limiter import ClientRateLimiter


def test_limit_three_admits_three_then_rejects() -> None:
    store = InMemoryRateLimitStore(limit=3, window_seconds=60)
    now = 1_000_020.0  # exactly on a window start

    decisions = [store.admit("1.2.3.4", now=now + i) for i in range(4)]

    assert [d.admitted for d in decisions] == [True, True, True, False]
    assert decisions[3].retry_after_seconds > 0


def test_retry_after_counts_down_to_window_end() -> None:
    store = InMemoryRateLimitStore(limit=1, window_seconds=60)
    store.admit("a", now=120.0)
    rejected = store.admit("a", now=150.5)
    assert not rejected.admitted
    assert rejected.retry_after_seconds == 30


def test_next_window_admits_with_fresh_count() -> None:
    store = InMemoryRateLimitStore(limit=3, window_seconds=60)
    for i in range(3):
        assert store.admit("a", now=60.0 + i).admitted
    assert not store.admit("a", now=100.0).admitted

    # A fresh window restarts the count at 1.
    for i in range(3):
        assert store.admit("a", now=120.0 + i).admitted
    assert not store.admit("a", now=125.0).admitted


def test_callers_are_isolated() -> None:
    store = InMemoryRateLimitStore(limit=1, window_seconds=60)
    assert store.admit("a", now=10.0).admitted
    assert store.admit("b", now=10.0).admitted
    assert not store.admit("a", now=11.0).admitted


def test_expired_windows_are_swept() -> None:
    store = InMemoryRateLimitStore(limit=5, window_seconds=60)
    for caller in ("a", "b", "c"):
        store.admit(caller, now=10.0)
    assert len(store) == 3

    store.admit("d", now=200.0)
    assert len(store) == 1


def test_window_boundary_allows_double_burst() -> None:
    store = InMemoryRateLimitStore(limit=2, window_seconds=60)
    admitted = [store.admit("a", now=t).admitted for t in (58.0, 59.0, 60.0, 61.0)]
    assert admitted == [True, True, True, True]


def test_concurrent_admissions_never_exceed_limit() -> None:
    store = InMemoryRateLimitStore(limit=50, window_seconds=60)
    results: list[bool] = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(20):
            decision = store.admit("shared", now=30.0)
            with lock:
                results.append(decision.admitted)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 50
    assert len(results) == 200


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        InMemoryRateLimitStore(limit=0)
    with pytest.raises(ValueError):
        InMemoryRateLimitStore(window_seconds=0)


def test_client_rate_limiter_built_from_settings() -> None:
    limiter = ClientRateLimiter.from_settings(AttributionSettings(rate_limit_per_window=2, rate_limit_window_seconds=30))
    assert limiter.admit("x", now=0.0).admitted
    assert limiter.admit("x", now=1.0).admitted
    decision = limiter.admit("x", now=2.0)
    assert not decision.admitted
    assert decision.retry_after_seconds == 28

    limiter.reset()
    assert limiter.admit("x", now=3.0).admitted
