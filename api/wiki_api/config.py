"""Attribution service configuration, read from the environment."""

from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel

DEFAULT_OWNER = "Grenish"
DEFAULT_REPO = "oss-wiki"
DEFAULT_API_URL = "https://api.github.com"
FETCH_STRATEGIES = {"graphql", "rest"}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "1" if default else "").strip().lower()
    return raw in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, min(maximum, value))


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


def _github_token() -> Optional[str]:
    env_token = os.getenv("GITHUB_TOKEN")
    if not env_token:
        env_token = os.getenv("GH_TOKEN")
    if env_token:
        env_token = env_token.strip() or None
    return env_token


def _fetch_strategy() -> str:
    value = _env_str("GITHUB_FETCH_STRATEGY", "graphql").lower()
    return value if value in FETCH_STRATEGIES else "graphql"


class AttributionSettings(BaseModel):
    """Values the contributor-attribution pipeline needs at construction time."""

    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO
    token: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    fetch_strategy: str = "graphql"
    rate_limit_per_window: int = 10
    rate_limit_window_seconds: int = 60
    identity_cap: int = 100
    max_commits: int = 3000
    docs_root: str = "content/docs"
    cache_ttl_seconds: int = 3600
    cache_max_entries: int = 512
    require_token: bool = False
    request_timeout_seconds: float = 20.0

    @classmethod
    def from_env(cls) -> "AttributionSettings":
        return cls(
            owner=_env_str("GITHUB_OWNER", DEFAULT_OWNER),
            repo=_env_str("GITHUB_REPO", DEFAULT_REPO),
            token=_github_token(),
            api_url=_env_str("GITHUB_API_URL", DEFAULT_API_URL).rstrip("/"),
            fetch_strategy=_fetch_strategy(),
            rate_limit_per_window=_env_int("GITHUB_RATE_LIMIT_PER_MINUTE", 10, 1, 10_000),
            rate_limit_window_seconds=_env_int("CONTRIBUTORS_RATE_LIMIT_WINDOW_SECONDS", 60, 1, 86_400),
            identity_cap=_env_int("CONTRIBUTORS_IDENTITY_CAP", 100, 1, 1_000),
            max_commits=_env_int("CONTRIBUTORS_MAX_COMMITS", 3000, 100, 100_000),
            docs_root=_env_str("CONTRIBUTORS_DOCS_ROOT", "content/docs").strip("/"),
            cache_ttl_seconds=_env_int("CONTRIBUTORS_CACHE_TTL_SECONDS", 3600, 0, 86_400),
            cache_max_entries=_env_int("CONTRIBUTORS_CACHE_MAX_ENTRIES", 512, 1, 100_000),
            require_token=_env_flag("CONTRIBUTORS_REQUIRE_TOKEN", False),
        )


def allowed_origins() -> list[str]:
    raw = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def slow_request_ms_threshold() -> float:
    raw = os.getenv("API_SLOW_REQUEST_MS", "1500").strip()
    try:
        return max(25.0, float(raw))
    except ValueError:
        return 1500.0


def log_all_requests() -> bool:
    return _env_flag("API_LOG_ALL_REQUESTS", False)
