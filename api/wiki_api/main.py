from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from wiki_api import config
from wiki_api.config import AttributionSettings
from wiki_api.routers import contributors, health
from wiki_api.services.attribution_cache import AttributionCache
from wiki_api.services.attribution_service import AttributionService
from wiki_api.services.client_identity import resolve_client_identity
from wiki_api.services.github_client import CommitHistoryFetcher, GitHubClient, build_fetcher
from wiki_api.services.rate_limiter import ClientRateLimiter

app = FastAPI(title="OSS Wiki Contributors API", version=health.HEALTH_VERSION)
logger = logging.getLogger("wiki_api.api.slow")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.propagate = False
logger.setLevel(logging.INFO)


def _build_route_signature(request: Request) -> tuple[str, str]:
    route = request.scope.get("route")
    route_path = str(getattr(route, "path", "") or "") if route is not None else ""
    raw_path = request.url.path
    return (route_path or raw_path), raw_path


def _correlation_id(request: Request) -> str:
    for key in (
        "x-request-id",
        "x-vercel-id",
        "x-amzn-trace-id",
        "cf-ray",
    ):
        value = request.headers.get(key)
        if value:
            return value
    return "none"


def _client_label(request: Request) -> str:
    peer = request.client.host if request.client else None
    return resolve_client_identity(request.headers, peer_host=peer).value


_retiring: set[asyncio.Task] = set()


def _retire_client(client: GitHubClient) -> None:
    """Close a replaced client's connection pool on the running loop, if any."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # Without a running loop there is nothing to schedule the close on.
        return
    task = loop.create_task(client.aclose())
    _retiring.add(task)
    task.add_done_callback(_retiring.discard)


def configure_app_state(
    target: FastAPI,
    settings: Optional[AttributionSettings] = None,
    client: Optional[GitHubClient] = None,
    fetcher: Optional[CommitHistoryFetcher] = None,
) -> None:
    """Wire the process-wide attribution pipeline onto app.state.

    The rate limiter and result cache live here and are shared by every request.
    """
    settings = settings or AttributionSettings.from_env()
    previous: Optional[GitHubClient] = getattr(target.state, "github_client", None)
    if client is None:
        if previous is not None and not previous.closed and previous.serves(
            settings.token, settings.api_url, settings.request_timeout_seconds
        ):
            client = previous
        else:
            client = GitHubClient(
                token=settings.token,
                base_url=settings.api_url,
                timeout=settings.request_timeout_seconds,
            )
    if previous is not None and previous is not client:
        _retire_client(previous)
    fetcher = fetcher or build_fetcher(client, settings)
    target.state.settings = settings
    target.state.github_client = client
    target.state.rate_limiter = ClientRateLimiter.from_settings(settings)
    target.state.attribution_service = AttributionService(
        fetcher,
        owner=settings.owner,
        repo=settings.repo,
        docs_root=settings.docs_root,
        cache=AttributionCache(settings.cache_ttl_seconds, settings.cache_max_entries),
        client=client,
        upstream_enabled=bool(settings.token) or not settings.require_token,
    )
    if not settings.token:
        logger.warning("github_token_missing mode=unauthenticated require_token=%s", settings.require_token)


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Retry-After"],
)

configure_app_state(app)


@app.get("/", include_in_schema=False)
async def root():
    """Landing info for API discovery."""
    return {"name": app.title, "version": app.version, "docs": "/docs", "health": "/api/health"}


app.include_router(contributors.router, prefix="/api", tags=["contributors"])
app.include_router(health.router, prefix="/api", tags=["health"])


@app.on_event("shutdown")
async def _close_github_client() -> None:
    client = getattr(app.state, "github_client", None)
    if client is not None:
        await client.aclose()


@app.middleware("http")
async def log_slow_requests(request: Request, call_next):
    start = time.perf_counter()
    status_code: Optional[int] = None
    exc_name: Optional[str] = None
    response: Optional[Response] = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    except Exception as exc:
        status_code = 500
        exc_name = exc.__class__.__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        request_path, raw_path = _build_route_signature(request)
        if response is not None:
            response.headers["x-wiki-runtime-ms"] = f"{max(0.1, elapsed_ms):.4f}"
        if elapsed_ms >= config.slow_request_ms_threshold() or config.log_all_requests() or (status_code or 500) >= 500:
            logger.warning(
                "slow_api_request method=%s path=%s raw_path=%s status=%s elapsed_ms=%.2f correlation=%s client=%s exception=%s",
                request.method,
                request_path,
                raw_path,
                status_code,
                elapsed_ms,
                _correlation_id(request),
                _client_label(request),
                exc_name or "none",
            )
