"""Translate attribution outcomes into HTTP responses.

The only place an AttributionErrorKind becomes a status code. Error bodies use
the ErrorDetail shape ({"detail": str}) and never carry upstream internals.
"""

from __future__ import annotations

from typing import Optional

from fastapi.responses import JSONResponse

from wiki_api.models.attribution import AttributionError, AttributionErrorKind, AttributionResult
from wiki_api.models.repository import RepositoryResult

# Contributor lists change slowly relative to page traffic.
SUCCESS_CACHE_CONTROL = "public, s-maxage=3600, stale-while-revalidate=1800"
ERROR_CACHE_CONTROL = "no-store"

LOCAL_RATE_LIMIT_DETAIL = "Rate limit exceeded. Please try again later."
UPSTREAM_QUOTA_DETAIL = "GitHub API rate limit exceeded. Please try again later."
GENERIC_FAILURE_DETAIL = "Failed to fetch contributors"
NOT_READY_DETAIL = "Repository metadata is not available yet."
REPOSITORY_NOT_FOUND_DETAIL = "Repository not found"
DEFAULT_RETRY_AFTER_SECONDS = 60


def _error(status_code: int, detail: str, retry_after: Optional[int] = None) -> JSONResponse:
    headers = {"Cache-Control": ERROR_CACHE_CONTROL}
    if retry_after is not None:
        headers["Retry-After"] = str(max(1, int(retry_after)))
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


def success_response(result: AttributionResult) -> JSONResponse:
    body = [row.to_public() for row in result.contributors]
    return JSONResponse(content=body, headers={"Cache-Control": SUCCESS_CACHE_CONTROL})


def local_rate_limited_response(retry_after_seconds: int) -> JSONResponse:
    return _error(429, LOCAL_RATE_LIMIT_DETAIL, retry_after_seconds)


def _failure(error: AttributionError) -> JSONResponse:
    kind = error.kind
    if kind == AttributionErrorKind.INVALID_INPUT:
        return _error(400, error.message or "docPath parameter is required")
    if kind == AttributionErrorKind.LOCAL_RATE_LIMITED:
        return local_rate_limited_response(error.retry_after_seconds or DEFAULT_RETRY_AFTER_SECONDS)
    if kind == AttributionErrorKind.UPSTREAM_QUOTA_EXHAUSTED:
        return _error(429, UPSTREAM_QUOTA_DETAIL, error.retry_after_seconds or DEFAULT_RETRY_AFTER_SECONDS)
    if kind == AttributionErrorKind.UPSTREAM_NOT_READY:
        return _error(503, NOT_READY_DETAIL, error.retry_after_seconds or DEFAULT_RETRY_AFTER_SECONDS)
    return _error(500, GENERIC_FAILURE_DETAIL)


def assemble(result: AttributionResult) -> JSONResponse:
    if result.ok:
        return success_response(result)
    if result.error.kind == AttributionErrorKind.UPSTREAM_NOT_FOUND:
        return success_response(AttributionResult.success([]))
    return _failure(result.error)


def assemble_repository(result: RepositoryResult) -> JSONResponse:
    if result.ok:
        return JSONResponse(content=result.repository.to_public(), headers={"Cache-Control": SUCCESS_CACHE_CONTROL})
    if result.error.kind == AttributionErrorKind.UPSTREAM_NOT_FOUND:
        return _error(404, REPOSITORY_NOT_FOUND_DETAIL)
    return _failure(result.error)
