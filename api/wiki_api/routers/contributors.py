from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from wiki_api.models.attribution import AttributionErrorKind, AttributionResult
from wiki_api.models.contributor import ContributorRecord
from wiki_api.models.error import ErrorDetail
from wiki_api.models.repository import RepositoryMetadata
from wiki_api.services.attribution_service import AttributionService
from wiki_api.services.client_identity import resolve_client_identity
from wiki_api.services.rate_limiter import ClientRateLimiter
from wiki_api.services.response_assembler import assemble, assemble_repository

router = APIRouter()

_ERROR_RESPONSES = {
    400: {"model": ErrorDetail},
    429: {"model": ErrorDetail, "description": "Local or GitHub rate limit; see Retry-After"},
    500: {"model": ErrorDetail},
    503: {"model": ErrorDetail, "description": "GitHub is still preparing the data; see Retry-After"},
}


def get_rate_limiter(request: Request) -> ClientRateLimiter:
    return request.app.state.rate_limiter


def get_attribution_service(request: Request) -> AttributionService:
    return request.app.state.attribution_service


def _admit(request: Request, limiter: ClientRateLimiter) -> Optional[JSONResponse]:
    peer = request.client.host if request.client else None
    identity = resolve_client_identity(request.headers, peer_host=peer)
    decision = limiter.admit(identity.value)
    if decision.admitted:
        return None
    return assemble(
        AttributionResult.failure(
            AttributionErrorKind.LOCAL_RATE_LIMITED,
            retry_after_seconds=decision.retry_after_seconds,
        )
    )


@router.get("/contributors/ping")
async def ping_contributors():
    """Cheap liveness check for the contributors API; never touches GitHub."""
    return {
        "message": "Contributor API is working!",
        "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
    }


@router.get(
    "/contributors",
    response_model=None,
    responses={200: {"model": list[ContributorRecord]}, **_ERROR_RESPONSES},
)
async def list_doc_contributors(
    request: Request,
    doc_path: Optional[str] = Query(None, alias="docPath", description="Docs page id, e.g. get-started/intro"),
    limiter: ClientRateLimiter = Depends(get_rate_limiter),
    service: AttributionService = Depends(get_attribution_service),
) -> JSONResponse:
    """People who have modified the source file behind a docs page, most active first."""
    rejected = _admit(request, limiter)
    if rejected is not None:
        return rejected
    return assemble(await service.resolve(doc_path))


@router.get(
    "/repository/contributors",
    response_model=None,
    responses={200: {"model": list[ContributorRecord]}, **_ERROR_RESPONSES},
)
async def list_repository_contributors(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=500),
    hide_bots: bool = Query(True, description="When true, drop Bot accounts and *[bot] logins."),
    limiter: ClientRateLimiter = Depends(get_rate_limiter),
    service: AttributionService = Depends(get_attribution_service),
) -> JSONResponse:
    """Repository-wide contributors ranked by contributions."""
    rejected = _admit(request, limiter)
    if rejected is not None:
        return rejected
    return assemble(await service.repository_contributors(limit=limit, hide_bots=hide_bots))


@router.get(
    "/repository",
    response_model=None,
    responses={200: {"model": RepositoryMetadata}, 404: {"model": ErrorDetail}, **_ERROR_RESPONSES},
)
async def get_repository(
    request: Request,
    limiter: ClientRateLimiter = Depends(get_rate_limiter),
    service: AttributionService = Depends(get_attribution_service),
) -> JSONResponse:
    """Metadata for the configured docs repository (stars, forks, license, owner)."""
    rejected = _admit(request, limiter)
    if rejected is not None:
        return rejected
    return assemble_repository(await service.repository_metadata())
