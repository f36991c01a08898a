"""Health, readiness and version endpoints."""

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

router = APIRouter()

HEALTH_VERSION = "1.0.0"
SERVICE_STARTED_AT = datetime.now(timezone.utc)


def _iso_utc(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _uptime_seconds(now: datetime) -> int:
    return max(0, int((now - SERVICE_STARTED_AT).total_seconds()))


def _uptime_human(seconds: int) -> str:
    days, remainder = divmod(seconds, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)
    if days > 0:
        return f"{days}d {hours}h {minutes}m {secs}s"
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


class HealthResponse(BaseModel):
    """GET /api/health and /api/ready response."""

    model_config = ConfigDict(extra="forbid")
    status: Annotated[str, Field(description="'ok' for health, 'ready' for readiness")]
    version: Annotated[str, Field(description="Semver MAJOR.MINOR.PATCH")]
    timestamp: Annotated[str, Field(description="ISO8601 UTC")]
    started_at: Annotated[str, Field(description="ISO8601 UTC when service process started")]
    uptime_seconds: Annotated[int, Field(description="Seconds service has been up")]
    uptime_human: Annotated[str, Field(description="Human readable uptime")]
    github_authenticated: Annotated[bool, Field(description="Whether a GitHub token is configured")]


def _report(request: Request, status: str) -> HealthResponse:
    now = datetime.now(timezone.utc)
    up = _uptime_seconds(now)
    settings = getattr(request.app.state, "settings", None)
    return HealthResponse(
        status=status,
        version=HEALTH_VERSION,
        timestamp=_iso_utc(now),
        started_at=_iso_utc(SERVICE_STARTED_AT),
        uptime_seconds=up,
        uptime_human=_uptime_human(up),
        github_authenticated=bool(settings and settings.token),
    )


@router.get("/version")
async def version():
    """Return API version (lightweight, for dashboards)."""
    return {"version": HEALTH_VERSION}


@router.get("/ready", response_model=HealthResponse)
async def ready(request: Request):
    """Readiness probe. Returns 200 once the attribution pipeline is wired."""
    is_ready = getattr(request.app.state, "attribution_service", None) is not None
    if not is_ready:
        raise HTTPException(status_code=503, detail="not ready")
    return _report(request, "ready")


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Return API health status."""
    return _report(request, "ok")
