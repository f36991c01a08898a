"""Tests for operational endpoints: landing, health, readiness, version."""

import re
from datetime import datetime

import pytest
from httpx import AsyncClient

from wiki_api.main import app


@pytest.mark.asyncio
async def test_root_returns_landing_info(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert set(data.keys()) == {"name", "version", "docs", "health"}
    assert data["docs"] == "/docs"
    assert data["health"] == "/api/health"


@pytest.mark.asyncio
async def test_docs_returns_200(client: AsyncClient):
    response = await client.get("/docs", follow_redirects=True)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_health_api_contract(client: AsyncClient):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    data = response.json()
    assert set(data.keys()) == {
        "status",
        "version",
        "timestamp",
        "started_at",
        "uptime_seconds",
        "uptime_human",
        "github_authenticated",
    }
    assert data["status"] == "ok"
    assert re.match(r"^\d+\.\d+\.\d+", data["version"])
    datetime.fromisoformat(data["timestamp"].replace("Z", "+00:00"))
    assert data["github_authenticated"] is True


@pytest.mark.asyncio
async def test_ready_returns_200(client: AsyncClient):
    response = await client.get("/api/ready")
    assert response.status_code == 200
    assert response.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_ready_is_503_without_pipeline(client: AsyncClient):
    service = app.state.attribution_service
    app.state.attribution_service = None
    try:
        response = await client.get("/api/ready")
    finally:
        app.state.attribution_service = service
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_version(client: AsyncClient):
    response = await client.get("/api/version")
    assert response.json() == {"version": "1.0.0"}


@pytest.mark.asyncio
async def test_cors_allows_configured_origin(client: AsyncClient):
    response = await client.get("/api/health", headers={"Origin": "http://localhost:3000"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_runtime_header_is_set(client: AsyncClient):
    response = await client.get("/api/version")
    assert float(response.headers["x-wiki-runtime-ms"]) > 0
