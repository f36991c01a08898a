"""Pytest configuration and fixtures.

Every test gets a freshly wired attribution pipeline on the shared FastAPI app
so rate-limit counters and cached contributor lists never leak across tests.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wiki_api.config import AttributionSettings  # noqa: E402
from wiki_api.main import app, configure_app_state  # noqa: E402


@pytest.fixture
def settings() -> AttributionSettings:
    return AttributionSettings(token="test-token", owner="owner", repo="repo", fetch_strategy="graphql")


@pytest.fixture(autouse=True)
def _fresh_app_state(settings: AttributionSettings) -> None:
    configure_app_state(app, settings=settings)


@pytest_asyncio.fixture
async def client():
    """ASGI client with raise_app_exceptions=False so 4xx/5xx return response body."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    # Close the GitHub pool on the loop that opened it.
    await app.state.github_client.aclose()
