"""Tests for configure_app_state: the shared pipeline wired onto app.state."""

from __future__ import annotations

import asyncio

import pytest
import respx
from httpx import AsyncClient, Response

from github_payloads import GRAPHQL_URL, graphql_history, graphql_node
from wiki_api.config import AttributionSettings
from wiki_api.main import app, configure_app_state

CALLER = {"x-forwarded-for": "203.0.113.7"}


def test_configured_result_cache_is_enabled():
    configure_app_state(app, settings=AttributionSettings(token="t", cache_ttl_seconds=3600))
    assert app.state.attribution_service.cache.enabled


def test_zero_ttl_disables_result_cache():
    configure_app_state(app, settings=AttributionSettings(token="t", cache_ttl_seconds=0))
    assert not app.state.attribution_service.cache.enabled


@pytest.mark.asyncio
@respx.mock
async def test_repeated_lookup_is_served_from_cache(client: AsyncClient):
    route = respx.post(GRAPHQL_URL).mock(return_value=Response(200, json=graphql_history([graphql_node("alice", 1)])))

    first = await client.get("/api/contributors", params={"docPath": "guide"}, headers=CALLER)
    second = await client.get("/api/contributors", params={"docPath": "guide"}, headers=CALLER)

    assert first.json() == second.json()
    assert len(route.calls) == 1


def test_same_connection_settings_reuse_the_github_client():
    settings = AttributionSettings(token="t")
    configure_app_state(app, settings=settings)
    first = app.state.github_client

    configure_app_state(app, settings=settings.model_copy(update={"fetch_strategy": "rest"}))

    assert app.state.github_client is first


@pytest.mark.asyncio
async def test_replaced_github_client_is_closed():
    configure_app_state(app, settings=AttributionSettings(token="one"))
    old = app.state.github_client

    configure_app_state(app, settings=AttributionSettings(token="two"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert app.state.github_client is not old
    assert old.closed
    await app.state.github_client.aclose()
