"""Shared fixtures for Salesforce, Firebase, and cache tests.

Provides:
- fake_sf: a FakeSalesforce router behind an httpx.MockTransport
- A TokenStore backed by a tmp_path JSON document
- A wired SalesforceClient / RequestOrchestrator / QueryPaginator stack
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

from src.tat_api.salesforce.client import SalesforceClient
from src.tat_api.salesforce.query import QueryPaginator
from src.tat_api.salesforce.retry import RequestOrchestrator
from src.tat_api.salesforce.tokens import AccessToken, TokenManager, TokenStore
from tests.fakes import INSTANCE_URL, OAUTH_BASE, FakeSalesforce


@pytest.fixture
def fake_sf() -> FakeSalesforce:
    return FakeSalesforce()


@pytest_asyncio.fixture
async def http_client(fake_sf) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_sf.handler)) as client:
        yield client


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    return TokenStore(
        tmp_path / "sf-auth.json",
        AccessToken(access_token="old-token", refresh_token="refresh-1", instance_url=INSTANCE_URL),
    )


@pytest.fixture
def token_manager(token_store, http_client) -> TokenManager:
    return TokenManager(
        store=token_store,
        http_client=http_client,
        oauth_base=OAUTH_BASE,
        client_id="consumer-key",
        client_secret="consumer-secret",
    )


@pytest.fixture
def sf_client(token_manager, http_client) -> SalesforceClient:
    return SalesforceClient(token_manager, http_client, api_version="v44.0")


@pytest.fixture
def orchestrator(token_manager) -> RequestOrchestrator:
    return RequestOrchestrator(token_manager)


@pytest.fixture
def paginator(sf_client, orchestrator) -> QueryPaginator:
    return QueryPaginator(sf_client, orchestrator, max_pages=5)
