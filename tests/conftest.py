"""
Shared test fixtures for pytest.

Clients served through ``httpx.MockTransport`` so no test touches the network,
plus environment and settings fixtures.
"""

import asyncio
from collections.abc import Callable

import httpx
import pytest

from azure_gpt.llm.clients import GptClient
from azure_gpt.llm.config import ClientIdentity, GptConfig
from azure_gpt.utils.config import Settings, get_settings
from tests.helpers import API_KEY, ENDPOINT

# ============================================================================
# Client fixtures
# ============================================================================


@pytest.fixture
def identity() -> ClientIdentity:
    return ClientIdentity(endpoint=ENDPOINT, api_key=API_KEY, api_version="2024-06-01")


@pytest.fixture
def config() -> GptConfig:
    return GptConfig.builder().model("gpt-4o").temperature(0.5).max_tokens(256).build()


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    """Every request that reached the mock transport, in order."""
    return []


@pytest.fixture
def make_client(identity, config, requests_seen) -> Callable[..., GptClient]:
    """
    Factory for a ``GptClient`` whose transport is served by ``handler``.

    Usage:
        client = make_client(lambda request: httpx.Response(200, json=...))
    """

    def factory(handler, client_config: GptConfig | None = None) -> GptClient:
        async def recording_handler(request: httpx.Request) -> httpx.Response:
            requests_seen.append(request)
            result = handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
        return GptClient(identity, config=client_config or config, http_client=http_client)

    return factory


# ============================================================================
# Environment & Configuration
# ============================================================================


@pytest.fixture
def mock_env_vars(monkeypatch):
    """
    Set the environment the way a deployment would, and reset cached settings.
    """
    monkeypatch.setenv("AZUREOPENAI_API_URL", ENDPOINT)
    monkeypatch.setenv("AZUREOPENAI_API_KEY", API_KEY)
    monkeypatch.setenv("AZUREOPENAI_DEPLOYMENT", "gpt-4o-mini")
    monkeypatch.setenv("AZUREOPENAI_API_VERSION", "2024-06-01")
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("DEFAULT_TEMPERATURE", "0.2")
    monkeypatch.setenv("DEFAULT_MAX_TOKENS", "128")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_settings() -> Settings:
    return Settings(
        _env_file=None,
        azureopenai_api_url=ENDPOINT,
        azureopenai_api_key=API_KEY,
        azureopenai_deployment="gpt-4o",
        environment="testing",
        default_temperature=0.3,
        default_max_tokens=64,
    )
