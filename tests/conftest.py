"""Shared test fixtures and configuration."""

from collections.abc import Callable

import httpx
import pytest

from rest_tester.servers.rest.config import RestConfig

# Variables read by the settings layer; cleared so the host environment
# cannot leak into tests
SETTINGS_VARIABLES = (
    "REST_BASE_URL",
    "REST_RESPONSE_SIZE_LIMIT",
    "REST_ENABLE_SSL_VERIFY",
    "REST_REQUEST_TIMEOUT",
    "REST_MAX_REDIRECTS",
    "REST_MAX_ENDPOINT_LENGTH",
    "AUTH_BASIC_USERNAME",
    "AUTH_BASIC_PASSWORD",
    "AUTH_BEARER",
    "AUTH_APIKEY_HEADER_NAME",
    "AUTH_APIKEY_VALUE",
    "AUTH_TOKEN_MODULE",
    "APP_ENV",
    "LOG_LEVEL",
    "ALLOW_PRIVATE_NETWORKS",
    "DETAILED_ERRORS",
    "ENABLE_SECURITY_LOGGING",
    "MAX_CONCURRENT_REQUESTS",
    "RATE_LIMIT_MAX_REQUESTS",
    "RATE_LIMIT_WINDOW_SECONDS",
    "MAX_CUSTOM_HEADERS",
    "MCP_SERVER_NAME",
    "MCP_TRANSPORT",
    "MCP_HOST",
    "MCP_PORT",
    "MCP_PATH",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Environment without any rest-tester configuration or .env file."""
    for name in SETTINGS_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def rest_config():
    """Configuration with a public base URL and no auth."""
    return RestConfig(
        base_url="https://api.example.com",
        detailed_errors=True,
        environ={},
    )


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def json_handler(recorded_requests) -> Callable[[httpx.Request], httpx.Response]:
    """Transport handler answering every request with a small JSON document."""

    def handler(request: httpx.Request) -> httpx.Response:
        recorded_requests.append(request)
        return httpx.Response(
            200,
            json={"ok": True, "path": request.url.path},
            headers={"X-Request-Id": "req-1"},
        )

    return handler
