"""Request construction and dispatch."""

import json
import logging
import time
from collections.abc import Mapping
from typing import Any

import httpx

from .config import RestConfig
from .endpoints import ensure_scheme, looks_like_full_url, normalize_endpoint
from .models import ResolvedRequest, TransportResult

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The request never produced an HTTP response."""

    def __init__(self, message: str, code: str = "TRANSPORT_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


def build_client(config: RestConfig) -> httpx.AsyncClient:
    """Create the HTTP client shared by every request.

    Any status code is a normal response. With SSL verification off the
    connection still uses TLS, it just skips certificate checks.
    """
    return httpx.AsyncClient(
        timeout=config.timeout,
        verify=config.verify_ssl,
        follow_redirects=True,
        max_redirects=config.max_redirects,
    )


def merge_headers(*layers: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header layers, later layers winning on case-insensitive names.

    The winning layer's spelling of the name is kept.
    """
    merged: dict[str, str] = {}
    names: dict[str, str] = {}
    for layer in layers:
        if not layer:
            continue
        for name, value in layer.items():
            previous = names.get(name.lower())
            if previous is not None:
                del merged[previous]
            names[name.lower()] = name
            merged[name] = value
    return merged


def build_url(endpoint: str, origin: str | None) -> str:
    """Absolute URL for endpoint, resolved against origin when it is a path."""
    if looks_like_full_url(endpoint):
        return ensure_scheme(endpoint)
    if not origin:
        raise ValueError(f"Cannot resolve relative endpoint without an origin: {endpoint}")
    return f"{origin}{normalize_endpoint(endpoint)}"


def decode_body(response: httpx.Response) -> Any:
    """Response body as parsed JSON when it is JSON, otherwise text."""
    text = response.text
    if not text:
        return text
    try:
        return json.loads(text)
    except ValueError:
        return text


class RequestExecutor:
    """Builds the final request and sends it through the shared client."""

    def __init__(self, client: httpx.AsyncClient, config: RestConfig):
        """Initialize the executor.

        Args:
            client: HTTP client owned by the tool provider
            config: Configuration supplying the base URL and timeout
        """
        self._client = client
        self._config = config

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    @client.setter
    def client(self, client: httpx.AsyncClient) -> None:
        self._client = client

    def build(
        self,
        method: str,
        endpoint: str,
        host: str | None = None,
        body: Any = None,
        custom_headers: Mapping[str, str] | None = None,
        caller_headers: Mapping[str, str] | None = None,
        auth_headers: Mapping[str, str] | None = None,
    ) -> ResolvedRequest:
        """Resolve URL and headers for one request.

        Header priority, lowest to highest: custom, caller, auth. Callers can
        override configured custom headers but never injected credentials.
        """
        url = build_url(endpoint, host or self._config.base_url)
        headers = merge_headers(custom_headers, caller_headers, auth_headers)
        return ResolvedRequest(url=url, method=method, headers=headers, body=body)

    async def execute(self, request: ResolvedRequest) -> TransportResult:
        """Send the request and capture status, headers, body and timing.

        Raises:
            TransportError: On DNS, connection, TLS, timeout or redirect failures
        """
        kwargs: dict[str, Any] = {
            "method": request.method,
            "url": request.url,
            "headers": request.headers,
        }
        if request.has_body:
            if isinstance(request.body, str | bytes):
                kwargs["content"] = request.body
            else:
                kwargs["json"] = request.body

        logger.debug(f"{request.method} {request.url}")
        start = time.perf_counter()
        try:
            response = await self._client.request(**kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Request timed out after {self._config.timeout}s", code="TIMEOUT"
            ) from e
        except httpx.ConnectError as e:
            raise TransportError(
                f"Connection failed: {e}", code="CONNECTION_ERROR"
            ) from e
        except httpx.TooManyRedirects as e:
            raise TransportError(
                f"Too many redirects (limit {self._config.max_redirects})",
                code="TOO_MANY_REDIRECTS",
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"HTTP request failed: {e}") from e
        elapsed_ms = (time.perf_counter() - start) * 1000

        logger.debug(
            f"{request.method} {request.url} -> {response.status_code} in {elapsed_ms:.1f}ms"
        )
        return TransportResult(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            body=decode_body(response),
            elapsed_ms=elapsed_ms,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
