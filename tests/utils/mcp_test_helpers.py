"""Reusable test helpers for MCP and HTTP testing.

This module provides a base class for exercising providers through a real
FastMCP server, and helpers for faking the HTTP transport.
"""

import json
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastmcp import Client

from rest_tester.api.mcp.server import FastMcpServerAdapter
from rest_tester.servers.docs import DocsResourceProvider
from rest_tester.servers.rest.config import RestConfig
from rest_tester.servers.rest.providers import RestToolProvider


def mock_client(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by handler."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def sent_json(request: httpx.Request) -> Any:
    """Decode the JSON body of a recorded request."""
    return json.loads(request.content.decode("utf-8"))


def make_provider(
    config: RestConfig, handler: Callable[[httpx.Request], Any], **kwargs: Any
) -> RestToolProvider:
    """RestToolProvider whose HTTP client is answered by handler."""
    return RestToolProvider(config, client=mock_client(handler), **kwargs)


class BaseMcpProviderTest:
    """Base class for MCP provider integration tests.

    Provides helpers for running providers inside an actual FastMCP server
    and talking to it through the in-memory client.
    """

    @asynccontextmanager
    async def create_test_server(
        self,
        tool_provider: RestToolProvider | None = None,
        resource_provider: DocsResourceProvider | None = None,
    ) -> AsyncIterator[tuple[FastMcpServerAdapter, Client]]:
        """Create a test server with providers and connect a client.

        Args:
            tool_provider: Optional tool provider to add
            resource_provider: Optional resource provider to add

        Yields:
            Tuple of (server_adapter, connected client)
        """
        server = FastMcpServerAdapter("test-server")
        if tool_provider:
            server.add_tool_provider(tool_provider)
        if resource_provider:
            server.add_resource_provider(resource_provider)

        async with Client(server.mcp) as client:
            yield server, client

    def tool_text(self, result: Any) -> str:
        """Text of the single content block of a tool result."""
        content = result.content if hasattr(result, "content") else result
        assert len(content) == 1
        return str(content[0].text)

    def assert_resource_valid(self, resource: dict[str, Any]) -> None:
        """Assert that a resource has valid MCP structure.

        Args:
            resource: Resource dictionary to validate
        """
        assert "uri" in resource, "Resource must have URI"
        assert "name" in resource, "Resource must have name"
        assert "mimeType" in resource, "Resource must have mimeType"

        if "description" in resource:
            assert isinstance(resource["description"], str)
