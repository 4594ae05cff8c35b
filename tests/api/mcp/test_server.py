"""Unit tests for the FastMCP server adapter."""

import logging
from unittest.mock import AsyncMock, patch

import pytest
from fastmcp import Client, FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, INVALID_REQUEST, METHOD_NOT_FOUND

from rest_tester.api.mcp.providers import BaseResourceProvider, BaseToolProvider
from rest_tester.api.mcp.server import FastMcpServerAdapter
from rest_tester.core.mcp.exceptions import InvalidParamsError, ToolResultError


class StubResourceProvider(BaseResourceProvider):
    """Resource provider with mocked lifecycle hooks."""

    def __init__(self, error: Exception | None = None):
        self.startup = AsyncMock()
        self.shutdown = AsyncMock()
        self._error = error

    def get_resources(self):
        return [
            {
                "uri": "stub://guide",
                "name": "Guide",
                "description": "Stub guide",
                "mimeType": "text/markdown",
            }
        ]

    async def get_resource(self, uri):
        if self._error is not None:
            raise self._error
        return {"uri": uri, "content": "# Guide", "mimeType": "text/markdown"}


class StubToolProvider(BaseToolProvider):
    """Tool provider whose single tool echoes or raises."""

    def __init__(self, error: Exception | None = None):
        self._error = error

    def get_tools(self):
        return [{"name": "echo", "description": "Echo", "inputSchema": {"type": "object"}}]

    async def call_tool(self, name, arguments):
        if self._error is not None:
            raise self._error
        return f"echo: {arguments.get('text')}"


class TestLifespan:
    """Managed providers follow the first and last session."""

    @pytest.mark.unit
    async def test_started_once_and_stopped_after_last_session(self):
        # Arrange
        provider = StubResourceProvider()
        server = FastMcpServerAdapter("test-server")
        server.add_resource_provider(provider)

        # Act
        async with server._lifespan(server.mcp):
            async with server._lifespan(server.mcp):
                pass
            provider.shutdown.assert_not_awaited()

        # Assert
        provider.startup.assert_awaited_once()
        provider.shutdown.assert_awaited_once()

    @pytest.mark.unit
    async def test_shutdown_failure_is_logged(self, caplog):
        # Arrange
        provider = StubResourceProvider()
        provider.shutdown.side_effect = RuntimeError("boom")
        server = FastMcpServerAdapter("test-server")
        server.add_resource_provider(provider)

        # Act
        with caplog.at_level(logging.ERROR):
            async with server._lifespan(server.mcp):
                pass

        # Assert
        assert "Error shutting down StubResourceProvider" in caplog.text


class TestResources:
    """Resources are served through FastMCP."""

    @pytest.mark.unit
    async def test_resource_content(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_resource_provider(StubResourceProvider())

        # Act
        async with Client(server.mcp) as client:
            contents = await client.read_resource("stub://guide")

        # Assert
        assert contents[0].text == "# Guide"

    @pytest.mark.unit
    async def test_unexpected_failure_becomes_resource_error(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_resource_provider(StubResourceProvider(error=KeyError("guide")))

        # Act
        async with Client(server.mcp) as client:
            with pytest.raises(McpError) as exc_info:
                await client.read_resource("stub://guide")

        # Assert
        assert exc_info.value.error.code == INVALID_REQUEST
        assert "Resource 'stub://guide' failed" in exc_info.value.error.message

    @pytest.mark.unit
    async def test_unknown_uri_is_invalid_request(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_resource_provider(StubResourceProvider())

        # Act
        async with Client(server.mcp) as client:
            with pytest.raises(McpError) as exc_info:
                await client.read_resource("other://guide")

        # Assert
        assert exc_info.value.error.code == INVALID_REQUEST
        assert "Resource not found: other://guide" in exc_info.value.error.message


class TestTools:
    """Tool calls are dispatched to the owning provider."""

    @pytest.mark.unit
    async def test_call_is_routed_to_provider(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_tool_provider(StubToolProvider())

        # Act
        async with Client(server.mcp) as client:
            result = await client.call_tool_mcp("echo", {"text": "hi"})

        # Assert
        assert not result.isError
        assert result.content[0].text == "echo: hi"

    @pytest.mark.unit
    async def test_unknown_tool_is_method_not_found(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_tool_provider(StubToolProvider())

        # Act
        async with Client(server.mcp) as client:
            with pytest.raises(McpError) as exc_info:
                await client.call_tool_mcp("missing", {})

        # Assert
        assert exc_info.value.error.code == METHOD_NOT_FOUND

    @pytest.mark.unit
    async def test_protocol_error_keeps_its_code(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_tool_provider(StubToolProvider(error=InvalidParamsError("bad input")))

        # Act
        async with Client(server.mcp) as client:
            with pytest.raises(McpError) as exc_info:
                await client.call_tool_mcp("echo", {})

        # Assert
        assert exc_info.value.error.code == INVALID_PARAMS
        assert exc_info.value.error.message == "bad input"

    @pytest.mark.unit
    async def test_tool_result_error_is_error_result(self):
        # Arrange
        error = ToolResultError("echo", {"error": {"code": "TIMEOUT"}})
        server = FastMcpServerAdapter("test-server")
        server.add_tool_provider(StubToolProvider(error=error))

        # Act
        async with Client(server.mcp) as client:
            result = await client.call_tool_mcp("echo", {})

        # Assert
        assert result.isError
        assert result.content[0].text == str(error)

    @pytest.mark.unit
    async def test_unexpected_failure_is_logged_error_result(self, caplog):
        # Arrange
        server = FastMcpServerAdapter("test-server")
        server.add_tool_provider(StubToolProvider(error=RuntimeError("boom")))

        # Act
        with caplog.at_level(logging.ERROR):
            async with Client(server.mcp) as client:
                result = await client.call_tool_mcp("echo", {})

        # Assert
        assert result.isError
        assert result.content[0].text == "Tool 'echo' failed: boom"
        assert "Tool echo failed" in caplog.text


class TestStart:
    """Transport selection."""

    @pytest.mark.unit
    def test_http_transport(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")

        # Act
        with patch.object(FastMCP, "run") as run:
            server.start("http", host="0.0.0.0", port=9000, path="/rpc")

        # Assert
        run.assert_called_once_with(
            transport="http", host="0.0.0.0", port=9000, path="/rpc"
        )

    @pytest.mark.unit
    def test_stdio_transport(self):
        # Arrange
        server = FastMcpServerAdapter("test-server")

        # Act
        with patch.object(FastMCP, "run") as run:
            server.start()

        # Assert
        run.assert_called_once_with(transport="stdio")

    @pytest.mark.unit
    def test_unknown_transport(self):
        with pytest.raises(ValueError, match="Unsupported transport: ws"):
            FastMcpServerAdapter("test-server").start("ws")
