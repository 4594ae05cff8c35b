"""FastMCP server adapter implementation."""

import contextlib
import logging
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

import mcp.types as types
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError as FastMcpToolError

from rest_tester.core.mcp.exceptions import MethodNotFoundError, ProtocolError, ResourceError
from rest_tester.core.mcp.protocols import ManagedProvider, ResourceProvider, ToolProvider

logger = logging.getLogger(__name__)


class RestToolProviderLike(ToolProvider, Protocol):
    """Protocol for REST tool providers in hybrid approach."""

    test_tool: Any


class FastMcpServerAdapter:
    """Adapter that makes FastMCP work with our protocols.

    FastMCP lists the tools and resources. Calls and reads are dispatched to
    the owning provider directly, so a ProtocolError raised there reaches the
    client as a JSON-RPC error with its own code.

    Providers implementing ManagedProvider are started when the first
    session opens and shut down when the last one closes.
    """

    def __init__(self, name: str = "rest-tester"):
        """Initialize the FastMCP server adapter.

        Args:
            name: Server name for MCP identification
        """
        self._mcp = FastMCP(name, lifespan=self._lifespan)
        self._tool_providers: list[ToolProvider] = []
        self._resource_providers: list[ResourceProvider] = []
        self._tool_routes: dict[str, ToolProvider] = {}
        self._resource_routes: dict[str, tuple[ResourceProvider, str]] = {}
        self._sessions = 0

        handlers = self._mcp._mcp_server.request_handlers
        handlers[types.CallToolRequest] = self._handle_call_tool
        handlers[types.ReadResourceRequest] = self._handle_read_resource

    def add_tool_provider(self, provider: RestToolProviderLike) -> None:
        """Add a tool provider to the server.

        Args:
            provider: Object that can provide tools (hybrid approach)
        """
        self._tool_providers.append(provider)
        self._register_tools(provider)

    def add_resource_provider(self, provider: ResourceProvider) -> None:
        """Add a resource provider to the server.

        Args:
            provider: Object implementing ResourceProvider protocol
        """
        self._resource_providers.append(provider)
        self._register_resources(provider)

    def _managed_providers(self) -> list[ManagedProvider]:
        providers = [*self._tool_providers, *self._resource_providers]
        return [p for p in providers if isinstance(p, ManagedProvider)]

    @contextlib.asynccontextmanager
    async def _lifespan(self, server: FastMCP) -> AsyncIterator[None]:
        self._sessions += 1
        try:
            if self._sessions == 1:
                for provider in self._managed_providers():
                    await provider.startup()
            yield
        finally:
            self._sessions -= 1
            if self._sessions == 0:
                for provider in reversed(self._managed_providers()):
                    try:
                        await provider.shutdown()
                    except Exception:
                        logger.exception(
                            f"Error shutting down {type(provider).__name__}"
                        )

    def _register_tools(self, provider: RestToolProviderLike) -> None:
        """Register tools from a provider with FastMCP.

        Uses hybrid approach: the provider describes its tools, and the tool
        object's execute method is registered directly so FastMCP derives
        the argument schema from its signature. Results are plain text, so
        no output schema is advertised.
        """
        descriptions = {}
        for tool in provider.get_tools():
            self._tool_routes[tool["name"]] = provider
            descriptions[tool["name"]] = tool["description"]

        if hasattr(provider, "test_tool"):
            self._mcp.tool(
                provider.test_tool.execute,
                name="test_request",
                description=descriptions.get("test_request"),
                output_schema=None,
            )

    def _register_resources(self, provider: ResourceProvider) -> None:
        """Register resources from a provider with FastMCP."""
        resources = provider.get_resources()

        for resource_def in resources:
            resource_uri = resource_def["uri"]
            mime_type = resource_def.get("mimeType", "text/markdown")
            self._resource_routes[resource_uri] = (provider, mime_type)

            def make_resource_wrapper(uri: str) -> Callable[[], Awaitable[str]]:
                async def resource_wrapper() -> str:
                    """Wrapper function for resource access."""
                    return await self._read_resource(uri)

                return resource_wrapper

            # Register with FastMCP
            self._mcp.resource(
                resource_uri,
                name=resource_def.get("name", ""),
                description=resource_def.get("description", ""),
                mime_type=mime_type,
            )(make_resource_wrapper(resource_uri))

    async def _handle_call_tool(self, req: types.CallToolRequest) -> types.ServerResult:
        name = req.params.name
        provider = self._tool_routes.get(name)
        if provider is None:
            raise MethodNotFoundError(f"Unknown tool: {name}")

        try:
            result = await provider.call_tool(name, req.params.arguments or {})
        except ProtocolError:
            raise
        except FastMcpToolError as e:
            return self._tool_result(str(e), is_error=True)
        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return self._tool_result(f"Tool '{name}' failed: {e}", is_error=True)
        return self._tool_result(str(result))

    @staticmethod
    def _tool_result(text: str, is_error: bool = False) -> types.ServerResult:
        return types.ServerResult(
            types.CallToolResult(
                content=[types.TextContent(type="text", text=text)],
                isError=is_error,
            )
        )

    def _resolve_resource(self, uri: str) -> tuple[ResourceProvider, str]:
        """Provider serving uri, falling back to the one owning its scheme."""
        route = self._resource_routes.get(uri) or self._resource_routes.get(uri.rstrip("/"))
        if route is not None:
            return route

        scheme = uri.split("://", 1)[0]
        for known, route in self._resource_routes.items():
            if known.split("://", 1)[0] == scheme:
                return route
        raise ResourceError(uri, f"Resource not found: {uri}")

    async def _read_resource(self, uri: str) -> str:
        provider, _ = self._resolve_resource(uri)
        try:
            resource = await provider.get_resource(uri)
        except ProtocolError:
            raise
        except Exception as e:
            raise ResourceError(uri, str(e)) from e
        return str(resource["content"])

    async def _handle_read_resource(
        self, req: types.ReadResourceRequest
    ) -> types.ServerResult:
        uri = str(req.params.uri)
        _, mime_type = self._resolve_resource(uri)
        content = await self._read_resource(uri)
        return types.ServerResult(
            types.ReadResourceResult(
                contents=[
                    types.TextResourceContents(
                        uri=req.params.uri, mimeType=mime_type, text=content
                    )
                ]
            )
        )

    def start(self, transport: str = "stdio", **kwargs: Any) -> None:
        """Start the MCP server.

        Args:
            transport: Transport type (stdio, http, sse)
            **kwargs: Additional server configuration (host, port, path for HTTP)
        """
        if transport == "stdio":
            self._mcp.run(transport="stdio")
        elif transport == "http":
            # HTTP streaming transport (recommended)
            host = kwargs.get("host", "127.0.0.1")
            port = kwargs.get("port", 8000)
            path = kwargs.get("path", "/mcp")
            print(f"Starting HTTP MCP server at http://{host}:{port}{path}", file=sys.stderr)
            self._mcp.run(transport="http", host=host, port=port, path=path)
        elif transport == "sse":
            # SSE transport (deprecated but supported)
            host = kwargs.get("host", "127.0.0.1")
            port = kwargs.get("port", 8000)
            print(f"Starting SSE MCP server at http://{host}:{port}", file=sys.stderr)
            self._mcp.run(transport="sse", host=host, port=port)
        else:
            raise ValueError(f"Unsupported transport: {transport}")

    @property
    def mcp(self) -> FastMCP:
        """Access to underlying FastMCP instance."""
        return self._mcp
