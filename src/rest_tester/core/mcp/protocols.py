"""MCP protocols for type-safe composition."""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ToolProvider(Protocol):
    """Protocol for objects that can provide MCP tools."""

    def get_tools(self) -> Sequence[dict[str, Any]]:
        """Return list of tool definitions.

        Returns:
            Sequence of tool definitions with name, description and inputSchema.
        """
        ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Execute a tool with given arguments.

        Raises:
            MethodNotFoundError: If the provider has no tool with that name
            ToolError: If tool execution fails
        """
        ...


@runtime_checkable
class ResourceProvider(Protocol):
    """Protocol for objects that can provide MCP resources."""

    def get_resources(self) -> Sequence[dict[str, Any]]:
        """Return list of resource definitions (uri, name, description, mimeType)."""
        ...

    async def get_resource(self, uri: str) -> dict[str, Any]:
        """Retrieve a resource by URI.

        Raises:
            ResourceError: If resource cannot be retrieved
        """
        ...


@runtime_checkable
class ManagedProvider(Protocol):
    """Provider holding resources that live as long as the server runs."""

    async def startup(self) -> None:
        """Acquire long-lived resources (background tasks, connection pools)."""
        ...

    async def shutdown(self) -> None:
        """Release everything acquired in startup()."""
        ...
