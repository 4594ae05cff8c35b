"""Base classes for the providers the server adapter hosts."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class BaseToolProvider(ABC):
    """Tool provider with no-op lifecycle hooks.

    Providers that own long-lived resources (HTTP clients, background
    tasks) override startup() and shutdown(); the server adapter calls them
    from its lifespan.
    """

    @abstractmethod
    def get_tools(self) -> Sequence[dict[str, Any]]:
        """Tool definitions with ``name``, ``description`` and ``inputSchema``."""

    @abstractmethod
    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Run the named tool.

        Raises:
            MethodNotFoundError: If the provider has no tool with that name
            InvalidParamsError: If the arguments are rejected before running
        """

    async def startup(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass


class BaseResourceProvider(ABC):
    """Read-only resources addressed by URI."""

    @abstractmethod
    def get_resources(self) -> Sequence[dict[str, Any]]:
        """Resource definitions with ``uri``, ``name``, ``description`` and ``mimeType``."""

    @abstractmethod
    async def get_resource(self, uri: str) -> dict[str, Any]:
        """Resource definition plus its ``content``.

        Raises:
            ResourceError: If the URI is malformed or unknown
        """
