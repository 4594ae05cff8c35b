"""Core MCP abstractions and protocols."""

from .exceptions import (
    InvalidParamsError,
    McpError,
    MethodNotFoundError,
    ProtocolError,
    ResourceError,
    ToolError,
    ToolResultError,
)
from .protocols import ManagedProvider, ResourceProvider, ToolProvider

__all__ = [
    "ToolProvider",
    "ResourceProvider",
    "ManagedProvider",
    "McpError",
    "ProtocolError",
    "InvalidParamsError",
    "MethodNotFoundError",
    "ResourceError",
    "ToolError",
    "ToolResultError",
]
