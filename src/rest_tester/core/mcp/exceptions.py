"""MCP-related exceptions."""

import json
from typing import Any

from fastmcp.exceptions import ToolError as FastMcpToolError
from mcp.shared.exceptions import McpError as McpProtocolError
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ErrorData,
)


class McpError(Exception):
    """Base exception for MCP-related errors."""

    pass


class ProtocolError(McpError, McpProtocolError):
    """Error reported to the client as a JSON-RPC error response."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.details = details or {}
        McpProtocolError.__init__(self, ErrorData(code=self.code, message=message))


class InvalidParamsError(ProtocolError):
    """Tool arguments are malformed or violate request policy."""

    code = INVALID_PARAMS


class MethodNotFoundError(ProtocolError):
    """Requested tool does not exist."""

    code = METHOD_NOT_FOUND


class InvalidRequestError(ProtocolError):
    """Request cannot be served as asked."""

    code = INVALID_REQUEST


class ResourceError(InvalidRequestError):
    """Exception raised when resource access fails."""

    def __init__(self, uri: str, message: str, details: dict[str, Any] | None = None):
        self.uri = uri
        super().__init__(f"Resource '{uri}' failed: {message}", details)


class ToolError(McpError, FastMcpToolError):
    """Exception raised when tool execution fails."""

    def __init__(
        self, tool_name: str, message: str, details: dict[str, Any] | None = None
    ):
        self.tool_name = tool_name
        self.details = details or {}
        super().__init__(f"Tool '{tool_name}' failed: {message}")


class ToolResultError(ToolError):
    """Tool ran to completion but its result is an error payload.

    The payload is serialized as pretty-printed JSON and becomes the whole
    error text, so FastMCP hands it back to the caller unchanged with the
    error flag set.
    """

    def __init__(self, tool_name: str, payload: dict[str, Any]):
        self.tool_name = tool_name
        self.payload = payload
        self.details = {}
        Exception.__init__(self, json.dumps(payload, indent=2, default=str))
