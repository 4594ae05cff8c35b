"""MCP server surface."""

from .providers import BaseResourceProvider, BaseToolProvider
from .server import FastMcpServerAdapter

__all__ = ["BaseResourceProvider", "BaseToolProvider", "FastMcpServerAdapter"]
