"""MCP server for testing REST APIs from an agent."""

__version__ = "0.1.0"
