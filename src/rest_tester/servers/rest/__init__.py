"""REST API testing tool."""

from .config import RestConfig
from .providers import RestToolProvider
from .tools import RequestParams, RestRequestTool

__all__ = ["RequestParams", "RestConfig", "RestRequestTool", "RestToolProvider"]
