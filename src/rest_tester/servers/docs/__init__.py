"""Documentation resources for the REST tester."""

from .provider import DocsResourceProvider

__all__ = ["DocsResourceProvider"]
