"""Documentation resource provider for MCP.

Serves usage guides for the test_request tool as markdown resources.
"""

import logging
import re
from pathlib import Path
from typing import Any

import yaml

from rest_tester.api.mcp.providers import BaseResourceProvider
from rest_tester.core.mcp.exceptions import ResourceError

logger = logging.getLogger(__name__)

URI_SCHEME = "rest-tester"

URI_PATTERN = re.compile(rf"^{URI_SCHEME}://(.+)$")


class DocsResourceProvider(BaseResourceProvider):
    """Provides documentation guides as MCP resources.

    Guides are YAML files with ``name``, ``description`` and ``content``
    (markdown). Guides in an extra directory override built-ins with the
    same file name.
    """

    def __init__(self, docs_dir: Path | str | None = None):
        """Initialize the documentation provider.

        Args:
            docs_dir: Optional directory of guides overriding the built-ins
        """
        self.builtin_docs_dir = Path(__file__).parent / "guides"
        self.user_docs_dir = Path(docs_dir) if docs_dir else None

        self._guides: dict[str, dict[str, Any]] = {}
        self._load_guides(self.builtin_docs_dir)
        if self.user_docs_dir is not None and self.user_docs_dir.exists():
            self._load_guides(self.user_docs_dir)

        logger.debug(f"Loaded {len(self._guides)} documentation guides")

    def _load_guides(self, directory: Path) -> None:
        for file_path in sorted(directory.glob("*.yaml")):
            try:
                with file_path.open("r", encoding="utf-8") as f:
                    guide = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to load guide {file_path}: {e}")
                continue

            if not isinstance(guide, dict) or "name" not in guide or "content" not in guide:
                logger.warning(f"Invalid guide file (missing name or content): {file_path}")
                continue

            self._guides[file_path.stem] = guide

    def get_resources(self) -> list[dict[str, Any]]:
        """Return list of available documentation resources."""
        return [
            {
                "uri": f"{URI_SCHEME}://{guide_id}",
                "name": guide["name"],
                "description": guide.get("description", ""),
                "mimeType": "text/markdown",
            }
            for guide_id, guide in self._guides.items()
        ]

    async def get_resource(self, uri: str) -> dict[str, Any]:
        """Retrieve a guide by URI.

        Args:
            uri: Resource URI in format rest-tester://[guide_id]

        Returns:
            Dictionary with the markdown content and its mime type

        Raises:
            ResourceError: If the URI is malformed or names no guide
        """
        match = URI_PATTERN.match(uri)
        if not match:
            raise ResourceError(uri, "Invalid resource URI format")

        guide_id = match.group(1)
        guide = self._guides.get(guide_id)
        if guide is None:
            raise ResourceError(uri, f"Resource not found: {guide_id}")

        return {
            "uri": uri,
            "name": guide["name"],
            "content": guide["content"],
            "mimeType": "text/markdown",
        }
