"""Custom headers configured through HEADER_* environment variables."""

import logging
import re
from collections.abc import Mapping

logger = logging.getLogger(__name__)

HEADER_PREFIX = re.compile(r"^header_", re.IGNORECASE)

# RFC 9110 token characters
HEADER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9!#$%&'*+.^_`|~-]+$")

CONTROL_CHARS = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")

MAX_HEADER_NAME_LENGTH = 256
MAX_HEADER_VALUE_LENGTH = 8192
DEFAULT_MAX_CUSTOM_HEADERS = 50


def collect_custom_headers(
    environ: Mapping[str, str], max_headers: int = DEFAULT_MAX_CUSTOM_HEADERS
) -> dict[str, str]:
    """Build the custom header set from configuration variables.

    Variables whose name starts with ``HEADER_`` (any case) become headers
    named after the rest of the variable name, case preserved:
    ``HEADER_X-Tenant=acme`` sends ``X-Tenant: acme``. Invalid entries are
    skipped with a warning, and anything past ``max_headers`` is ignored.

    Args:
        environ: Configuration variables to scan
        max_headers: Maximum number of headers to accept

    Returns:
        Mapping of header name to value
    """
    headers: dict[str, str] = {}
    ignored: list[str] = []

    for key, value in environ.items():
        if not HEADER_PREFIX.match(key) or value is None:
            continue

        name = HEADER_PREFIX.sub("", key, count=1)
        if not name:
            logger.warning(f"Ignoring custom header variable with empty name: {key}")
            continue
        if len(name) > MAX_HEADER_NAME_LENGTH:
            logger.warning(
                f"Ignoring custom header {name[:32]}...: name exceeds "
                f"{MAX_HEADER_NAME_LENGTH} characters"
            )
            continue
        if not HEADER_NAME_PATTERN.match(name):
            logger.warning(f"Ignoring custom header {name!r}: invalid characters")
            continue

        cleaned = CONTROL_CHARS.sub("", value)
        if len(cleaned) > MAX_HEADER_VALUE_LENGTH:
            logger.warning(
                f"Ignoring custom header {name}: value exceeds "
                f"{MAX_HEADER_VALUE_LENGTH} characters"
            )
            continue

        if len(headers) >= max_headers:
            ignored.append(name)
            continue

        headers[name] = cleaned

    if ignored:
        logger.warning(
            f"Custom header limit of {max_headers} reached; ignored: {', '.join(ignored)}"
        )

    return headers
