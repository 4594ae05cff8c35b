"""Endpoint and host policy for test requests."""

import logging
import re
from urllib.parse import SplitResult, urlsplit

from rest_tester.core.mcp.exceptions import InvalidParamsError

from .config import RestConfig
from .models import RequestSpec

security_logger = logging.getLogger("rest_tester.security")

FULL_URL_PATTERN = re.compile(r"^(https?://|www\.)", re.IGNORECASE)

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")

PRIVATE_HOSTNAMES = frozenset({"localhost", "127.0.0.1", "::1"})
PRIVATE_PREFIXES = ("10.", "192.168.", "172.")

DEFAULT_PORTS = {"http": 80, "https": 443}


def looks_like_full_url(value: str) -> bool:
    """Whether value starts like an absolute URL rather than a path."""
    return bool(FULL_URL_PATTERN.match(value))


def strip_control_chars(value: str) -> str:
    return CONTROL_CHARS.sub("", value)


def ensure_scheme(url: str) -> str:
    """Full-URL endpoints may start with www. and no scheme."""
    if url.lower().startswith("www."):
        return f"https://{url}"
    return url


def normalize_endpoint(endpoint: str) -> str:
    """Exactly one leading slash, no trailing slashes."""
    return "/" + endpoint.strip("/")


def is_private_host(hostname: str) -> bool:
    """Whether hostname points at loopback or a private network."""
    hostname = hostname.lower().strip("[]")
    return hostname in PRIVATE_HOSTNAMES or hostname.startswith(PRIVATE_PREFIXES)


def parse_full_url(url: str) -> SplitResult:
    """Split a full-URL endpoint, accepting only what can be sent as-is.

    Raises:
        InvalidParamsError: If url has no http(s) scheme, no host name or a
            malformed authority
    """
    try:
        parts = urlsplit(ensure_scheme(url))
        valid = (
            parts.scheme.lower() in ("http", "https")
            and bool(parts.hostname)
            and (parts.port is None or parts.port > 0)
        )
    except ValueError:
        valid = False

    if not valid:
        raise InvalidParamsError(
            f'Invalid endpoint URL: "{url}". A full URL needs an http:// or https:// '
            'scheme and a host name, e.g. "https://api.example.com/users".'
        )
    return parts


def normalize_host(host: str) -> str:
    """Reduce a host override to ``origin + path`` without a trailing slash.

    Query string and fragment are dropped.

    Raises:
        InvalidParamsError: If host is not an absolute http(s) URL
    """
    try:
        parts = urlsplit(host)
        scheme = parts.scheme.lower()
        hostname = parts.hostname
        port = parts.port
        valid = scheme in ("http", "https") and bool(hostname)
    except ValueError:
        valid = False

    if not valid:
        raise InvalidParamsError(
            "Invalid host format. The 'host' argument must be a valid URL starting "
            'with http:// or https://, e.g. "https://example.com" or '
            f'"http://localhost:3001/api/v1". Received: "{host}"'
        )

    # Origin only: credentials and default ports are not part of it
    if ":" in hostname:
        hostname = f"[{hostname}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        hostname = f"{hostname}:{port}"

    path = parts.path.rstrip("/")
    return f"{scheme}://{hostname}{path}"


class EndpointValidator:
    """Applies URL-shape and target policy to incoming requests."""

    def __init__(self, config: RestConfig):
        self._config = config

    def validate(self, spec: RequestSpec) -> RequestSpec:
        """Check a request against policy and return its normalized form.

        Raises:
            InvalidParamsError: If the request violates policy
        """
        max_length = self._config.max_endpoint_length
        endpoint = strip_control_chars(spec.endpoint).strip()
        if not endpoint:
            raise InvalidParamsError("Endpoint must not be empty")
        if len(endpoint) > max_length:
            raise InvalidParamsError(
                f"Endpoint exceeds maximum length of {max_length} characters"
            )

        host = None
        if spec.host is not None:
            raw_host = strip_control_chars(spec.host).strip()
            if len(raw_host) > max_length:
                raise InvalidParamsError(
                    f"Host exceeds maximum length of {max_length} characters"
                )
            host = normalize_host(raw_host)
            self._check_target(urlsplit(host).hostname or "")

        full_url = looks_like_full_url(endpoint)
        parts = parse_full_url(endpoint) if full_url else None
        base_url = self._config.base_url

        if base_url and parts is not None:
            raise InvalidParamsError(
                f'Invalid endpoint format. Do not include full URLs. Instead of "{endpoint}", '
                'use just the path (e.g. "/api/users"). Your path will be resolved to: '
                f"{host or base_url}{normalize_endpoint(parts.path)}. "
                "To target a different server for one request, pass its origin in 'host'."
            )

        if not base_url and not full_url and host is None:
            raise InvalidParamsError(
                "No base URL is configured (REST_BASE_URL), so the endpoint must be a "
                'full URL such as "https://api.example.com/users", or pass the origin '
                f'in \'host\' and the path in \'endpoint\'. Received: "{endpoint}"'
            )

        if parts is not None:
            self._check_target(parts.hostname or "")

        return RequestSpec(
            method=spec.method,
            endpoint=endpoint,
            body=spec.body,
            headers=spec.headers,
            host=host,
            options=spec.options,
        )

    def _check_target(self, hostname: str) -> None:
        if self._config.allow_private_networks:
            return
        if is_private_host(hostname):
            if self._config.security_logging:
                security_logger.warning(f"Blocked private network target: {hostname}")
            raise InvalidParamsError(
                f"Private network access not allowed: {hostname}. "
                "Set APP_ENV=development or ALLOW_PRIVATE_NETWORKS=true to permit it."
            )

