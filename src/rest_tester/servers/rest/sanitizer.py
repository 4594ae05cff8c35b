"""Header redaction for anything surfaced to the caller or the logs."""

from collections.abc import Callable, Iterable, Mapping
from typing import Any

REDACTED = "[REDACTED]"

# Always hidden, whoever set them
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "x-auth-token",
        "proxy-authorization",
        "www-authenticate",
    }
)

# Custom headers whose values may be shown
SAFE_HEADERS = frozenset(
    {
        "accept",
        "accept-language",
        "content-type",
        "user-agent",
        "cache-control",
        "if-match",
        "if-none-match",
        "if-modified-since",
        "if-unmodified-since",
    }
)


class HeaderSanitizer:
    """Redacts sensitive header values.

    Headers from configuration, authentication or the response are hidden
    when they are the authorization header, the configured API key header,
    a member of SENSITIVE_HEADERS, or a custom header outside SAFE_HEADERS.
    Every other header passes through unchanged; nothing is dropped.

    Caller-supplied headers are only checked against SENSITIVE_HEADERS, so
    callers see the values they sent for everything else.
    """

    def __init__(
        self,
        apikey_header_name: str | None = None,
        custom_header_names: Callable[[], Iterable[str]] | None = None,
        cache_size: int = 100,
    ):
        """Initialize the sanitizer.

        Args:
            apikey_header_name: Header carrying the configured API key, if any
            custom_header_names: Returns the names of configured custom headers
            cache_size: Max header-name sets whose redaction plan is memoized
        """
        self._apikey = apikey_header_name.lower() if apikey_header_name else None
        self._custom_header_names = custom_header_names or (lambda: ())
        self._cache_size = cache_size
        self._plans: dict[frozenset[str], frozenset[str]] = {}

    def sanitize(
        self, headers: Mapping[str, Any], caller_supplied: bool = False
    ) -> dict[str, Any]:
        """Return a copy of headers that is safe to log or return."""
        if caller_supplied:
            return {
                key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
                for key, value in headers.items()
            }

        redact = self._redaction_plan(frozenset(headers))
        return {
            key: REDACTED if key in redact else value for key, value in headers.items()
        }

    def _redaction_plan(self, names: frozenset[str]) -> frozenset[str]:
        """Names from the set that must be redacted, memoized per name set."""
        plan = self._plans.get(names)
        if plan is not None:
            return plan

        custom = {name.lower() for name in self._custom_header_names()}
        plan = frozenset(name for name in names if self._is_secret(name, custom))

        if len(self._plans) >= self._cache_size:
            # Oldest entry first (dicts keep insertion order)
            self._plans.pop(next(iter(self._plans)))
        self._plans[names] = plan
        return plan

    def _is_secret(self, name: str, custom: set[str]) -> bool:
        lower = name.lower()
        if lower in SENSITIVE_HEADERS:
            return True
        if self._apikey and lower == self._apikey:
            return True
        return lower in custom and lower not in SAFE_HEADERS
