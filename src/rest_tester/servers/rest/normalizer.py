"""Shapes transport results into the envelope returned to the agent."""

import json
from collections.abc import Mapping
from typing import Any

from .models import AuthMode, ResolvedRequest, TransportResult
from .sanitizer import REDACTED, HeaderSanitizer

REDACTED_MESSAGE = "Request failed. Enable DETAILED_ERRORS to see the cause."


def body_text(body: Any) -> str:
    """Canonical text form of a body, as measured against the size limit."""
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return json.dumps(body, ensure_ascii=False, separators=(",", ":"), default=str)


def byte_length(text: str) -> int:
    return len(text.encode("utf-8", errors="surrogatepass"))


def truncate_utf8(text: str, limit: int) -> str:
    """Longest prefix of text that fits in limit bytes of UTF-8.

    Never splits a multi-byte character.
    """
    encoded = text.encode("utf-8", errors="surrogatepass")
    if len(encoded) <= limit:
        return text
    # A partial trailing sequence is invalid UTF-8 and is dropped
    return encoded[:limit].decode("utf-8", errors="ignore")


class ResponseNormalizer:
    """Builds success and error envelopes with sanitized headers."""

    def __init__(
        self,
        sanitizer: HeaderSanitizer,
        size_limit: int,
        detailed_errors: bool = True,
    ):
        """Initialize the normalizer.

        Args:
            sanitizer: Redacts header values before they are returned
            size_limit: Maximum response body size in bytes
            detailed_errors: Whether error envelopes may show message, URL and body
        """
        self._sanitizer = sanitizer
        self._size_limit = size_limit
        self._detailed_errors = detailed_errors

    @property
    def size_limit(self) -> int:
        return self._size_limit

    def request_headers(
        self,
        request: ResolvedRequest,
        caller_headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Headers that were sent, as the caller may see them.

        Caller-supplied headers are laid over the sanitized merge so callers
        see the non-sensitive values they sent themselves. A caller header
        replaced by an injected credential keeps the sanitized merged value.
        """
        headers = self._sanitizer.sanitize(request.headers)
        if caller_headers:
            visible = self._sanitizer.sanitize(caller_headers, caller_supplied=True)
            for name, value in visible.items():
                if request.headers.get(name) == caller_headers[name]:
                    headers[name] = value
        return headers

    def normalize(
        self,
        result: TransportResult,
        request: ResolvedRequest,
        auth_mode: AuthMode,
        caller_headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Build the envelope for a response, truncating oversized bodies."""
        is_error = result.status_code >= 400
        validation: dict[str, Any] = {
            "isError": is_error,
            "messages": [
                f"Request failed with status {result.status_code}"
                if is_error
                else "Request completed successfully"
            ],
        }

        body = result.body
        text = body_text(body)
        original_size = byte_length(text)
        if original_size > self._size_limit:
            body = truncate_utf8(text, self._size_limit)
            returned_size = byte_length(body)
            validation["messages"].append(
                f"Response truncated: {returned_size} of {original_size} bytes "
                f"returned due to size limit ({self._size_limit} bytes)"
            )
            validation["truncated"] = {
                "originalSize": original_size,
                "returnedSize": returned_size,
                "truncationPoint": returned_size,
                "sizeLimit": self._size_limit,
            }

        return {
            "request": {
                "url": request.url,
                "method": request.method,
                "headers": self.request_headers(request, caller_headers),
                "body": request.body if request.has_body else None,
                "authMethod": auth_mode.value,
            },
            "response": {
                "statusCode": result.status_code,
                "statusText": result.status_text,
                "timing": f"{result.elapsed_ms:.2f}ms",
                "headers": self._sanitizer.sanitize(result.headers),
                "body": body,
            },
            "validation": validation,
        }

    def error(
        self,
        message: str,
        code: str,
        request: ResolvedRequest,
        caller_headers: Mapping[str, str] | None = None,
    ) -> dict[str, Any]:
        """Build the envelope for a request that got no response.

        Without detailed errors, message, URL and body are replaced by fixed
        markers; the code is always kept.
        """
        detailed = self._detailed_errors
        return {
            "error": {
                "message": message if detailed else REDACTED_MESSAGE,
                "code": code,
                "request": {
                    "url": request.url if detailed else REDACTED,
                    "method": request.method,
                    "headers": self.request_headers(request, caller_headers),
                    "body": (request.body if request.has_body else None)
                    if detailed
                    else REDACTED,
                },
            }
        }
