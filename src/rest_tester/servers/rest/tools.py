"""The test_request tool."""

import json
import logging
import re
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from rest_tester.core.mcp.exceptions import InvalidParamsError, ToolResultError
from rest_tester.core.mcp.validation import format_validation_errors, parse_json_object

from .auth import AuthResolver, TokenAcquisitionError
from .config import RestConfig
from .endpoints import EndpointValidator, strip_control_chars
from .executor import RequestExecutor, TransportError
from .limiter import AdmissionError, AdmissionGate
from .models import RequestSpec, TransportResult
from .normalizer import ResponseNormalizer
from .sanitizer import SAFE_HEADERS

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("rest_tester.security")

TOOL_NAME = "test_request"

MAX_CALLER_HEADERS = 50

HEADER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9!#$%&'*+.^_`|~-]+$")


class RequestParams(BaseModel):
    """Arguments of one test_request call."""

    METHOD_DESC: ClassVar[str] = (
        "HTTP method to use: GET, POST, PUT, DELETE or PATCH (any case)"
    )
    ENDPOINT_DESC: ClassVar[str] = (
        'Endpoint path (e.g. "/users"). When a base URL is configured, pass only '
        "the path. Without one, pass a full URL or combine a path with 'host'."
    )
    BODY_DESC: ClassVar[str] = (
        "Optional request body for POST/PUT/PATCH requests (ignored for GET/DELETE)"
    )
    HEADERS_DESC: ClassVar[str] = (
        "Optional request headers for one-time use, at most 50. Do not use for "
        "sensitive data like API keys; configure those via environment variables. "
        'Example: {"Accept": "application/xml"}'
    )
    HOST_DESC: ClassVar[str] = (
        "Optional origin overriding the configured base URL for this request only, "
        'e.g. "https://staging.example.com" or "http://localhost:3001/api/v1"'
    )
    OPTIONS_DESC: ClassVar[str] = (
        "Optional per-request options passed to the dynamic token module "
        "(AUTH_TOKEN_MODULE) as context.options. Free-form; its meaning is "
        "defined by the token module."
    )

    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"] = Field(
        description=METHOD_DESC
    )
    endpoint: str = Field(min_length=1, description=ENDPOINT_DESC)
    body: Any = Field(None, description=BODY_DESC)
    headers: dict[str, str] | None = Field(None, description=HEADERS_DESC)
    host: str | None = Field(None, description=HOST_DESC)
    options: dict[str, Any] | None = Field(None, description=OPTIONS_DESC)

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v: Any) -> Any:
        """Accept lower-case method names."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator("body", mode="before")
    @classmethod
    def parse_json_body(cls, v: Any) -> Any:
        """Decode bodies sent as JSON text; other strings are sent raw."""
        if isinstance(v, str) and v.strip()[:1] in ("{", "["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return v
        return v

    @field_validator("headers", mode="before")
    @classmethod
    def check_headers(cls, v: Any) -> Any:
        """Parse, bound and clean caller headers."""
        v = parse_json_object(v)
        if not isinstance(v, dict):
            return v
        if len(v) > MAX_CALLER_HEADERS:
            raise ValueError(
                f"At most {MAX_CALLER_HEADERS} headers are allowed, got {len(v)}"
            )

        cleaned: dict[str, str] = {}
        for name, value in v.items():
            if not isinstance(name, str) or not HEADER_NAME_PATTERN.match(name):
                raise ValueError(f"Invalid header name: {name!r}")
            if not isinstance(value, str):
                raise ValueError(
                    f"Header '{name}' must have a string value, "
                    f"got {type(value).__name__}"
                )
            cleaned[name] = strip_control_chars(value)
        return cleaned

    @field_validator("options", mode="before")
    @classmethod
    def parse_options(cls, v: Any) -> Any:
        return parse_json_object(v)

    def to_spec(self) -> RequestSpec:
        return RequestSpec(
            method=self.method,
            endpoint=self.endpoint,
            body=self.body,
            headers=self.headers or {},
            host=self.host,
            options=self.options or None,
        )


class RestRequestTool:
    """Runs one request through validation, admission, auth and transport."""

    def __init__(
        self,
        config: RestConfig,
        executor: RequestExecutor,
        auth: AuthResolver,
        gate: AdmissionGate,
        validator: EndpointValidator | None = None,
        normalizer: ResponseNormalizer | None = None,
    ):
        """Initialize the tool with its collaborators.

        Args:
            config: Runtime configuration
            executor: Sends requests over the shared HTTP client
            auth: Supplies credential headers
            gate: Rate and concurrency limits
            validator: URL policy (built from config when omitted)
            normalizer: Envelope builder (built from config when omitted)
        """
        self._config = config
        self._executor = executor
        self._auth = auth
        self._gate = gate
        self._validator = validator or EndpointValidator(config)
        self._normalizer = normalizer or ResponseNormalizer(
            config.sanitizer,
            config.response_size_limit,
            detailed_errors=config.detailed_errors,
        )

    def describe(self) -> str:
        """Tool description reflecting the active configuration."""
        config = self._config
        base = config.base_url or "not configured (pass a full URL or 'host')"
        ssl = "enabled" if config.verify_ssl else "disabled"

        custom = config.custom_headers
        if custom:
            names = ", ".join(
                f"{name}({value})" if name.lower() in SAFE_HEADERS else name
                for name, value in custom.items()
            )
            headers = f"Custom headers defined: {names}"
        else:
            headers = "No custom headers defined"

        return (
            "Test a REST API endpoint and get detailed response information. "
            f"Base URL: {base} | SSL Verification {ssl} | "
            f"Authentication: {self._auth.describe()} | {headers} | "
            "The tool normalizes endpoints, injects authentication headers, applies "
            "custom headers from HEADER_* environment variables and accepts any HTTP "
            f"status code as a valid response. Response bodies are limited to "
            f"{config.response_size_limit} bytes. The result reports the URL called, "
            "status, headers, body, timing and validation messages. Network errors "
            "are returned as an error payload with a code. See the rest-tester://config "
            "resource for all configuration options."
        )

    async def execute(
        self,
        method: Annotated[str, Field(description=RequestParams.METHOD_DESC)],
        endpoint: Annotated[str, Field(description=RequestParams.ENDPOINT_DESC)],
        body: Annotated[Any, Field(description=RequestParams.BODY_DESC)] = None,
        headers: Annotated[
            dict[str, Any] | str | None, Field(description=RequestParams.HEADERS_DESC)
        ] = None,
        host: Annotated[str | None, Field(description=RequestParams.HOST_DESC)] = None,
        options: Annotated[
            dict[str, Any] | str | None, Field(description=RequestParams.OPTIONS_DESC)
        ] = None,
    ) -> str:
        """Send one HTTP request and describe what came back.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, PATCH)
            endpoint: Path, or full URL when no base URL is configured
            body: Request body, sent only for POST, PUT and PATCH
            headers: Extra headers for this request only
            host: Origin overriding the base URL for this request only
            options: Per-request options for the dynamic token module

        Returns:
            Pretty-printed JSON envelope with request, response and validation

        Raises:
            InvalidParamsError: If arguments are malformed or violate URL policy
            ToolResultError: If the request was admitted but produced no response,
                or was not admitted at all
        """
        try:
            params = RequestParams(
                method=method,  # type: ignore[arg-type]  # Validator upper-cases
                endpoint=endpoint,
                body=body,
                headers=headers,  # type: ignore[arg-type]  # Validator decodes JSON text
                host=host,
                options=options,  # type: ignore[arg-type]  # Validator decodes JSON text
            )
        except ValidationError as e:
            raise InvalidParamsError(format_validation_errors(e, "test request")) from e

        spec = self._validator.validate(params.to_spec())
        caller_headers = spec.headers
        request = self._executor.build(
            method=spec.method,
            endpoint=spec.endpoint,
            host=spec.host,
            body=spec.body,
            custom_headers=self._config.custom_headers,
            caller_headers=caller_headers,
        )

        try:
            await self._gate.acquire()
        except AdmissionError as e:
            if self._config.security_logging:
                security_logger.warning(f"Request rejected by admission gate: {e}")
            raise ToolResultError(
                TOOL_NAME,
                self._normalizer.error(str(e), e.code, request, caller_headers),
            ) from e

        try:
            try:
                auth = await self._auth.resolve(spec.options)
            except TokenAcquisitionError as e:
                logger.error(f"Dynamic token acquisition failed: {e}")
                raise ToolResultError(
                    TOOL_NAME,
                    self._normalizer.error(str(e), e.code, request, caller_headers),
                ) from e

            request = self._executor.build(
                method=spec.method,
                endpoint=spec.endpoint,
                host=spec.host,
                body=spec.body,
                custom_headers=self._config.custom_headers,
                caller_headers=caller_headers,
                auth_headers=auth.headers,
            )

            try:
                result: TransportResult = await self._executor.execute(request)
            except TransportError as e:
                logger.warning(f"{request.method} {request.url} failed: {e.message}")
                raise ToolResultError(
                    TOOL_NAME,
                    self._normalizer.error(e.message, e.code, request, caller_headers),
                ) from e
        finally:
            self._gate.release()

        envelope = self._normalizer.normalize(result, request, auth.mode, caller_headers)
        return json.dumps(envelope, indent=2, ensure_ascii=False, default=str)
