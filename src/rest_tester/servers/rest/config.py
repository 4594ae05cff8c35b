"""REST tester runtime configuration."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import cached_property
from typing import TYPE_CHECKING

from rest_tester.core.config.settings import (
    MAX_RESPONSE_SIZE_LIMIT,
    ConfigurationError,
)

from .custom_headers import DEFAULT_MAX_CUSTOM_HEADERS, collect_custom_headers
from .models import AuthMode
from .sanitizer import HeaderSanitizer

if TYPE_CHECKING:
    from rest_tester.core.config.settings import Settings


@dataclass
class RestConfig:
    """Configuration for the test_request tool.

    Built once at startup and shared by every component. The custom header
    set and the header sanitizer are derived lazily and then kept for the
    life of the object.
    """

    base_url: str | None = None
    response_size_limit: int = 10000
    verify_ssl: bool = True
    timeout: float = 30.0
    max_redirects: int = 5
    max_endpoint_length: int = 2048

    auth_basic_username: str | None = None
    auth_basic_password: str | None = None
    auth_bearer: str | None = None
    auth_apikey_header_name: str | None = None
    auth_apikey_value: str | None = None
    auth_token_module: str | None = None

    allow_private_networks: bool = False
    detailed_errors: bool = False
    security_logging: bool = False

    max_concurrent_requests: int = 10
    rate_limit_max_requests: int = 100
    rate_limit_window: float = 60.0
    max_custom_headers: int = DEFAULT_MAX_CUSTOM_HEADERS

    # Source of HEADER_* variables; defaults to a snapshot of os.environ
    environ: Mapping[str, str] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Normalize the base URL and snapshot the environment."""
        if self.base_url is not None:
            self.base_url = self.base_url.strip().rstrip("/") or None

        if (
            self.response_size_limit <= 0
            or self.response_size_limit > MAX_RESPONSE_SIZE_LIMIT
        ):
            raise ConfigurationError(
                f"response_size_limit must be between 1 and {MAX_RESPONSE_SIZE_LIMIT}"
            )

        if self.environ is None:
            self.environ = dict(os.environ)

    @classmethod
    def from_settings(
        cls, settings: "Settings", environ: Mapping[str, str] | None = None
    ) -> "RestConfig":
        """Create the runtime configuration from loaded settings."""
        rest = settings.rest_api
        auth = settings.auth
        security = settings.security
        return cls(
            base_url=rest.base_url,
            response_size_limit=rest.response_size_limit,
            verify_ssl=rest.enable_ssl_verify,
            timeout=rest.request_timeout,
            max_redirects=rest.max_redirects,
            max_endpoint_length=rest.max_endpoint_length,
            auth_basic_username=auth.basic_username,
            auth_basic_password=auth.basic_password,
            auth_bearer=auth.bearer,
            auth_apikey_header_name=auth.apikey_header_name,
            auth_apikey_value=auth.apikey_value,
            auth_token_module=auth.token_module,
            allow_private_networks=settings.allow_private_networks,
            detailed_errors=settings.detailed_errors,
            security_logging=security.security_logging,
            max_concurrent_requests=security.max_concurrent_requests,
            rate_limit_max_requests=security.rate_limit_max_requests,
            rate_limit_window=security.rate_limit_window_seconds,
            max_custom_headers=security.max_custom_headers,
            environ=environ,
        )

    @property
    def auth_mode(self) -> AuthMode:
        """The single auth mode in effect, by fixed priority."""
        if self.auth_basic_username and self.auth_basic_password:
            return AuthMode.BASIC
        if self.auth_bearer:
            return AuthMode.BEARER
        if self.auth_apikey_header_name and self.auth_apikey_value:
            return AuthMode.APIKEY
        if self.auth_token_module:
            return AuthMode.DYNAMIC
        return AuthMode.NONE

    @cached_property
    def custom_headers(self) -> dict[str, str]:
        """Custom headers from HEADER_* variables, read once."""
        return collect_custom_headers(self.environ or {}, self.max_custom_headers)

    @cached_property
    def sanitizer(self) -> HeaderSanitizer:
        """Header sanitizer bound to this configuration's secrets."""
        return HeaderSanitizer(
            apikey_header_name=self.auth_apikey_header_name,
            custom_header_names=lambda: self.custom_headers.keys(),
        )
