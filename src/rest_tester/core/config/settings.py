"""
Application configuration management.

Handles loading configuration from environment variables and config files.
"""

from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

# Hard ceiling for REST_RESPONSE_SIZE_LIMIT (50MB)
MAX_RESPONSE_SIZE_LIMIT = 52428800


class ConfigurationError(ValueError):
    """Startup configuration is invalid; the server must not start."""


class RestApiSettings(BaseSettings):
    """Target API and outbound request configuration."""

    base_url: str | None = Field(
        None, alias="REST_BASE_URL", description="Base origin for relative endpoints"
    )
    response_size_limit: int = Field(default=10000, alias="REST_RESPONSE_SIZE_LIMIT")
    enable_ssl_verify: bool = Field(default=True, alias="REST_ENABLE_SSL_VERIFY")
    request_timeout: float = Field(default=30.0, alias="REST_REQUEST_TIMEOUT")
    max_redirects: int = Field(default=5, alias="REST_MAX_REDIRECTS")
    max_endpoint_length: int = Field(default=2048, alias="REST_MAX_ENDPOINT_LENGTH")

    @field_validator("base_url", mode="before")
    @classmethod
    def blank_base_url_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("response_size_limit")
    @classmethod
    def validate_response_size_limit(cls, v: int) -> int:
        if v <= 0 or v > MAX_RESPONSE_SIZE_LIMIT:
            raise ValueError(
                f"REST_RESPONSE_SIZE_LIMIT must be between 1 and {MAX_RESPONSE_SIZE_LIMIT}"
            )
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("REST_REQUEST_TIMEOUT must be > 0")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class AuthSettings(BaseSettings):
    """Credential sets; the first fully configured one wins."""

    basic_username: str | None = Field(None, alias="AUTH_BASIC_USERNAME")
    basic_password: str | None = Field(None, alias="AUTH_BASIC_PASSWORD")
    bearer: str | None = Field(None, alias="AUTH_BEARER")
    apikey_header_name: str | None = Field(None, alias="AUTH_APIKEY_HEADER_NAME")
    apikey_value: str | None = Field(None, alias="AUTH_APIKEY_VALUE")
    token_module: str | None = Field(None, alias="AUTH_TOKEN_MODULE")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class SecuritySettings(BaseSettings):
    """Admission limits, disclosure and target policy."""

    max_concurrent_requests: int = Field(default=10, alias="MAX_CONCURRENT_REQUESTS")
    rate_limit_max_requests: int = Field(default=100, alias="RATE_LIMIT_MAX_REQUESTS")
    rate_limit_window_seconds: float = Field(
        default=60.0, alias="RATE_LIMIT_WINDOW_SECONDS"
    )
    max_custom_headers: int = Field(default=50, alias="MAX_CUSTOM_HEADERS")

    # None means "follow APP_ENV": allowed/detailed only in development
    allow_private_networks: bool | None = Field(None, alias="ALLOW_PRIVATE_NETWORKS")
    detailed_errors: bool | None = Field(None, alias="DETAILED_ERRORS")
    security_logging: bool = Field(default=False, alias="ENABLE_SECURITY_LOGGING")

    @field_validator(
        "max_concurrent_requests",
        "rate_limit_max_requests",
        "max_custom_headers",
        "rate_limit_window_seconds",
    )
    @classmethod
    def validate_positive(cls, v: Any) -> Any:
        if v <= 0:
            raise ValueError("must be > 0")
        return v

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class ApplicationSettings(BaseSettings):
    """Application configuration."""

    app_env: str = Field(default="production", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("app_env")
    @classmethod
    def validate_environment(cls, v: Any) -> str:
        allowed = {"development", "testing", "staging", "production"}
        v_str = str(v).lower()
        if v_str not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v_str

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = str(v).upper()
        if v not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return str(v)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class McpServerSettings(BaseSettings):
    """MCP server surface configuration."""

    server_name: str = Field(default="rest-tester", alias="MCP_SERVER_NAME")

    # stdio is what desktop agents spawn; http/sse for remote use
    transport: str = Field(default="stdio", alias="MCP_TRANSPORT")
    host: str = Field(default="127.0.0.1", alias="MCP_HOST")
    port: int = Field(default=8000, alias="MCP_PORT")
    path: str = Field(default="/mcp", alias="MCP_PATH")

    @field_validator("transport")
    @classmethod
    def validate_transport(cls, v: Any) -> str:
        allowed = {"http", "stdio", "sse"}
        if str(v) not in allowed:
            raise ValueError(f"MCP_TRANSPORT must be one of {allowed}")
        return str(v)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings class that combines all configuration sections."""

    rest_api: RestApiSettings = Field(default_factory=RestApiSettings)  # type: ignore[arg-type]
    auth: AuthSettings = Field(default_factory=AuthSettings)  # type: ignore[arg-type]
    security: SecuritySettings = Field(default_factory=SecuritySettings)  # type: ignore[arg-type]
    application: ApplicationSettings = Field(default_factory=ApplicationSettings)
    mcp_server: McpServerSettings = Field(default_factory=McpServerSettings)

    @property
    def is_development(self) -> bool:
        return self.application.app_env == "development"

    @property
    def allow_private_networks(self) -> bool:
        if self.security.allow_private_networks is not None:
            return self.security.allow_private_networks
        return self.is_development

    @property
    def detailed_errors(self) -> bool:
        if self.security.detailed_errors is not None:
            return self.security.detailed_errors
        return self.is_development

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_settings() -> Settings:
    """
    Load settings from environment variables and .env file.

    Returns:
        Settings: Configured settings instance

    Raises:
        ConfigurationError: If any setting is missing a valid value
    """
    try:
        return Settings()
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get cached settings instance (singleton pattern).

    Returns:
        Settings: Cached settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
