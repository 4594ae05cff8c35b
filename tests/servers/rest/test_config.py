"""Unit tests for the REST tester runtime configuration."""

import pytest

from rest_tester.core.config.settings import ConfigurationError, Settings
from rest_tester.servers.rest.config import RestConfig
from rest_tester.servers.rest.models import AuthMode
from rest_tester.servers.rest.sanitizer import REDACTED


class TestRestConfig:
    """Test RestConfig normalization and derived values."""

    @pytest.mark.unit
    def test_defaults(self):
        # Act
        config = RestConfig(environ={})

        # Assert
        assert config.base_url is None
        assert config.response_size_limit == 10000
        assert config.verify_ssl is True
        assert config.timeout == 30.0
        assert config.allow_private_networks is False
        assert config.auth_mode is AuthMode.NONE

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http://localhost:3000/", "http://localhost:3000"),
            ("https://api.example.com/v1//", "https://api.example.com/v1"),
            ("  ", None),
        ],
    )
    def test_base_url_trailing_slashes_are_stripped(self, raw, expected):
        # Act
        config = RestConfig(base_url=raw, environ={})

        # Assert
        assert config.base_url == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("limit", [0, -1, 52428801])
    def test_out_of_range_size_limit_is_rejected(self, limit):
        # Act & Assert
        with pytest.raises(ConfigurationError, match="response_size_limit"):
            RestConfig(response_size_limit=limit, environ={})

    @pytest.mark.unit
    def test_custom_headers_are_read_once(self):
        # Arrange
        environ = {"HEADER_X-Tenant": "acme"}
        config = RestConfig(environ=environ)

        # Act
        first = config.custom_headers
        environ["HEADER_X-Late"] = "ignored"
        second = config.custom_headers

        # Assert
        assert first == {"X-Tenant": "acme"}
        assert second is first

    @pytest.mark.unit
    def test_sanitizer_knows_configured_secrets(self):
        # Arrange
        config = RestConfig(
            auth_apikey_header_name="X-Service-Key",
            auth_apikey_value="k",
            environ={"HEADER_X-Tenant": "acme", "HEADER_Accept": "text/plain"},
        )

        # Act
        result = config.sanitizer.sanitize(
            {"X-Service-Key": "k", "X-Tenant": "acme", "Accept": "text/plain"}
        )

        # Assert
        assert result == {
            "X-Service-Key": REDACTED,
            "X-Tenant": REDACTED,
            "Accept": "text/plain",
        }


class TestAuthModePriority:
    """Exactly one auth mode is active, chosen by fixed priority."""

    @pytest.mark.unit
    def test_basic_wins_over_everything(self):
        # Arrange
        config = RestConfig(
            auth_basic_username="admin",
            auth_basic_password="secret",
            auth_bearer="token",
            auth_apikey_header_name="X-Key",
            auth_apikey_value="k",
            auth_token_module="tokens.py",
            environ={},
        )

        # Act & Assert
        assert config.auth_mode is AuthMode.BASIC

    @pytest.mark.unit
    def test_incomplete_basic_falls_through_to_bearer(self):
        # Arrange
        config = RestConfig(auth_basic_username="admin", auth_bearer="token", environ={})

        # Act & Assert
        assert config.auth_mode is AuthMode.BEARER

    @pytest.mark.unit
    def test_apikey_needs_name_and_value(self):
        # Arrange
        incomplete = RestConfig(auth_apikey_header_name="X-Key", environ={})
        complete = RestConfig(
            auth_apikey_header_name="X-Key", auth_apikey_value="k", environ={}
        )

        # Act & Assert
        assert incomplete.auth_mode is AuthMode.NONE
        assert complete.auth_mode is AuthMode.APIKEY

    @pytest.mark.unit
    def test_token_module_is_last_resort(self):
        # Arrange
        config = RestConfig(auth_token_module="tokens.py", environ={})

        # Act & Assert
        assert config.auth_mode is AuthMode.DYNAMIC


class TestFromSettings:
    """Test building the runtime configuration from loaded settings."""

    @pytest.mark.unit
    def test_values_are_carried_over(self, clean_env):
        # Arrange
        clean_env.setenv("REST_BASE_URL", "http://localhost:3000/")
        clean_env.setenv("REST_RESPONSE_SIZE_LIMIT", "2048")
        clean_env.setenv("REST_ENABLE_SSL_VERIFY", "false")
        clean_env.setenv("AUTH_BEARER", "token")
        clean_env.setenv("APP_ENV", "development")
        clean_env.setenv("MAX_CONCURRENT_REQUESTS", "3")
        settings = Settings()

        # Act
        config = RestConfig.from_settings(settings, environ={"HEADER_X-A": "1"})

        # Assert
        assert config.base_url == "http://localhost:3000"
        assert config.response_size_limit == 2048
        assert config.verify_ssl is False
        assert config.auth_mode is AuthMode.BEARER
        assert config.allow_private_networks is True
        assert config.detailed_errors is True
        assert config.max_concurrent_requests == 3
        assert config.custom_headers == {"X-A": "1"}

    @pytest.mark.unit
    def test_production_disallows_private_networks(self, clean_env):
        # Arrange
        settings = Settings()

        # Act
        config = RestConfig.from_settings(settings, environ={})

        # Assert
        assert config.allow_private_networks is False
        assert config.detailed_errors is False
