"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from rest_tester import __version__
from rest_tester.api.mcp.server import FastMcpServerAdapter
from rest_tester.cli import cli, parse_header_options
from rest_tester.core.config import settings as settings_module


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def started(clean_env):
    """Record server starts instead of running a transport."""
    calls: list[tuple[str, dict]] = []

    def fake_start(self, transport="stdio", **kwargs):
        calls.append((transport, kwargs))

    clean_env.setattr(settings_module, "_settings", None)
    clean_env.setattr(FastMcpServerAdapter, "start", fake_start)
    return calls


class TestInfoCommands:
    """Test informational commands."""

    @pytest.mark.unit
    def test_info(self, runner):
        # Act
        result = runner.invoke(cli, ["info"])

        # Assert
        assert result.exit_code == 0
        assert f"rest-tester v{__version__}" in result.output

    @pytest.mark.unit
    def test_version(self, runner):
        # Act
        result = runner.invoke(cli, ["--version"])

        # Assert
        assert result.exit_code == 0
        assert __version__ in result.output


class TestParseHeaderOptions:
    """Test -H key=value parsing."""

    @pytest.mark.unit
    def test_valid_and_invalid_items(self, capsys):
        # Act
        extra = parse_header_options(("X-Tenant = acme", "Accept=a=b", "bogus"))

        # Assert
        assert extra == {"HEADER_X-Tenant": "acme", "HEADER_Accept": "a=b"}
        assert "Ignoring invalid header format 'bogus'" in capsys.readouterr().err


class TestServeCommand:
    """Test serve wiring without starting a transport."""

    @pytest.mark.unit
    def test_serve_with_overrides(self, runner, started):
        # Act
        result = runner.invoke(
            cli,
            [
                "serve",
                "-u",
                "https://api.example.com/",
                "--no-verify-ssl",
                "-t",
                "http",
                "--port",
                "9000",
                "-H",
                "X-Tenant=acme",
            ],
        )

        # Assert
        assert result.exit_code == 0, result.output
        assert started == [
            ("http", {"host": "127.0.0.1", "port": 9000, "path": "/mcp"})
        ]
        assert "Base URL: https://api.example.com" in result.output
        assert "SSL Verification: disabled" in result.output
        assert "X-Tenant" in result.output
        assert "rest-tester://config" in result.output

    @pytest.mark.unit
    def test_serve_defaults_to_stdio(self, runner, started):
        # Act
        result = runner.invoke(cli, ["serve"])

        # Assert
        assert result.exit_code == 0, result.output
        assert started[0][0] == "stdio"
        assert "Base URL: not configured" in result.output

    @pytest.mark.unit
    def test_invalid_environment_stops_startup(self, runner, started, clean_env):
        # Arrange
        clean_env.setenv("REST_RESPONSE_SIZE_LIMIT", "0")

        # Act
        result = runner.invoke(cli, ["serve"])

        # Assert
        assert result.exit_code != 0
        assert "Invalid configuration" in result.output
        assert started == []

    @pytest.mark.unit
    def test_invalid_size_limit_option_stops_startup(self, runner, started):
        # Act
        result = runner.invoke(cli, ["serve", "--response-size-limit", "0"])

        # Assert
        assert result.exit_code != 0
        assert "response_size_limit" in result.output
        assert started == []

    @pytest.mark.unit
    def test_interrupt_shuts_down_cleanly(self, runner, started, clean_env):
        # Arrange
        def interrupted(self, transport="stdio", **kwargs):
            raise KeyboardInterrupt

        clean_env.setattr(FastMcpServerAdapter, "start", interrupted)

        # Act
        result = runner.invoke(cli, ["serve"])

        # Assert
        assert result.exit_code == 0
        assert "Shutting down" in result.output
