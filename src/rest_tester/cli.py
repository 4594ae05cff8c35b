"""Command-line interface for rest-tester."""

import dataclasses
import logging
import os
import sys

import click

from rest_tester import __version__
from rest_tester.api.mcp.server import FastMcpServerAdapter
from rest_tester.core.config.settings import ConfigurationError, get_settings
from rest_tester.servers.docs import DocsResourceProvider
from rest_tester.servers.rest.config import RestConfig
from rest_tester.servers.rest.providers import RestToolProvider

TRANSPORTS = ("stdio", "http", "sse")


def configure_logging(level: str) -> None:
    """Send logs to stderr so stdio transport keeps stdout for the protocol."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


def parse_header_options(header: tuple[str, ...]) -> dict[str, str]:
    """Turn ``key=value`` options into HEADER_ variables."""
    extra: dict[str, str] = {}
    for header_item in header:
        if "=" in header_item:
            key, value = header_item.split("=", 1)
            extra[f"HEADER_{key.strip()}"] = value.strip()
        else:
            click.echo(
                f"Warning: Ignoring invalid header format '{header_item}'. Use key=value format.",
                err=True,
            )
    return extra


@click.group()
@click.version_option(version=__version__, prog_name="rest-tester")
def cli() -> None:
    """rest-tester - MCP tool for testing REST APIs"""
    pass


@cli.command()
def info() -> None:
    """Show project information."""
    click.echo(f"rest-tester v{__version__}")
    click.echo("rest-tester - MCP tool for testing REST APIs")


@cli.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--base-url", "-u", help="Base URL for endpoints (overrides REST_BASE_URL)")
@click.option(
    "--verify-ssl/--no-verify-ssl",
    default=None,
    help="Verify SSL certificates (overrides REST_ENABLE_SSL_VERIFY)",
)
@click.option(
    "--response-size-limit",
    type=int,
    help="Maximum response body bytes (overrides REST_RESPONSE_SIZE_LIMIT)",
)
@click.option(
    "--transport",
    "-t",
    type=click.Choice(TRANSPORTS),
    help="Transport type: stdio, http, sse (overrides MCP_TRANSPORT)",
)
@click.option("--host", help="Server host (overrides MCP_HOST)")
@click.option("--port", type=int, help="Server port (overrides MCP_PORT)")
@click.option("--path", help="Server path for HTTP transport (overrides MCP_PATH)")
@click.option(
    "--header",
    "-H",
    multiple=True,
    help="Additional header sent with every request (format: key=value)",
)
def serve(
    base_url: str | None,
    verify_ssl: bool | None,
    response_size_limit: int | None,
    transport: str | None,
    host: str | None,
    port: int | None,
    path: str | None,
    header: tuple[str, ...],
) -> None:
    """Start the MCP server exposing the test_request tool.

    Examples:
        rest-tester serve --base-url http://localhost:3000
        rest-tester serve -u https://api.example.com --no-verify-ssl
        rest-tester serve -H "X-API-Version=2" -H "Accept=application/json"
        rest-tester serve --transport http --port 8000
    """
    try:
        settings = get_settings()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(settings.application.log_level)
    server_settings = settings.mcp_server

    # Override settings with CLI options if provided
    actual_transport = transport if transport is not None else server_settings.transport
    actual_host = host if host is not None else server_settings.host
    actual_port = port if port is not None else server_settings.port
    actual_path = path if path is not None else server_settings.path

    environ = {**os.environ, **parse_header_options(header)}

    try:
        config = RestConfig.from_settings(settings, environ=environ)
        overrides: dict[str, object] = {}
        if base_url is not None:
            overrides["base_url"] = base_url
        if verify_ssl is not None:
            overrides["verify_ssl"] = verify_ssl
        if response_size_limit is not None:
            overrides["response_size_limit"] = response_size_limit
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    tool_provider = RestToolProvider(config)
    docs_provider = DocsResourceProvider()

    server = FastMcpServerAdapter(server_settings.server_name)
    server.add_tool_provider(tool_provider)
    server.add_resource_provider(docs_provider)

    click.echo(f"🚀 Starting rest-tester v{__version__}", err=True)
    click.echo(f"   Base URL: {config.base_url or 'not configured'}", err=True)
    click.echo(f"   SSL Verification: {'enabled' if config.verify_ssl else 'disabled'}", err=True)
    click.echo(f"   Authentication: {tool_provider.auth.describe()}", err=True)
    click.echo(f"   Response Size Limit: {config.response_size_limit} bytes", err=True)
    if config.custom_headers:
        click.echo(f"   Custom Headers: {', '.join(config.custom_headers)}", err=True)
    click.echo(f"   Environment: {settings.application.app_env}", err=True)
    click.echo(f"   Transport: {actual_transport}", err=True)
    for resource in docs_provider.get_resources():
        click.echo(f"   • {resource['uri']} - {resource['name']}", err=True)

    try:
        server.start(
            transport=actual_transport,
            host=actual_host,
            port=actual_port,
            path=actual_path,
        )
    except KeyboardInterrupt:
        click.echo("\n👋 Shutting down", err=True)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
