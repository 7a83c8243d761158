"""Command line entry point for the Metrics Browser."""

import platform
import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import click
import uvicorn
from dotenv import load_dotenv
from requests.structures import CaseInsensitiveDict

from metrics_browser import __version__
from metrics_browser.api import create_app
from metrics_browser.client import MetricsStoreClient
from metrics_browser.config import ServerConfig, CONNECTION_STRING_ENV
from metrics_browser.errors import (
    MetricsBrowserError,
    ErrorHandler,
    ErrorContext,
    setup_logging,
    get_logger,
    log_error,
    log_operation,
)
from metrics_browser.models import SYSTEM_FIELDS


# One-line summaries printed by ``tail``, keyed by lower-cased table name.
ROW_SUMMARIES: Dict[str, Callable[[CaseInsensitiveDict], str]] = {
    "cpuusage": lambda row: f"CPU={row.get('CpuPercent')}",
    "memoryusage": lambda row: f"Mem={row.get('MemUsedMb')}/{row.get('MemTotalMb')}",
    "pingtime": lambda row: f"Ping={row.get('PingMs')}",
}


def summarize_row(table_name: str, row: CaseInsensitiveDict) -> str:
    """Format a row as ``RowKey | summary`` for terminal output."""
    summary = ROW_SUMMARIES.get(table_name.lower())
    if summary is not None:
        text = summary(row)
    else:
        system = {name.lower() for name in SYSTEM_FIELDS}
        text = " ".join(f"{key}={value}" for key, value in row.items() if key.lower() not in system)
    return f"{row.get('RowKey')} | {text}"


@click.group(invoke_without_command=True)
@click.option(
    "--config-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration file (.env format)",
)
@click.option(
    "--validate-config",
    is_flag=True,
    help="Validate configuration and exit",
)
@click.option(
    "--status",
    is_flag=True,
    help="Show configuration status and exit",
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version information and exit",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_file: Optional[str],
    validate_config: bool,
    status: bool,
    version: bool,
) -> None:
    """Browse CPU, memory and ping metrics stored in Azure Table Storage."""
    if version:
        _show_version()
        ctx.exit()

    if config_file:
        _load_config_file(config_file)

    try:
        config = ServerConfig.from_env()
    except MetricsBrowserError as e:
        raise click.ClickException(e.get_user_message())
    ctx.obj = config

    if validate_config:
        _validate_configuration_mode(config)
        ctx.exit()

    if status:
        _show_status_mode(config)
        ctx.exit()

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command()
@click.option("--host", envvar="METRICS_HOST", help="Interface to bind")
@click.option("--port", envvar="METRICS_PORT", type=int, help="Port to listen on")
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option(
    "--log-file",
    envvar="LOG_FILE",
    type=click.Path(dir_okay=False),
    help="Path to log file (optional)",
)
@click.option(
    "--structured-logging/--no-structured-logging",
    envvar="STRUCTURED_LOGGING",
    default=None,
    help="Enable structured JSON logging",
)
@click.pass_obj
def serve(
    config: ServerConfig,
    host: Optional[str] = None,
    port: Optional[int] = None,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    structured_logging: Optional[bool] = None,
) -> None:
    """Run the HTTP API and browser page."""
    if host:
        config.host = host
    if port is not None:
        config.port = port
    if log_level:
        config.log_level = log_level.upper()
    if log_file:
        config.log_file = log_file
    if structured_logging is not None:
        config.structured_logging = structured_logging

    try:
        config.validate()
        setup_logging(
            level=config.log_level,
            log_file=config.log_file,
            structured=config.structured_logging,
        )
        logger = get_logger(__name__)
        log_operation(
            logger,
            "server_startup_initiated",
            host=config.host,
            port=config.port,
            store_configured=config.is_configured,
            log_level=config.log_level,
        )
        app = create_app(config)
    except MetricsBrowserError as e:
        _fail("Error starting server", e)

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_config=None,
        log_level=config.log_level.lower(),
    )


@main.command()
@click.argument("table")
@click.option("--machine", help="Partition key to read; defaults to this host's name")
@click.option("--count", default=10, show_default=True, type=click.IntRange(min=1), help="Rows to print")
@click.pass_obj
def tail(config: ServerConfig, table: str, machine: Optional[str], count: int) -> None:
    """Print the first rows stored for a machine in TABLE."""
    machine = machine or platform.node()

    try:
        store = MetricsStoreClient.from_connection_string(config.require_connection_string())
        click.echo(f"Fetching {count} rows for machine {machine}...")
        try:
            rows = store.tail_rows(table, machine, count=count)
        finally:
            store.close()
    except MetricsBrowserError as e:
        _fail("Query failed", e)

    for row in rows:
        click.echo(summarize_row(table, row))


def _fail(prefix: str, error: Exception) -> None:
    logger = get_logger(__name__)
    context = ErrorContext(operation="cli")
    store_error = ErrorHandler.handle_store_error(error, operation="cli", context=context)
    log_error(logger, store_error, operation="cli")

    click.echo(f"{prefix}: {store_error.get_user_message()}", err=True)
    click.echo(f"Technical details: {store_error.get_technical_details()}", err=True)
    sys.exit(1)


def _load_config_file(config_file: str) -> None:
    """Load environment variables from a .env file, overriding the process."""
    load_dotenv(Path(config_file), override=True)
    click.echo(f"Loaded configuration from: {config_file}", err=True)


def _validate_configuration_mode(config: ServerConfig) -> None:
    """Validate configuration and exit."""
    try:
        config.validate()
    except MetricsBrowserError as e:
        click.echo(f"✗ Configuration validation failed: {e.get_user_message()}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration is valid")
    click.echo("\nConfiguration Summary:")
    click.echo(f"  Store: {'Configured' if config.is_configured else 'Not configured'}")
    click.echo(f"  Listen: {config.host}:{config.port}")
    click.echo(f"  Default Page Size: {config.default_page_size}")
    click.echo(f"  Default Sample Size: {config.default_sample_size}")
    click.echo(f"  Log Level: {config.log_level}")
    if config.log_file:
        click.echo(f"  Log File: {config.log_file}")


def _show_version() -> None:
    click.echo(f"Metrics Browser v{__version__}")
    click.echo("Read-only browser for metrics in Azure Table Storage")


def _show_status_mode(config: ServerConfig) -> None:
    """Show configuration status."""
    click.echo("Metrics Browser Status")
    click.echo("=" * 40)

    click.echo("\nConfiguration:")
    if config.is_configured:
        click.echo(f"  {CONNECTION_STRING_ENV}: set")
    else:
        click.echo(f"  {CONNECTION_STRING_ENV}: Not set")
    click.echo(f"  Listen: {config.host}:{config.port}")
    click.echo(f"  Log Level: {config.log_level}")
    click.echo(f"  Structured Logging: {'Enabled' if config.structured_logging else 'Disabled'}")

    click.echo("\nEnvironment:")
    click.echo(f"  Python Version: {sys.version.split()[0]}")
    click.echo(f"  Platform: {sys.platform}")

    click.echo("\nValidation:")
    try:
        config.validate()
        click.echo("  ✓ Configuration is valid")
    except MetricsBrowserError as e:
        click.echo(f"  ✗ Configuration error: {e.get_user_message()}")


if __name__ == "__main__":
    main()
