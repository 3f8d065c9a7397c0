"""Command-line interface for the Polaris gateway.

Example:
    >>> # From terminal:
    >>> # polaris-rest --version
    >>> # polaris-rest serve --port 3000
    >>> # polaris-rest check-config
"""

import json
from typing import Optional

import typer
import uvicorn

from polaris_rest import __version__
from polaris_rest.config import GatewaySettings
from polaris_rest.errors import ConfigurationError
from polaris_rest.observability import configure_logging, get_logger, sanitize_for_logging
from polaris_rest.transport.server import create_app

app = typer.Typer(help="Polaris REST gateway CLI.")

logger = get_logger(__name__)


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show polaris-rest version and exit.",
    callback=_version_callback,
    is_eager=True,
)

# Module-level singleton options to avoid B008 linting errors
HOST_OPTION = typer.Option(None, "--host", help="Bind address (default: HOST or 0.0.0.0).")
PORT_OPTION = typer.Option(None, "--port", help="Bind port (default: PORT or 3000).")
LOG_LEVEL_OPTION = typer.Option(
    None, "--log-level", help="Log level (default: POLARIS_LOG_LEVEL or INFO)."
)


@app.callback()
def cli(version: bool = VERSION_OPTION) -> None:
    """Polaris REST gateway entrypoint."""


def _load_settings() -> GatewaySettings:
    try:
        return GatewaySettings.from_env()
    except ConfigurationError as e:
        logger.error("polaris.cli.invalid_configuration", problems=e.problems)
        typer.echo(f"Error: {e.message}", err=True)
        raise typer.Exit(1) from e


@app.command("serve")
def serve(
    host: Optional[str] = HOST_OPTION,
    port: Optional[int] = PORT_OPTION,
    log_level: Optional[str] = LOG_LEVEL_OPTION,
) -> None:
    """Run the HTTP gateway and its WebSocket session."""
    configure_logging(log_level=log_level, force=True)
    settings = _load_settings()
    bind_host = host or settings.host
    bind_port = port or settings.port

    app_ = create_app(settings)
    logger.info(
        "polaris.cli.serving",
        host=bind_host,
        port=bind_port,
        platform=settings.platform,
    )
    typer.echo(f"Polaris REST client running on port {bind_port}")
    uvicorn.run(app_, host=bind_host, port=bind_port, log_config=None)


@app.command("check-config")
def check_config() -> None:
    """Validate the environment and print the resolved settings."""
    settings = _load_settings()
    typer.echo(json.dumps(sanitize_for_logging(settings.describe()), indent=2))


def main() -> None:
    """Run the Polaris gateway CLI."""
    app()


if __name__ == "__main__":
    main()
