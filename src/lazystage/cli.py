"""CLI interface for Lazystage."""

import logging
import sys
from pathlib import Path

import click

from lazystage.config import Config


@click.command()
@click.argument(
    "content_root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover lazystage.toml)",
)
@click.option(
    "--host",
    default=None,
    help="Host to bind to (overrides config)",
)
@click.option(
    "--port",
    "-p",
    type=int,
    default=None,
    help="Port to bind to (overrides config)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output (log cache hits and tool invocations)",
)
def cli(
    content_root: Path,
    config_path: Path | None,
    host: str | None,
    port: int | None,
    verbose: bool,
) -> None:
    """Serve CONTENT_ROOT over HTTP, deriving thumbnails and rendered pages on demand."""
    from lazystage.server import run_server

    try:
        config = Config.load(content_root, config_path).with_overrides(host=host, port=port)
    except (OSError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    click.echo(f"Server running on http://{config.server.host}:{config.server.port}/*")
    click.echo(f"Content root: {config.content_root}")
    click.echo(f"Cache area: {config.cache_root}")
    if config.config_path:
        click.echo(f"Config: {config.config_path}")

    run_server(config)


if __name__ == "__main__":
    cli()
