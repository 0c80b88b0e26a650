"""CLI entry point — consolewarden [PORT]."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from consolewarden import __version__
from consolewarden.config import WardenConfig
from consolewarden.errors import ConfigError
from consolewarden.shutdown.coordinator import get_coordinator
from consolewarden.warden import Warden


@click.command()
@click.version_option(version=__version__, prog_name="consolewarden")
@click.argument("port", required=False)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to a YAML config file.",
)
@click.option(
    "--executable",
    "-e",
    type=click.Path(dir_okay=False),
    help="Server executable (default: platform-specific name in the current directory).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def main(
    port: str | None,
    config_path: str | None,
    executable: str | None,
    verbose: bool,
) -> None:
    """consolewarden — run a dedicated server and relay its console.

    PORT is the port the server listens on; you are prompted when omitted.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        config = WardenConfig.load(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if executable:
        config.executable = Path(executable)

    Warden(config, coordinator=get_coordinator()).run(port)
