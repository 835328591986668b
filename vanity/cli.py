"""
Command line entry point: ``vanity-pages -c config.json``.
"""
from __future__ import annotations

import logging
from enum import Enum

import typer
import uvicorn

from .config import DEFAULT_CONFIG_PATH, ConfigError, load_config
from .main import _configure_logging, create_app

LISTEN_HOST = "0.0.0.0"
LISTEN_PORT = 8080


class LogLevel(str, Enum):
    """Level names understood by both uvicorn and ``logging``."""

    critical = "critical"
    error = "error"
    warning = "warning"
    info = "info"
    debug = "debug"

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.value.upper())


app = typer.Typer(
    name="vanity-pages",
    help="Serve a package listing site with go-import meta tags.",
    add_completion=False,
)


@app.command()
def serve(
    config: str = typer.Option(
        DEFAULT_CONFIG_PATH, "--config", "-c", help="config to use (json)"
    ),
    log_level: LogLevel = typer.Option(
        LogLevel.info, "--log-level", case_sensitive=False, help="Logging verbosity"
    ),
) -> None:
    """Load the config and serve the site on port 8080."""
    logger = _configure_logging(log_level.logging_level)
    try:
        site = load_config(config)
    except ConfigError as exc:
        logger.error("%s", exc)
        raise typer.Exit(1)
    uvicorn.run(
        create_app(site),
        host=LISTEN_HOST,
        port=LISTEN_PORT,
        log_level=log_level.value,
        timeout_keep_alive=30,
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
