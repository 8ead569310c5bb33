"""Logging setup for command line use."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: str = "INFO", console: Console | None = None) -> None:
    """
    Route log records through Rich.

    Args:
        level: Logging level name.
        console: Console to write to; stderr if not provided.
    """
    handler = RichHandler(
        console=console if console is not None else Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
