"""Logging setup.

Modules log through ``logging.getLogger(__name__)``; applications call
`configure_logging` once at startup.

Example:
    >>> from rssdeck.core.logging import configure_logging
    >>> configure_logging("WARNING", "plain")
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from rssdeck.core.exceptions import ConfigurationError

LOG_FORMATS = ("console", "plain")


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure the ``rssdeck`` logger.

    Args:
        level: Logging level name (DEBUG, INFO, ...).
        fmt: ``console`` for rich output on stderr, ``plain`` for a
            timestamped single-line format.

    Raises:
        ConfigurationError: If level or format is unknown.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level: {level}")
    if fmt not in LOG_FORMATS:
        raise ConfigurationError(f"Unknown log format: {fmt}")

    handler: logging.Handler
    if fmt == "console":
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    logger = logging.getLogger("rssdeck")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
