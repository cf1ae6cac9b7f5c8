"""Logging helpers.

Modules log through ``logging.getLogger(__name__)``. This module only adds a
TRACE level below DEBUG, used for full command lines and captured program
output, and the CLI's handler setup.
"""

import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5

logging.addLevelName(TRACE, "TRACE")


def trace(logger: logging.Logger, message: str, **fields: Any) -> None:
    """Log at TRACE level, appending ``key=value`` fields to the message."""
    if not logger.isEnabledFor(TRACE):
        return
    if fields:
        rendered = " ".join(f"{key}={value!r}" for key, value in fields.items())
        message = f"{message} {rendered}"
    logger.log(TRACE, message)


def configure_logging(level: int = logging.WARNING) -> None:
    """Route tfexternal logs to stderr through rich."""
    logger = logging.getLogger("tfexternal")
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
        logger.addHandler(handler)
