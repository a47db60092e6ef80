"""Logging utilities for FastOAuth."""

import logging
from typing import Literal

from rich.console import Console
from rich.logging import RichHandler


def get_logger(name: str) -> logging.Logger:
    """Get a logger nested under FastOAuth namespace.

    Args:
        name: the name of the logger, which will be prefixed with 'FastOAuth.'

    Returns:
        a configured logger instance
    """
    return logging.getLogger(f"FastOAuth.{name}")


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | int = "INFO",
    logger: logging.Logger | None = None,
    enable_rich_tracebacks: bool = True,
) -> None:
    """
    Configure logging for FastOAuth.

    Args:
        logger: the logger to configure
        level: the log level to use
        enable_rich_tracebacks: whether tracebacks are rendered by rich
    """
    if logger is None:
        logger = logging.getLogger("FastOAuth")

    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=enable_rich_tracebacks,
    )
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    logger.setLevel(level)

    # Remove any existing handlers to avoid duplicates on reconfiguration
    for hdlr in logger.handlers[:]:
        logger.removeHandler(hdlr)

    logger.addHandler(handler)


def redact(value: str | None, keep: int = 8) -> str:
    """Shorten a credential so it can appear in debug logs."""
    if not value:
        return ""
    return value[:keep] + "..." if len(value) > keep else "***"
