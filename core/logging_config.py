"""Logging configuration for certificate renewal commands."""

from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


_CLI_HANDLER_ATTR = "_is_pki_cli_log_handler"
_ROOT_LOGGER_NAME = "certificates"


def _create_cli_handler(console: Optional[Console] = None) -> logging.Handler:
    """Create a RichHandler that writes diagnostics to stderr."""

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _CLI_HANDLER_ATTR, True)
    return handler


def setup_cli_logging(level: str | int = logging.INFO, console: Optional[Console] = None) -> logging.Logger:
    """Attach the console handler to the ``certificates`` logger if missing."""

    logger = logging.getLogger(_ROOT_LOGGER_NAME)

    for handler in logger.handlers:
        if getattr(handler, _CLI_HANDLER_ATTR, False):
            break
    else:
        logger.addHandler(_create_cli_handler(console))

    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        level = resolved if isinstance(resolved, int) else logging.INFO
    logger.setLevel(level)
    return logger


def log_renewal_error(logger: logging.Logger, message: str, event: str, exc_info: bool = True, **extra_attrs):
    """Log a renewal failure with structured context.

    Args:
        logger: Logger instance to use.
        message: Error message.
        event: Event identifier for categorization.
        exc_info: Whether to include exception information.
        **extra_attrs: Additional attributes to include in log record.
    """
    extra = {
        'event': event,
        **extra_attrs
    }

    logger.error(message, exc_info=exc_info, extra=extra)


def log_renewal_info(logger: logging.Logger, message: str, event: str, **extra_attrs):
    """Log renewal progress; *extra_attrs* end up on the log record."""
    extra = {
        'event': event,
        **extra_attrs
    }

    logger.info(message, extra=extra)
