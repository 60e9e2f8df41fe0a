"""Structured logging configuration.

This module initializes structlog with a stable JSON event format
shared by every pipeline stage. Events go to stderr so command output
on stdout stays machine-readable.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger rendering ISO timestamp, level, and JSON fields.
    """
    _configure_once()
    return structlog.get_logger(name)


def _stderr_logger(*_: Any) -> Any:
    # Resolved per event so a replaced sys.stderr is honoured.
    return structlog.PrintLogger(file=sys.stderr)


def _configure_once() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )
    _CONFIGURED = True
