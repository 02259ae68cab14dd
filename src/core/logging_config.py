"""Structured logging configuration.

This module initializes structlog with a stable structured format.
Rendered events are routed through stdlib logging to stderr so command
output on stdout stays machine-readable.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

_HANDLER_NAME = "collection-hub"


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    if not structlog.is_configured():
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(sort_keys=True),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
    return structlog.get_logger(name)


def configure_logging(level_name: str) -> None:
    """Attach a stderr handler to the root logger at the given level.

    Args:
        level_name: Validated logging level name.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level_name)
    if any(handler.get_name() == _HANDLER_NAME for handler in root_logger.handlers):
        return
    handler = _CurrentStderrHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)


class _CurrentStderrHandler(logging.StreamHandler):
    """Stream handler that always writes to the current ``sys.stderr``."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self) -> Any:
        return sys.stderr

    @stream.setter
    def stream(self, value: Any) -> None:
        del value
