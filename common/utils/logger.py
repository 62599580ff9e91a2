"""Structured logging configuration for the beacon cache and its CLI."""

from __future__ import annotations

import logging

import structlog


def _resolve_level(level: int | str) -> int:
    if isinstance(level, str):
        return getattr(logging, level.upper(), logging.INFO)
    return level


def configure_logging(
    service_name: str, *, level: int | str = logging.INFO, json_output: bool = True
) -> structlog.stdlib.BoundLogger:
    """Configure structlog and return a logger bound to ``service_name``.

    JSON lines are emitted by default; ``json_output=False`` switches to the
    human readable console renderer used by interactive CLI sessions.
    Rendered lines go through the standard library handlers, so they land on
    stderr and never mix with command output.
    """

    level = _resolve_level(level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )

    renderer = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(service=service_name)


def get_logger(service_name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger without mutating global configuration."""

    return structlog.get_logger(service=service_name)


__all__ = ["configure_logging", "get_logger"]
