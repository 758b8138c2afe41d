"""
Structured logging for the agent, store, claim gate and API.

Every record is one JSON line with timestamp, level, logger, service and
event_type, plus whatever keys the call site passes (identity, score, flags,
campaign...). LOG_FORMAT=console switches to a human-readable renderer for
local runs; LOG_LEVEL sets the threshold for both structlog and the stdlib
loggers (uvicorn) that share stdout.

No backend_veritas imports here so every module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

SERVICE_NAME = "veritas"
IDENTITY_PREFIX_LEN = 16

_configured = False


def _level_from_env() -> int:
    return getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)


def _format_from_env() -> str:
    return os.getenv("LOG_FORMAT", "json").strip().lower()


def _event_to_event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Aggregators key on event_type; keep the name stable across renderers."""
    event = event_dict.pop("event", None)
    if event is not None:
        event_dict.setdefault("event_type", event)
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(
    level: int | None = None,
    fmt: str | None = None,
    *,
    force: bool = False,
) -> None:
    """
    Configure structlog and the root stdlib logger. Runs once unless force=True.

    level: logging level (default from LOG_LEVEL).
    fmt: "json" or "console" (default from LOG_FORMAT).
    """
    global _configured
    if _configured and not force:
        return
    level = _level_from_env() if level is None else level
    fmt = _format_from_env() if fmt is None else fmt

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        structlog.processors.format_exc_info,
        _event_to_event_type,
    ]
    if fmt == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), event_key="event_type"))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout, force=force)
    _configured = True


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Structured logger bound to a module name:

        logger = get_logger(__name__)
        logger.info("attester_update_done", identity=short_id(addr), score=80, flags=16)
    """
    configure_logging()
    return structlog.get_logger(name).bind(logger=name)


def bind_identity(identity: str, logger: Any = None) -> structlog.BoundLogger:
    """logger (default: the package logger) with the shortened identity bound to every call."""
    base = logger if logger is not None else get_logger("backend_veritas")
    return base.bind(identity=short_id(identity))


def short_id(identity: str | None) -> str:
    """Truncate an address for log fields."""
    if not identity:
        return "?"
    if len(identity) <= IDENTITY_PREFIX_LEN:
        return identity
    return identity[:IDENTITY_PREFIX_LEN] + "..."
