"""Structured logging configuration using structlog.

JSON lines outside development, colored console output in development.
Every entry carries the deployment context (service name, environment and
escrow owner) given to setup_logging, and entries emitted while serving an
HTTP request also carry the request_id bound by the API middleware, so a
create/pay/withdraw sequence can be followed across the ledger and payout
services.

Usage:
    from escrow_ledger.logging_config import setup_logging, get_logger
    setup_logging(log_level="INFO", json_logs=True, static_context={"env": "production"})
    logger = get_logger(__name__)
    logger.info("agreement.created", agreement_id=0, amount=100)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog

SERVICE_NAME = "escrow-ledger"

# Driver and access logs drown out ledger events at DEBUG
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg", "httpx")


class _StaticContext:
    """Processor adding fixed deployment fields without overriding per-event ones."""

    def __init__(self, context: Mapping[str, Any]) -> None:
        self._context = dict(context)

    def __call__(self, logger: Any, method_name: str, event_dict: dict) -> dict:
        for key, value in self._context.items():
            event_dict.setdefault(key, value)
        return event_dict


def _processor_chain(static_context: Mapping[str, Any]) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        _StaticContext({"service": SERVICE_NAME, **static_context}),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_logs: bool) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def setup_logging(
    log_level: str = "DEBUG",
    json_logs: bool = False,
    static_context: Mapping[str, Any] | None = None,
) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, render JSON. If False, render for a terminal.
        static_context: Extra fields stamped on every entry.
    """
    processors = _processor_chain(static_context or {})

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.DEBUG))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to `name` (usually the module's __name__)."""
    return structlog.get_logger(name)
