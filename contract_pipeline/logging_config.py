"""
Structured logging for the contract pipeline.

structlog renders JSON in production and coloured console lines
elsewhere; stdlib loggers (boto3, httpx) are routed through the same
renderer. Every entry emitted inside ``batch_scope()`` or
``document_scope()`` carries the active ``batch_id`` / ``document_key``.

Usage:
    from contract_pipeline.logging_config import document_scope, get_logger

    logger = get_logger(__name__)
    with document_scope("incoming/acme.pdf"):
        logger.info("document_fetch_started")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Optional

import structlog

from contract_pipeline.config import Settings, get_settings

batch_id_var: ContextVar[str] = ContextVar("batch_id", default="")
document_key_var: ContextVar[str] = ContextVar("document_key", default="")

# Log field name -> context var holding its value
_CORRELATION_FIELDS: dict[str, ContextVar[str]] = {
    "batch_id": batch_id_var,
    "document_key": document_key_var,
}

QUIET_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3", "httpx", "httpcore", "asyncio")


def _inject_context_vars(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Copy non-empty correlation vars into the event."""
    for field, var in _CORRELATION_FIELDS.items():
        value = var.get()
        if value:
            event_dict[field] = value
    return event_dict


def generate_batch_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def _bound(var: ContextVar[str], value: str) -> Iterator[str]:
    token = var.set(value)
    try:
        yield value
    finally:
        var.reset(token)


@contextmanager
def batch_scope(batch_id: Optional[str] = None) -> Iterator[str]:
    """Tag log entries with a batch id (generated when not given)."""
    with _bound(batch_id_var, batch_id or generate_batch_id()) as value:
        yield value


@contextmanager
def document_scope(key: str) -> Iterator[str]:
    """Tag log entries with the storage key of the document in flight."""
    with _bound(document_key_var, key) as value:
        yield value


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.is_production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog and attach a single stdout handler to the root logger."""
    settings = settings or get_settings()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _inject_context_vars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(settings.log_level.upper())

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
