"""
Structured Logging
==================

JSON log lines for the alerting engine, one object per record.

Every line carries the service name and environment and, inside a
``correlation_scope``, the caller's correlation id, so a single evaluation
or acknowledgment can be followed from the service down to the store.

Usage:
    from shared.infrastructure.logging import correlation_scope, get_logger

    logger = get_logger(__name__)
    with correlation_scope("req-42"):
        logger.info("Alert acknowledged", extra={"event_id": event_id})
"""

import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, TextIO

from pythonjsonlogger import jsonlogger

REDACTED = "***REDACTED***"
SENSITIVE_KEY_PARTS = ("password", "secret", "token", "api_key", "dsn")

# Driver chatter that would otherwise drown the engine's own lines
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "asyncio": logging.WARNING,
}

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class AlertingJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter adding service context to every record.

    Adds:
    - timestamp: record creation time, ISO 8601 in UTC
    - service and environment
    - correlation_id: from ``extra`` or the active correlation scope
    """

    def __init__(
        self,
        *args: Any,
        service: str = "alert-sla-engine",
        environment: str = "unknown",
        **kwargs: Any,
    ):
        super().__init__(*args, **kwargs)
        self._service = service
        self._environment = environment

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()
        log_record["service"] = self._service
        log_record["environment"] = self._environment

        correlation_id = getattr(record, "correlation_id", None) or _correlation_id.get()
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        for key, value in list(log_record.items()):
            if isinstance(value, str) and any(part in key.lower() for part in SENSITIVE_KEY_PARTS):
                log_record[key] = REDACTED


def setup_logging(
    level: str = "INFO",
    environment: str = "development",
    service: str = "alert-sla-engine",
    stream: Optional[TextIO] = None,
) -> None:
    """
    Route every record through a single JSON handler on the root logger.

    Calling it again replaces the handler, so restarting the engine inside
    one process does not duplicate lines.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        environment: Environment name stamped on every line
        service: Service name stamped on every line
        stream: Output stream, stdout by default
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(AlertingJsonFormatter(
        "%(name)s %(levelname)s %(message)s",
        service=service,
        environment=environment,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass structured fields through ``extra``."""
    return logging.getLogger(name)


def current_correlation_id() -> Optional[str]:
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """
    Tag every record logged inside the block with one correlation id.

    A fresh id is generated when the caller has none. Scopes nest and the
    outer id is restored on exit. The id follows awaits within the task.
    """
    value = correlation_id or uuid.uuid4().hex
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


@contextmanager
def log_latency(logger: logging.Logger, operation: str, **extra_context: Any) -> Iterator[None]:
    """
    Log how long the block took and whether it raised.

    Usage:
        with log_latency(logger, "record_alerts", organization_id="org-1"):
            events = await repository.record(organization_id, triggered)
    """
    start = time.perf_counter()
    outcome = "ok"
    try:
        yield
    except Exception:
        outcome = "error"
        raise
    finally:
        logger.info(
            f"{operation} finished",
            extra={
                "operation": operation,
                "outcome": outcome,
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                **extra_context,
            },
        )
