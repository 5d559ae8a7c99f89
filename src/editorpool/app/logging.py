"""JSON logging configuration with per-cycle tracing and rate limiting."""

import logging
import sys
import time
from collections import deque
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, TextIO
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from editorpool.app.config import LoggingConfig

# Context variable for cycle tracing
trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)


def get_trace_id() -> str | None:
    """Get current trace_id from context."""
    return trace_id_ctx.get()


def set_trace_id(trace_id: str | None = None) -> str:
    """Set trace_id in context, generating one if not provided.

    Args:
        trace_id: Optional trace ID to set. If None, generates a short UUID.

    Returns:
        The trace ID that was set.
    """
    tid = trace_id or str(uuid4())[:8]
    trace_id_ctx.set(tid)
    return tid


def clear_trace_context() -> None:
    """Clear trace context (call at end of cycle)."""
    trace_id_ctx.set(None)


class RateLimitFilter(logging.Filter):
    """Caps how often one call site may log per minute.

    Build polling and per-instance logs repeat every cycle; a flapping
    platform can make them storm. Records are keyed by logger and line, so
    the same message with different arguments shares a budget. ERROR and
    above always pass.

    Once the window frees up, the next passing record carries a
    `suppressed` field with the number of records dropped in between.
    """

    window = 60.0  # seconds

    def __init__(
        self,
        rate_per_minute: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._clock = clock
        self._recent: dict[tuple[str, int], deque[float]] = {}
        self._dropped: dict[tuple[str, int], int] = {}

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        site = (record.name, record.lineno)
        now = self._clock()
        stamps = self._recent.setdefault(site, deque())
        while stamps and now - stamps[0] >= self.window:
            stamps.popleft()

        if len(stamps) >= self.rate_per_minute:
            self._dropped[site] = self._dropped.get(site, 0) + 1
            return False

        stamps.append(now)
        if dropped := self._dropped.pop(site, 0):
            record.suppressed = dropped
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with schema version and trace context.

    Adds the following standard fields to all logs:
    - timestamp: ISO 8601 format with timezone
    - level: Log level name
    - logger: Logger name
    - schema_version: Log schema version
    - service: Service name
    - trace_id: Reconcile cycle ID (if set in context)
    """

    def __init__(self, *args: Any, config: LoggingConfig | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        config = config or LoggingConfig()
        self._schema_version = config.schema_version
        self._service = config.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["pid"] = record.process

        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service

        if trace_id := get_trace_id():
            log_record["trace_id"] = trace_id

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(
    config: LoggingConfig | None = None,
    level: int | None = None,
    stream: TextIO | None = None,
) -> None:
    """Configure JSON logging for the worker.

    Args:
        config: Logging configuration. If None, read from LOGGING_* env vars.
        level: Log level. If None, uses config.level.
        stream: Output stream (default: stdout).
    """
    config = config or LoggingConfig()

    if level is None:
        level = getattr(logging, config.level.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(CustomJsonFormatter(config=config))
    handler.addFilter(RateLimitFilter(config.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Suppress per-request HTTP client logs (build polling noise)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
