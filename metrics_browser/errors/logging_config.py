"""Structured logging configuration for the Metrics Browser.

Application code logs through structlog; the events are handed to the stdlib
``logging`` machinery so the console and rotating file handlers receive them
together with records from third-party loggers (uvicorn, the Azure SDK).
"""

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter

from .exceptions import MetricsBrowserError, ErrorContext


# The SDK logs every request and response header at INFO
QUIET_LOGGERS = ("azure", "urllib3", "uvicorn.access")

# Applied to records that did not come through structlog.
_FOREIGN_PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="ISO"),
    structlog.stdlib.ExtraAdder(),
]


class StructuredFormatter(ProcessorFormatter):
    """Render every record, structlog or stdlib, as a single JSON line."""

    def __init__(self):
        super().__init__(
            processors=[
                ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(default=str),
            ],
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,
        )


class ConsoleFormatter(ProcessorFormatter):
    """Human-readable lines; colours only for the terminal."""

    def __init__(self, colors: bool = True):
        super().__init__(
            processors=[
                ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=colors),
            ],
            foreign_pre_chain=_FOREIGN_PRE_CHAIN,
        )


class RequestContextFilter(logging.Filter):
    """Copy the bound request id, and the fields of a logged MetricsBrowserError, onto records."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = structlog.contextvars.get_contextvars().get("request_id")
        if request_id:
            record.request_id = request_id

        exc_value = record.exc_info[1] if record.exc_info else None
        if isinstance(exc_value, MetricsBrowserError):
            record.error_code = exc_value.error_code
            record.error_category = exc_value.category.value
            record.status_code = exc_value.status_code
            if exc_value.context.resource:
                record.resource = exc_value.context.resource
        return True


def _make_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestContextFilter())
    return handler


def setup_logging(
    level: Union[str, int] = logging.INFO,
    log_file: Optional[str] = None,
    structured: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Logging level name or number
        log_file: Optional path of a rotating log file, created if needed
        structured: Emit JSON lines instead of human-readable text
        max_bytes: Size at which the log file is rotated
        backup_count: Rotated files to keep
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_formatter = StructuredFormatter() if structured else ConsoleFormatter()
    handlers = [_make_handler(logging.StreamHandler(sys.stdout), level, console_formatter)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        file_formatter = StructuredFormatter() if structured else ConsoleFormatter(colors=False)
        handlers.append(_make_handler(rotating, level, file_formatter))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)


def log_operation(
    logger: BoundLogger,
    operation: str,
    level: str = "info",
    **kwargs
) -> None:
    """Log a named event with its context fields."""
    getattr(logger, level.lower())(operation, operation=operation, **kwargs)


def _error_fields(error: Exception, context: Optional[ErrorContext]) -> Dict[str, Any]:
    fields: Dict[str, Any] = {"error_type": type(error).__name__}

    if isinstance(error, MetricsBrowserError):
        fields.update(error.to_dict())
        fields.pop("context", None)
        context = context or error.context

    if context:
        fields.update({
            key: value
            for key, value in (
                ("operation", context.operation),
                ("resource", context.resource),
                ("request_id", context.request_id),
            )
            if value
        })
        for key, value in (context.additional_data or {}).items():
            fields.setdefault(key, value)
    return fields


def log_error(
    logger: BoundLogger,
    error: Exception,
    operation: Optional[str] = None,
    context: Optional[ErrorContext] = None,
    **kwargs
) -> None:
    """
    Log ``error`` with its traceback and structured fields.

    For a MetricsBrowserError the error code, category, status and store
    details are included, along with the error's own context when no
    ``context`` is passed.
    """
    fields = _error_fields(error, context)
    if operation:
        fields["operation"] = operation
    fields.update(kwargs)
    fields.setdefault("message", str(error))

    logger.error("operation_failed", exc_info=error, **fields)


def log_performance(
    logger: BoundLogger,
    operation: str,
    duration_ms: float,
    success: bool = True,
    **kwargs
) -> None:
    """Log how long an operation took."""
    logger.info("operation_timed", operation=operation, duration_ms=duration_ms, success=success, **kwargs)


class OperationLogger:
    """Context manager timing an operation.

    A failure is recorded as ``success=False`` with the exception type; the
    traceback is logged once, by whoever finally handles the error.
    Exceptions are never suppressed.
    """

    def __init__(
        self,
        logger: BoundLogger,
        operation: str,
        level: str = "debug",
        **context
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.context = context
        self.success = False
        self._started: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        log_operation(self.logger, f"{self.operation}_started", level=self.level, **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self._started if self._started is not None else 0.0
        self.success = exc_type is None
        fields = dict(self.context)
        if not self.success:
            fields["error_type"] = exc_type.__name__

        log_performance(self.logger, self.operation, round(elapsed * 1000, 2), success=self.success, **fields)
        return False
