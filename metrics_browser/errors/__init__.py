"""Error handling and logging utilities for the Metrics Browser."""

from .exceptions import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    MetricsBrowserError,
    ConfigurationError,
    ValidationError,
    StoreRequestError,
    AuthenticationError,
    ConnectionError,
    TableNotFoundError,
)
from .logging_config import (
    setup_logging,
    get_logger,
    log_operation,
    log_error,
    log_performance,
    OperationLogger,
)
from .handlers import (
    PROBLEM_CONTENT_TYPE,
    ErrorHandler,
    handle_store_error,
)

__all__ = [
    # Exceptions
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'MetricsBrowserError',
    'ConfigurationError',
    'ValidationError',
    'StoreRequestError',
    'AuthenticationError',
    'ConnectionError',
    'TableNotFoundError',

    # Error handlers
    'PROBLEM_CONTENT_TYPE',
    'ErrorHandler',
    'handle_store_error',

    # Logging
    'setup_logging',
    'get_logger',
    'log_operation',
    'log_error',
    'log_performance',
    'OperationLogger',
]
