"""Exception hierarchy for the Metrics Browser.

Every error carries two statuses: ``status_code`` is what the HTTP facade
answers with, ``store_status_code`` is what the table store reported (if it
was reached at all).
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Categories of errors that can occur in the system."""
    AUTHENTICATION = "authentication"
    CONNECTION = "connection"
    VALIDATION = "validation"
    EXECUTION = "execution"
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Where an error happened: operation, table, request and free-form data."""
    operation: Optional[str] = None
    resource: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: Optional[str] = None
    additional_data: Dict[str, Any] = field(default_factory=dict)

    def with_data(self, **data) -> "ErrorContext":
        """Merge ``data`` into ``additional_data`` and return self."""
        if self.additional_data is None:
            self.additional_data = {}
        self.additional_data.update(data)
        return self

    def as_dict(self) -> Dict[str, Any]:
        """Flatten the populated fields, additional data included."""
        result = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name != "additional_data" and getattr(self, f.name)
        }
        result.update(self.additional_data or {})
        return result


class MetricsBrowserError(Exception):
    """Base class for all Metrics Browser errors.

    Subclasses set the class-level defaults; callers may still override the
    category and severity per instance.
    """

    category = ErrorCategory.EXECUTION
    severity = ErrorSeverity.MEDIUM
    status_code = 500
    default_code: Optional[str] = None

    def __init__(
        self,
        message: str,
        category: Optional[ErrorCategory] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
        store_error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        store_status_code: Optional[int] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        if severity is not None:
            self.severity = severity
        if status_code is not None:
            self.status_code = status_code
        self.error_code = error_code or self.default_code or f"METRICS_{self.category.name}_ERROR"
        self.store_error_code = store_error_code
        self.store_status_code = store_status_code
        self.context = context or ErrorContext()
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the error, used in log records."""
        data: Dict[str, Any] = {
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "status_code": self.status_code,
        }
        optional = {
            "store_error_code": self.store_error_code,
            "store_status_code": self.store_status_code,
            "cause": str(self.cause) if self.cause else None,
        }
        data.update({key: value for key, value in optional.items() if value})

        context = self.context.as_dict() if self.context else {}
        if context:
            data["context"] = context
        return data

    def get_user_message(self) -> str:
        """Message returned to API callers as the problem ``detail``."""
        return self.message

    def get_technical_details(self) -> str:
        parts = [f"Error: {self.message}"]
        if self.store_error_code:
            parts.append(f"Store Error Code: {self.store_error_code}")
        if self.store_status_code:
            parts.append(f"Store HTTP Status: {self.store_status_code}")
        if self.cause:
            parts.append(f"Underlying Cause: {self.cause}")
        return " | ".join(parts)


class ConfigurationError(MetricsBrowserError):
    """Missing or invalid settings, including an unusable connection string."""

    category = ErrorCategory.CONFIGURATION
    severity = ErrorSeverity.HIGH
    default_code = "CONFIG_ERROR"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[ErrorContext] = None
    ):
        if config_key:
            context = (context or ErrorContext()).with_data(config_key=config_key)
        super().__init__(message, error_code=error_code, context=context)
        self.config_key = config_key


class ValidationError(MetricsBrowserError):
    """Request input that cannot be used, such as a mangled continuation token."""

    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    status_code = 400
    default_code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: Optional[str] = None,
        context: Optional[ErrorContext] = None
    ):
        if field:
            context = (context or ErrorContext()).with_data(field=field)
        super().__init__(message, error_code=error_code, context=context)
        self.field = field

    def get_user_message(self) -> str:
        if self.field:
            return f"Invalid value for '{self.field}': {self.message}"
        return f"Validation error: {self.message}"


class StoreRequestError(MetricsBrowserError):
    """The table store rejected or failed a request.

    The message is the store's own error text so it can be surfaced verbatim.
    """

    default_code = "STORE_REQUEST_FAILED"


class AuthenticationError(StoreRequestError):
    """The store refused the account key or SAS in the connection string."""

    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.HIGH
    default_code = "AUTH_FAILED"


class ConnectionError(StoreRequestError):
    """The store could not be reached."""

    category = ErrorCategory.CONNECTION
    default_code = "CONNECTION_FAILED"


class TableNotFoundError(StoreRequestError):
    """The requested table does not exist in the account."""

    category = ErrorCategory.NOT_FOUND
    severity = ErrorSeverity.LOW
    default_code = "TABLE_NOT_FOUND"

    def __init__(self, message: str, table_name: Optional[str] = None, **kwargs):
        kwargs.setdefault("store_status_code", 404)
        super().__init__(message, **kwargs)
        self.table_name = table_name
