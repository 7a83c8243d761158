"""Translation of store SDK exceptions into Metrics Browser errors and problem bodies."""

import functools
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple, Type

import structlog
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
    ServiceRequestError,
    ServiceResponseError,
)

from .exceptions import (
    MetricsBrowserError,
    AuthenticationError,
    ConnectionError,
    StoreRequestError,
    TableNotFoundError,
    ErrorContext,
)


PROBLEM_CONTENT_TYPE = "application/problem+json"

_PROBLEM_TITLES = {
    400: "One or more validation errors occurred.",
    500: "An error occurred while processing your request.",
}

# First match wins, so subclasses come before their bases.
_SDK_ERRORS: Tuple[Tuple[Type[Exception], Type[StoreRequestError]], ...] = (
    (ClientAuthenticationError, AuthenticationError),
    (ResourceNotFoundError, TableNotFoundError),
    (HttpResponseError, StoreRequestError),
    (ServiceRequestError, ConnectionError),
    (ServiceResponseError, ConnectionError),
    (AzureError, StoreRequestError),
)


def _store_message(error: Exception) -> str:
    """Return the store's own error text for an SDK exception."""
    return getattr(error, "message", None) or str(error) or type(error).__name__


def _store_details(error: Exception) -> Dict[str, Any]:
    details: Dict[str, Any] = {}
    code = getattr(error, "error_code", None)
    if code:
        details["store_error_code"] = str(code)
    status = getattr(error, "status_code", None)
    if status:
        details["store_status_code"] = status
    return details


class ErrorHandler:
    """Central place converting exceptions into Metrics Browser errors."""

    @staticmethod
    def handle_store_error(
        error: Exception,
        operation: Optional[str] = None,
        resource: Optional[str] = None,
        context: Optional[ErrorContext] = None
    ) -> MetricsBrowserError:
        """
        Convert an exception raised while talking to the table store.

        Errors that are already MetricsBrowserErrors are returned as they
        are, with missing operation and resource filled in. The request id
        bound by the HTTP middleware, if any, is recorded in the context.

        Args:
            error: The exception that was raised
            operation: Operation that failed
            resource: Table being accessed
            context: Context to attach instead of a fresh one
        """
        context = context or ErrorContext()
        context.operation = context.operation or operation
        context.resource = context.resource or resource
        context.timestamp = context.timestamp or datetime.now(timezone.utc).isoformat()
        context.request_id = context.request_id or structlog.contextvars.get_contextvars().get("request_id")

        if isinstance(error, MetricsBrowserError):
            error.context.operation = error.context.operation or context.operation
            error.context.resource = error.context.resource or context.resource
            error.context.request_id = error.context.request_id or context.request_id
            return error

        for sdk_type, error_type in _SDK_ERRORS:
            if not isinstance(error, sdk_type):
                continue
            kwargs: Dict[str, Any] = {"context": context, "cause": error}
            if error_type is TableNotFoundError:
                kwargs["table_name"] = context.resource
            if error_type is not ConnectionError:
                kwargs.update(_store_details(error))
            return error_type(_store_message(error), **kwargs)

        return StoreRequestError(
            f"Unexpected error: {error}",
            error_code="UNEXPECTED_ERROR",
            context=context,
            cause=error,
        )

    @staticmethod
    def to_problem(error: MetricsBrowserError) -> Dict[str, Any]:
        """Render ``error`` as an RFC 7807 problem document."""
        return {
            "type": "about:blank",
            "title": _PROBLEM_TITLES.get(error.status_code, _PROBLEM_TITLES[500]),
            "status": error.status_code,
            "detail": error.get_user_message(),
            "errorCode": error.error_code,
        }


def handle_store_error(operation: Optional[str] = None, resource_arg: Optional[str] = None):
    """
    Decorator re-raising exceptions from the wrapped method as MetricsBrowserErrors.

    Args:
        operation: Operation name for the error context; defaults to the
            function name
        resource_arg: Name of the argument holding the table name. It is
            looked up in the keyword arguments, then taken as the first
            positional argument after ``self``.
    """
    def decorator(func: Callable) -> Callable:
        op = operation or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                resource = None
                if resource_arg:
                    resource = kwargs.get(resource_arg, args[1] if len(args) > 1 else None)

                converted = ErrorHandler.handle_store_error(e, operation=op, resource=resource)
                if converted is e:
                    raise
                raise converted from e

        return wrapper
    return decorator
