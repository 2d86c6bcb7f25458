"""
Exception classes for the session engine.

This module provides the AppException base class, the session-specific
subclasses raised by the core, and convenience factory functions for
storage backends.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base exception class for all session engine errors.

    This exception provides structured error information including:
    - error_code: A standardized error code from the ErrorCode enum
    - message: A human-readable error message
    - status_code: The HTTP status code to return
    - details: Optional additional context (e.g., field-level errors)

    Example:
        raise AppException(
            error_code=ErrorCode.INVALID_ARGUMENT,
            message="set_id(id) -> id must be a string",
            details={"argument": "id"}
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        """
        Initialize an AppException.

        Args:
            error_code: The error code from the ErrorCode enum
            message: A human-readable error message
            status_code: The HTTP status code (defaults to the error code's default)
            details: Optional dictionary with additional error context
        """
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for JSON serialization.

        Returns:
            Dictionary containing error_code, message, and details
        """
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details is not None:
            result["details"] = self.details
        return result

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(error_code={self.error_code.value!r}, "
            f"message={self.message!r}, status_code={self.status_code}, "
            f"details={self.details!r})"
        )


class ConfigurationError(AppException):
    """Raised when engine options or environment settings fail validation."""

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        invalid_fields: Optional[dict[str, str]] = None
    ):
        self.missing_fields = missing_fields or []
        self.invalid_fields = invalid_fields or {}
        details = None
        if self.missing_fields or self.invalid_fields:
            details = {
                "missing_fields": self.missing_fields,
                "invalid_fields": self.invalid_fields,
            }
        super().__init__(
            error_code=ErrorCode.CONFIGURATION_ERROR,
            message=message,
            details=details,
        )
        # Exception text carries the full listing for startup failures
        self.args = (self.format_error_message(),)

    def format_error_message(self) -> str:
        """Format a descriptive error message listing all issues."""
        parts = [self.message]

        if self.missing_fields:
            parts.append(f"\nMissing required fields: {', '.join(self.missing_fields)}")

        if self.invalid_fields:
            invalid_parts = [f"  - {field}: {error}" for field, error in self.invalid_fields.items()]
            parts.append("\nInvalid field values:\n" + "\n".join(invalid_parts))

        return "".join(parts)


class InvalidArgumentError(AppException):
    """Raised when a session or engine method receives a bad argument."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            error_code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            details=details,
        )


class SessionNotStartedError(AppException):
    """
    Raised when a data accessor is used before ``Session.start()``.

    Attributes:
        method: Name of the session method that was called too early
    """

    def __init__(self, method: str):
        self.method = method
        super().__init__(
            error_code=ErrorCode.SESSION_NOT_STARTED,
            message=(
                "SessionEngine: Session was not started. Please call "
                f"request.state.session.start() before calling "
                f"request.state.session.{method}()"
            ),
            details={"method": method},
        )


class SessionFinalizedError(AppException):
    """Raised when the end-of-request closure is invoked a second time."""

    def __init__(self, message: str = "SessionEngine: Session closure has already been performed"):
        super().__init__(
            error_code=ErrorCode.SESSION_FINALIZED,
            message=message,
        )


class OperationNotConfiguredError(AppException):
    """
    Raised when a backend operation has no registered handler.

    Attributes:
        operation: Name of the unhandled operation (read, write, ...)
    """

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            error_code=ErrorCode.OPERATION_NOT_CONFIGURED,
            message=(
                f"SessionEngine '{operation}' operation is not being handled. "
                f"Please use SessionEngine.use('{operation}', some_handler) "
                "to handle this session engine operation."
            ),
            details={"operation": operation},
        )


# Convenience factory functions for common error types

def session_middleware_missing(
    message: str = "No session is attached to this request. Is the session middleware installed?",
    details: Optional[dict[str, Any]] = None
) -> AppException:
    """Create a session middleware missing exception."""
    return AppException(
        error_code=ErrorCode.SESSION_MIDDLEWARE_MISSING,
        message=message,
        details=details
    )
