"""
Error handling module for the session engine.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException and its session-specific subclasses
- Error response models for consistent API responses
- Exception handlers for FastAPI integration and the closure error channel
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AppException,
    ConfigurationError,
    InvalidArgumentError,
    OperationNotConfiguredError,
    SessionFinalizedError,
    SessionNotStartedError,
)
from errors.handlers import (
    ErrorResponse,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
    report_closure_error,
)

__all__ = [
    "ErrorCode",
    "AppException",
    "ConfigurationError",
    "InvalidArgumentError",
    "OperationNotConfiguredError",
    "SessionFinalizedError",
    "SessionNotStartedError",
    "ErrorResponse",
    "handle_app_exception",
    "handle_unexpected_exception",
    "register_exception_handlers",
    "report_closure_error",
]
