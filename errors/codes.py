"""
Error code catalog for the session engine.

This module defines all error codes raised by the session core and its
HTTP adapter, covering configuration errors, usage errors, unconfigured
backend operations, and internal errors.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """
    Enumeration of all error codes used by the session engine.

    Each error code maps to a default HTTP status code:
    - Usage errors (4xx/5xx): Calls made out of order or with bad arguments
    - Wiring errors (5xx): Engine or middleware set up incorrectly
    - Internal errors (5xx): Server-side issues
    """

    # Configuration errors
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Engine options or environment settings are invalid (HTTP 500)"""

    # Usage errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    """An argument has the wrong type or value (HTTP 400)"""

    SESSION_NOT_STARTED = "SESSION_NOT_STARTED"
    """A data accessor was used before Session.start() (HTTP 500)"""

    SESSION_FINALIZED = "SESSION_FINALIZED"
    """The end-of-request closure already ran for this session (HTTP 500)"""

    # Wiring errors
    SESSION_MIDDLEWARE_MISSING = "SESSION_MIDDLEWARE_MISSING"
    """No session is attached to the request (HTTP 500)"""

    OPERATION_NOT_CONFIGURED = "OPERATION_NOT_CONFIGURED"
    """A backend operation was invoked without a registered handler (HTTP 500)"""

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    """Unexpected server error (HTTP 500)"""


# Mapping of error codes to their default HTTP status codes
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.SESSION_NOT_STARTED: 500,
    ErrorCode.SESSION_FINALIZED: 500,
    ErrorCode.SESSION_MIDDLEWARE_MISSING: 500,
    ErrorCode.OPERATION_NOT_CONFIGURED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """
    Get the default HTTP status code for an error code.

    Args:
        error_code: The error code to look up

    Returns:
        The default HTTP status code for the error code
    """
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
