"""
Session management module.

This module provides the request-scoped Session, the process-wide
SessionEngine that creates it, and the SessionStore interface that storage
backends implement.
"""

from session.engine import SessionEngine
from session.options import (
    DEFAULT_DURATION_MS,
    DEFAULT_OPTIONS,
    CookieOptions,
    SessionEngineOptions,
    build_options,
    merge_options,
)
from session.session import DURATION_KEY, Session
from session.store import OPERATIONS, SessionStore

__all__ = [
    "SessionEngine",
    "Session",
    "SessionStore",
    "SessionEngineOptions",
    "CookieOptions",
    "DEFAULT_DURATION_MS",
    "DEFAULT_OPTIONS",
    "DURATION_KEY",
    "OPERATIONS",
    "build_options",
    "merge_options",
]
