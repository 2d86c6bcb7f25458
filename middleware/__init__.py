"""
HTTP components for the session engine.

This module contains the cookie signing primitives, the request/response
adapters the session core talks to, and the helpers that install the
session middleware on a FastAPI application.
"""

from middleware.signing import sign, unsign
from middleware.http_adapter import SessionRequest, SessionResponse, SEND_EVENT
from middleware.sessions import setup_sessions, get_session, get_started_session

__all__ = [
    "sign",
    "unsign",
    "SessionRequest",
    "SessionResponse",
    "SEND_EVENT",
    "setup_sessions",
    "get_session",
    "get_started_session",
]
