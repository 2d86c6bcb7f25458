"""
Shared pytest fixtures and configuration for all tests.
"""
import os
from types import SimpleNamespace
from typing import Any, Callable, Optional
from unittest.mock import MagicMock

import pytest

# Hypothesis configuration for property-based testing
from hypothesis import settings, Verbosity, Phase

from middleware.http_adapter import SessionRequest, SessionResponse
from session.engine import SessionEngine
from session.session import Session
from session.store import SessionStore

# Default profile: balanced for local development
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    deadline=None,
    print_blob=True,
)

# CI profile: more thorough testing for continuous integration
settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    derandomize=True,
)

# Debug profile: minimal examples for quick debugging
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
    print_blob=True,
    phases=[Phase.explicit, Phase.reuse, Phase.generate],
)

# Fast profile: quick smoke tests
settings.register_profile(
    "fast",
    max_examples=20,
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


TEST_SECRET = "test-secret-0123456789"


class MemorySessionStore(SessionStore):
    """In-memory backend that records every operation it receives."""

    def __init__(self, records: Optional[dict[str, dict[str, Any]]] = None):
        self.records: dict[str, dict[str, Any]] = dict(records or {})
        self.calls: list[tuple[str, Optional[str]]] = []
        self.stored_flags: list[bool] = []

    def count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    async def read(self, session):
        self.calls.append(("read", session.id))
        data = self.records.get(session.id)
        return dict(data) if data is not None else None

    async def write(self, session):
        self.calls.append(("write", session.id))
        self.stored_flags.append(session.stored)
        self.records[session.id] = dict(session.get())

    async def touch(self, session):
        self.calls.append(("touch", session.id))

    async def destroy(self, session):
        self.calls.append(("destroy", session.id))
        self.records.pop(session.id, None)

    async def cleanup(self):
        self.calls.append(("cleanup", None))


@pytest.fixture
def secret() -> str:
    return TEST_SECRET


@pytest.fixture
def store() -> MemorySessionStore:
    """Create an empty in-memory session backend."""
    return MemorySessionStore()


@pytest.fixture
def error_handler() -> MagicMock:
    """Closure error channel that records the errors it receives."""
    return MagicMock()


@pytest.fixture
def make_engine(store, error_handler) -> Callable[..., SessionEngine]:
    """Factory building a SessionEngine over the in-memory store."""
    def factory(**overrides: Any) -> SessionEngine:
        cookie = {"secret": TEST_SECRET, **overrides.pop("cookie", {})}
        options = {**overrides, "cookie": cookie}
        return SessionEngine(options, store=store, error_handler=error_handler)
    return factory


@pytest.fixture
def engine(make_engine) -> SessionEngine:
    return make_engine()


@pytest.fixture
def make_session(engine, error_handler) -> Callable[..., tuple[Session, SessionResponse]]:
    """Factory building a Session for a request carrying the given cookies."""
    def factory(
        cookies: Optional[dict[str, str]] = None,
        session_engine: Optional[SessionEngine] = None,
    ) -> tuple[Session, SessionResponse]:
        session_engine = session_engine or engine
        request = SessionRequest(SimpleNamespace(cookies=dict(cookies or {})))
        response = SessionResponse(error_handler=error_handler)
        return Session(request, response, session_engine), response
    return factory
