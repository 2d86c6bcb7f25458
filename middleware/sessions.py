"""
Session middleware installation and FastAPI dependencies.

Example:
    app = FastAPI()
    setup_sessions(app, engine)

    @app.get("/me")
    async def me(session: Session = Depends(get_started_session)):
        return session.get()
"""

import logging
from typing import TYPE_CHECKING

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from errors.exceptions import session_middleware_missing

if TYPE_CHECKING:
    from session.engine import SessionEngine
    from session.session import Session

logger = logging.getLogger(__name__)


def setup_sessions(app, engine: "SessionEngine") -> None:
    """
    Install the engine's session middleware on an application.

    Args:
        app: The FastAPI or Starlette application instance
        engine: The SessionEngine whose middleware attaches sessions
    """
    app.add_middleware(BaseHTTPMiddleware, dispatch=engine.middleware)

    logger.info(
        f"Session middleware configured: cookie={engine.options.cookie.name}, "
        f"automatic_touch={engine.options.automatic_touch}"
    )


def get_session(request: Request) -> "Session":
    """
    FastAPI dependency returning the request's session without starting it.

    Raises:
        AppException: If the session middleware is not installed
    """
    session = getattr(request.state, "session", None)
    if session is None:
        raise session_middleware_missing()
    return session


async def get_started_session(request: Request) -> "Session":
    """FastAPI dependency returning the request's session after start()."""
    session = get_session(request)
    await session.start()
    return session
