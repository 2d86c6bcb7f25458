"""
Session engine.

The SessionEngine is created once per process. It owns the validated
options, the table of backend operation handlers, and the middleware that
attaches a fresh Session to every request.
"""

import inspect
import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from starlette.requests import Request
from starlette.responses import Response

from errors.exceptions import InvalidArgumentError
from errors.handlers import report_closure_error
from middleware.http_adapter import SessionRequest, SessionResponse
from session.options import SessionEngineOptions, build_options
from session.session import Session
from session.store import OPERATIONS, SessionStore

logger = logging.getLogger(__name__)


class SessionEngine:
    """
    Process-wide session configuration and backend operation registry.

    Example:
        engine = SessionEngine({"cookie": {"secret": "a-long-random-secret"}})
        engine.use("read", read_handler).use("write", write_handler)
        setup_sessions(app, engine)

    Handlers may be plain functions or coroutines. ``use()`` is meant to be
    called during application setup, before requests are served.
    """

    def __init__(
        self,
        options: Any,
        store: Optional[SessionStore] = None,
        error_handler: Optional[Callable[[BaseException], Any]] = None,
    ):
        """
        Initialize the session engine.

        Args:
            options: Mapping of options merged over the defaults, or a
                SessionEngineOptions instance. ``cookie.secret`` is required.
            store: Backend providing the default operation handlers
            error_handler: Receives backend failures raised during the
                end-of-request closure. Defaults to logging them.

        Raises:
            ConfigurationError: If the options are missing or invalid
            InvalidArgumentError: If store or error_handler has the wrong type
        """
        self._options = build_options(options)

        if store is None:
            store = SessionStore()
        if not isinstance(store, SessionStore):
            raise InvalidArgumentError("new SessionEngine(options, store) -> store must be a SessionStore.")
        if error_handler is not None and not callable(error_handler):
            raise InvalidArgumentError("new SessionEngine(options, store, error_handler) -> error_handler must be a Function.")

        self._methods: dict[str, Callable[..., Any]] = {
            operation: getattr(store, operation) for operation in OPERATIONS
        }
        self._error_handler = error_handler or report_closure_error

        session_engine = self

        async def middleware(request: Request, call_next) -> Response:
            session_response = SessionResponse(error_handler=session_engine._error_handler)
            request.state.session = Session(
                SessionRequest(request), session_response, session_engine
            )
            response = await call_next(request)
            return await session_response.send(response)

        self._middleware = middleware

        logger.info(
            "Session engine initialized",
            extra={"extra_data": {
                "cookie_name": self._options.cookie.name,
                "duration_ms": self._options.duration,
                "automatic_touch": self._options.automatic_touch,
                "store": type(store).__name__,
            }}
        )

    def use(self, type: str, handler: Callable[..., Any]) -> "SessionEngine":
        """
        Register a handler for a backend operation.

        Args:
            type: One of id, read, write, touch, destroy, cleanup
            handler: Callable receiving the Session (no arguments for id
                and cleanup)

        Returns:
            SessionEngine (chainable)

        Raises:
            InvalidArgumentError: If type is unsupported or handler is not callable
        """
        if not isinstance(type, str) or type not in self._methods:
            raise InvalidArgumentError(
                "SessionEngine.use(type, handler) -> type must be a string that is a supported operation.",
                details={"type": repr(type), "supported": list(OPERATIONS)},
            )

        if not callable(handler):
            raise InvalidArgumentError("SessionEngine.use(type, handler) -> handler must be a Function.")

        self._methods[type] = handler
        logger.debug("Session engine handler registered", extra={"extra_data": {"operation": type}})
        return self

    async def invoke(self, operation: str, *args: Any) -> Any:
        """
        Run a backend operation handler and await its result if needed.

        Raises:
            OperationNotConfiguredError: If no handler was registered
        """
        result = self._methods[operation](*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def cleanup(self) -> None:
        """Run the ``cleanup`` operation to purge expired sessions."""
        await self.invoke("cleanup")

    @property
    def options(self) -> SessionEngineOptions:
        return self._options

    @property
    def methods(self) -> Mapping[str, Callable[..., Any]]:
        """Read-only view of the registered operation handlers."""
        return MappingProxyType(self._methods)

    @property
    def middleware(self):
        """Middleware function for ``BaseHTTPMiddleware(dispatch=...)``."""
        return self._middleware
