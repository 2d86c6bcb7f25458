"""
Application factory wiring the session engine into FastAPI.

Example:
    app = create_app(store=MyDatabaseStore())

Run with ``uvicorn main:create_app --factory``.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config.settings import Settings, get_settings
from errors.handlers import register_exception_handlers
from middleware.sessions import setup_sessions
from session.engine import SessionEngine
from session.store import SessionStore
from telemetry.service import setup_logging

logger = logging.getLogger(__name__)


async def run_cleanup_loop(engine: SessionEngine, interval_seconds: float) -> None:
    """
    Run the engine's cleanup operation every ``interval_seconds``.

    Failures are logged and the loop keeps going; cancellation stops it.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await engine.cleanup()
            logger.debug("Expired sessions cleaned up")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Session cleanup failed",
                extra={"extra_data": {"error": str(e), "exception_type": type(e).__name__}},
                exc_info=True,
            )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
) -> FastAPI:
    """
    Build a FastAPI application with session support.

    Args:
        settings: Settings to use, loaded from the environment when omitted
        store: Storage backend providing the session operations

    Returns:
        The configured FastAPI application. The engine is available at
        ``app.state.session_engine`` for registering more handlers.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings.log_level)

    engine = SessionEngine(settings.to_engine_options(), store=store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cleanup_task = None
        if settings.cleanup_interval_seconds:
            logger.info(
                "Starting session cleanup loop",
                extra={"extra_data": {"interval_seconds": settings.cleanup_interval_seconds}},
            )
            cleanup_task = asyncio.create_task(
                run_cleanup_loop(engine, settings.cleanup_interval_seconds)
            )

        yield

        if cleanup_task is not None:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
        logger.info("Session engine shut down")

    app = FastAPI(title="Session Engine", version="1.0.0", lifespan=lifespan)
    app.state.session_engine = engine

    register_exception_handlers(app)
    setup_sessions(app, engine)

    return app
