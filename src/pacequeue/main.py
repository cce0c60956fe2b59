"""FastAPI application factory.

Learn: create_app() builds the one dispatcher for the process and hangs it
on app.state, where route dependencies pick it up. Lifespan starts the
worker at startup and stops it (plus the upstream HTTP client) at
shutdown. Tests pass their own dispatcher with a fake upstream.

The worker also starts lazily on the first submit, so the app works
under transports that skip lifespan events.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from pacequeue import __version__
from pacequeue.api import api_router
from pacequeue.api.calls import call_validation_handler
from pacequeue.config import settings
from pacequeue.dispatcher import PacedDispatcher
from pacequeue.logging_config import configure_logging
from pacequeue.middleware import RequestContextMiddleware
from pacequeue.upstream import build_upstream

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the dispatcher worker; tear down on shutdown.

    Queued items still waiting at shutdown are abandoned.
    """
    dispatcher: PacedDispatcher = app.state.dispatcher
    logger.info(
        "pacequeue.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        min_interval_ms=dispatcher.min_interval_ms,
    )
    dispatcher.start()

    yield

    logger.info("pacequeue.shutdown", queue_length=dispatcher.status().queue_length)
    await dispatcher.stop()

    aclose = getattr(dispatcher.upstream, "aclose", None)
    if aclose is not None:
        await aclose()


def build_dispatcher() -> PacedDispatcher:
    """Dispatcher wired to the configured upstream client."""
    return PacedDispatcher(
        build_upstream(settings, settings.upstream),
        settings.min_interval_ms,
        call_timeout=settings.call_timeout_seconds,
        cancel_on_clear=settings.cancel_on_clear,
    )


def create_app(dispatcher: Optional[PacedDispatcher] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(settings.log_level, json=settings.log_json)

    app = FastAPI(
        title="Pacequeue",
        description="Paced FIFO queue in front of a rate-limited upstream API",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.dispatcher = dispatcher if dispatcher is not None else build_dispatcher()

    # Request flow: RequestContext → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(api_router)
    app.add_exception_handler(RequestValidationError, call_validation_handler)

    return app


# Default app instance (used by uvicorn: pacequeue.main:app)
app = create_app()
