"""FastAPI application factory.

Learn: create_app() returns a configured FastAPI instance with its own
Relay (registry + dispatcher + connection handler) on app.state. The
relay is built eagerly, not in the lifespan, so it exists even under
transports that never run lifespan events (httpx's ASGITransport in tests).
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filterrelay import __version__
from filterrelay.api import api_router
from filterrelay.config import Settings
from filterrelay.config import settings as default_settings
from filterrelay.log import configure_logging
from filterrelay.middleware.request_id import RequestIdMiddleware
from filterrelay.realtime.websocket import router as ws_router
from filterrelay.relay import Relay

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "filterrelay.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        partitioned=settings.partitioned,
        scope_key=settings.scope_key if settings.partitioned else None,
    )

    yield

    relay: Relay = app.state.relay
    logger.info(
        "filterrelay.shutdown",
        open_subscribers=len(relay.registry),
        open_scopes=len(relay.registry.scopes()),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    configure_logging(settings.log_level, json_logs=settings.log_json)

    app = FastAPI(
        title="filterrelay",
        description="Filter-addressed publish/subscribe relay over WebSockets",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.relay = Relay.from_settings(settings)

    # Starlette middleware executes in reverse order of registration.
    # Request flow: RequestId → CORS → handler
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: filterrelay.main:app)
app = create_app()
