"""FastAPI application setup and engine lifecycle."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from tailcast import __version__
from tailcast.config import TailConfig, load_config
from tailcast.engine import TailEngine
from tailcast.server.routes import router

_log = logging.getLogger(__name__)


def create_app(config: TailConfig | None = None) -> FastAPI:
    """Build the app; the tail engine starts and stops with the app lifespan.

    Without *config*, settings come from ``TAILCAST_*`` environment variables.
    A watch setup failure propagates out of startup.
    """
    resolved = config if config is not None else load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Start the tail engine on startup and stop it on shutdown."""
        engine = TailEngine(resolved)
        app.state.engine = engine
        _log.info("Tailcast server starting for %s", resolved.file)
        await engine.start()
        try:
            yield
        finally:
            _log.info("Tailcast server shutting down")
            await engine.stop()

    app = FastAPI(
        title="Tailcast",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app
