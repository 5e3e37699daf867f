"""FastAPI server exposing the healthcheck report."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from vaultcheck import __version__
from vaultcheck.api.health_routes import health_router
from vaultcheck.config import Settings, settings
from vaultcheck.health.healthchecks import Healthchecks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the aggregator on startup unless one was injected."""
    owned = getattr(app.state, "healthchecks", None) is None
    if owned:
        app.state.healthchecks = Healthchecks(app.state.settings)
        logger.info("Healthchecks initialised for %s", app.state.settings.full_base_url)
    yield
    if owned:
        app.state.healthchecks.close()


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app = FastAPI(
        title="vaultcheck",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings or settings
    app.include_router(health_router)
    return app


app = create_app()
