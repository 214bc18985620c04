"""FastAPI server exposing the health report."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from healthcheck.api.health_routes import health_router
from healthcheck.config import settings
from healthcheck.health.aggregator import HealthAggregator
from healthcheck.health.registry import build_aggregator

logger = logging.getLogger(__name__)


def create_app(aggregator: HealthAggregator | None = None) -> FastAPI:
    """Build the app. Without an aggregator, the default set is built from settings on startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "aggregator", None) is None:
            app.state.aggregator = build_aggregator(settings)
        yield
        app.state.aggregator.close()

    app = FastAPI(
        title="healthcheck",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.aggregator = aggregator
    app.include_router(health_router)
    return app


app = create_app()
