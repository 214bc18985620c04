"""API route for the health report.

Endpoints:
  GET  /health   run all checks, JSON report with 200 (ok/warning) or 503 (error)
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from healthcheck.config import settings
from healthcheck.health.aggregator import HealthAggregator
from healthcheck.health.models import HealthReport

logger = logging.getLogger(__name__)

health_router = APIRouter()


def _gather(aggregator: HealthAggregator, concurrent: bool, timeout: float) -> HealthReport:
    if concurrent:
        return aggregator.gather_concurrent(timeout=timeout)
    return aggregator.gather()


@health_router.get("/health")
async def health_status(request: Request) -> JSONResponse:
    """Return the health status of the app in JSON."""
    aggregator: HealthAggregator = request.app.state.aggregator
    loop = asyncio.get_running_loop()

    # probes block on drivers; keep them off the event loop
    report = await loop.run_in_executor(
        None, partial(_gather, aggregator, settings.concurrent, settings.probe_timeout),
    )
    if report.status_code != 200:
        logger.warning("Health check reporting %s", report.overall_status)
    return JSONResponse(report.to_dict(), status_code=report.status_code)
