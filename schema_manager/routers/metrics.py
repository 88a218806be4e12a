"""Prometheus metrics endpoint router.

Exposes /metrics endpoint for Prometheus scraping.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from schema_manager.config import settings
from schema_manager.metrics import set_service_info

logger = structlog.get_logger()

router = APIRouter(tags=["metrics"])


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Prometheus metrics endpoint",
    description="Returns metrics in Prometheus text format for scraping.",
)
async def get_metrics():
    """
    Expose Prometheus metrics.

    This endpoint is intentionally not authenticated to allow
    Prometheus scraping without credentials.
    """
    set_service_info(version=settings.api_version, schema=settings.db_schema)

    return PlainTextResponse(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
