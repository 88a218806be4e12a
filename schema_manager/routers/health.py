"""Health check endpoint."""

import structlog
from fastapi import APIRouter, HTTPException, status

from schema_manager.config import settings
from schema_manager.models.responses import ErrorResponse, HealthResponse

logger = structlog.get_logger()
router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse}},
    summary="Health check",
    description="Check if the service is running and the catalog connection is configured.",
)
async def health_check() -> HealthResponse:
    """
    Perform health check.

    Validates:
    - Service is running
    - Supabase URL, anon key and service role key are configured

    The catalog itself is not contacted.
    """
    configured = settings.catalog_configured
    all_configured = all(configured.values())

    logger.info(
        "health_check",
        status="healthy" if all_configured else "unhealthy",
        catalog_configured=configured,
    )

    if not all_configured:
        missing = ", ".join(name for name, present in configured.items() if not present)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Catalog connection is not configured: {missing}",
        )

    return HealthResponse(
        status="healthy",
        version=settings.api_version,
        catalog_configured=True,
        details=configured,
    )
