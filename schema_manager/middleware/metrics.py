"""Prometheus metrics middleware for HTTP request instrumentation.

Collects HTTP request metrics:
- Request count by method, endpoint, status code
- Request duration histogram
- In-flight requests gauge
"""

import time
import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from schema_manager.metrics import (
    REQUEST_COUNT,
    REQUEST_DURATION,
    REQUEST_IN_FLIGHT,
)

logger = structlog.get_logger()

KNOWN_PATHS = {"/", "/health", "/schema-manager"}


def normalize_path(path: str) -> str:
    """
    Normalize path for metrics labels to avoid high cardinality.

    Known endpoints keep their path, anything else is reported as ``/other``.

    Examples:
        /schema-manager -> /schema-manager
        /schema-manager/ -> /schema-manager
        /wp-admin/login.php -> /other
    """
    normalized = "/" + path.strip("/")
    return normalized if normalized in KNOWN_PATHS else "/other"


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware that collects Prometheus metrics for HTTP requests.

    Metrics collected:
    - schema_manager_requests_total: Counter by method, endpoint, status_code
    - schema_manager_request_duration_seconds: Histogram by method, endpoint
    - schema_manager_requests_in_flight: Gauge by method
    """

    # Endpoints to skip (internal/debug endpoints)
    SKIP_PATHS = {"/metrics", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        method = request.method

        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        endpoint = normalize_path(request.url.path)

        REQUEST_IN_FLIGHT.labels(method=method).inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        except Exception:
            status_code = "500"
            raise
        finally:
            duration = time.perf_counter() - start_time
            REQUEST_DURATION.labels(method=method, endpoint=endpoint).observe(duration)
            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code
            ).inc()
            REQUEST_IN_FLIGHT.labels(method=method).dec()

        return response
