"""Prometheus metrics definitions for the Schema Manager service.

This module defines all Prometheus metrics used for observability:
- HTTP request metrics (count, duration, in-flight)
- Schema operation metrics (per action outcome, duration)
- Catalog statement metrics (per RPC function)
"""

import time
from prometheus_client import Counter, Histogram, Gauge, Info

# =============================================================================
# Service Health Metrics
# =============================================================================

SERVICE_UP = Gauge(
    "schema_manager_up",
    "Whether the Schema Manager service is up (1) or down (0)"
)

SERVICE_START_TIME = Gauge(
    "schema_manager_start_time_seconds",
    "Unix timestamp when the service started"
)

SERVICE_START_TIME.set(time.time())
SERVICE_UP.set(1)

SERVICE_INFO = Info(
    "schema_manager_service",
    "Schema Manager service information"
)

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "schema_manager_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "schema_manager_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_IN_FLIGHT = Gauge(
    "schema_manager_requests_in_flight",
    "Number of HTTP requests currently being processed",
    ["method"]
)

# =============================================================================
# Error Metrics
# =============================================================================

ERROR_COUNT = Counter(
    "schema_manager_errors_total",
    "Total number of errors by type",
    ["type", "endpoint"]
)

# =============================================================================
# Schema Operation Metrics
# =============================================================================

OPERATION_COUNT = Counter(
    "schema_manager_operations_total",
    "Total number of schema operations",
    ["operation", "status"]
)

OPERATION_DURATION = Histogram(
    "schema_manager_operation_duration_seconds",
    "Schema operation duration in seconds",
    ["operation"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

CATALOG_STATEMENT_COUNT = Counter(
    "schema_manager_catalog_statements_total",
    "Total number of statements sent to the catalog",
    ["function", "status"]
)

CATALOG_STATEMENT_DURATION = Histogram(
    "schema_manager_catalog_statement_duration_seconds",
    "Catalog statement round-trip duration in seconds",
    ["function"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)


def set_service_info(version: str, schema: str) -> None:
    """Set service info labels."""
    SERVICE_INFO.info({
        "version": version,
        "db_schema": schema,
    })
