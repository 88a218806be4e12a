"""Schema Manager API - FastAPI application."""

import logging
import structlog
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import uuid

from schema_manager.config import settings
from schema_manager.errors import SchemaManagerError
from schema_manager.routers import health, metrics, schema_manager
from schema_manager.middleware.metrics import MetricsMiddleware, normalize_path
from schema_manager.metrics import ERROR_COUNT


def setup_logging() -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if not settings.debug else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.INFO if not settings.debug else logging.DEBUG
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger = structlog.get_logger()
    logger.info(
        "application_startup",
        version=settings.api_version,
        debug=settings.debug,
        db_schema=settings.db_schema,
        catalog_configured=settings.catalog_configured,
    )

    yield

    logger.info("application_shutdown")


# Setup logging before creating app
setup_logging()
logger = structlog.get_logger()

# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    description="""
Schema Manager API for the contracts dashboard.

Lets signed-in dashboard users inspect and extend the database schema at runtime:
- List tables with their columns, keys and references
- Add, rename and delete (empty) columns
- Create tables with row level security and an authenticated-access policy

All operations go through `POST /schema-manager` with a body of the form
`{"action": "<name>", ...}` and a Supabase access token:

```
Authorization: Bearer <access token>
```

Errors are returned as `{"error": "<message>"}`.
    """,
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add metrics middleware (for Prometheus request instrumentation)
app.add_middleware(MetricsMiddleware)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log all requests with timing and request ID."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)

    start_time = time.perf_counter()

    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
    )

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )

    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(SchemaManagerError)
async def schema_manager_exception_handler(request: Request, exc: SchemaManagerError):
    """Render operation errors as {"error": message}."""
    ERROR_COUNT.labels(type=type(exc).__name__, endpoint=normalize_path(request.url.path)).inc()
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render framework HTTP errors (404, 405, 503 from health) in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle uncaught exceptions."""
    endpoint = normalize_path(request.url.path)
    error_type = type(exc).__name__

    ERROR_COUNT.labels(type=error_type, endpoint=endpoint).inc()

    logger.error(
        "unhandled_exception",
        method=request.method,
        path=request.url.path,
        error=str(exc),
        error_type=error_type,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": str(exc) if settings.debug else "Internal server error",
        },
    )


# Include routers
app.include_router(health.router)
app.include_router(schema_manager.router)
app.include_router(metrics.router)


# Root endpoint
@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint - service banner."""
    return {
        "service": settings.api_title,
        "version": settings.api_version,
        "health": "/health",
        "docs": "/docs" if settings.debug else None,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "schema_manager.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
