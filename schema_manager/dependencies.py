"""FastAPI dependencies for authentication and catalog access.

The catalog dependency depends on the authenticated user, so an
unauthenticated request fails before a service role client is created.

Usage in routers:
    @router.post("/schema-manager")
    async def schema_manager(
        user: Annotated[dict, Depends(require_user)],
        catalog: Annotated[SchemaCatalog, Depends(get_catalog)],
    ):
        ...
"""

from typing import Annotated, Any, Iterator

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from schema_manager.auth import verify_access_token
from schema_manager.catalog import SchemaCatalog
from schema_manager.errors import AuthenticationError

logger = structlog.get_logger(__name__)

# Security scheme for Swagger UI; missing credentials are reported by us
security = HTTPBearer(
    scheme_name="Bearer Auth",
    description="Supabase access token of a signed-in user",
    auto_error=False,
)


def get_access_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """
    Extract the access token from the Authorization header.

    Raises:
        AuthenticationError: "No authorization header" if the header is absent,
            "Unauthorized" if it is present but not a Bearer token
    """
    if not request.headers.get("Authorization"):
        logger.warning("auth_missing_credentials")
        raise AuthenticationError("No authorization header")

    if not credentials or not credentials.credentials:
        logger.warning("auth_unsupported_scheme")
        raise AuthenticationError("Unauthorized")

    return credentials.credentials


def require_user(token: Annotated[str, Depends(get_access_token)]) -> dict[str, Any]:
    """Verify the caller and bind their id to the request's log context."""
    user = verify_access_token(token)
    structlog.contextvars.bind_contextvars(user_id=user["id"])
    return user


def get_catalog(
    user: Annotated[dict[str, Any], Depends(require_user)],
) -> Iterator[SchemaCatalog]:
    """Yield a service role catalog for the duration of one request."""
    catalog = SchemaCatalog.from_settings()
    try:
        yield catalog
    finally:
        catalog.close()
