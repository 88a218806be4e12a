"""Caller verification for the Schema Manager API.

Callers present the Supabase access token of a signed-in dashboard user.
The token is verified with the restricted (anon) key before the service
touches the catalog with its own service role key.
"""

from typing import Any

import httpx
import structlog
from supabase import AuthError

from schema_manager.catalog import create_supabase_client
from schema_manager.config import settings
from schema_manager.errors import AuthenticationError

logger = structlog.get_logger(__name__)


def get_token_prefix(token: str) -> str:
    """
    Return a prefix of an access token that is safe to log.

    Example:
        >>> get_token_prefix("eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9.payload.sig")
        'eyJhbGciOi...'
        >>> get_token_prefix("short")
        'short...'
    """
    return token[:10] + "..."


def verify_access_token(token: str) -> dict[str, Any]:
    """
    Verify a caller's access token against Supabase Auth.

    Uses the anon key, never the service role key.

    Args:
        token: The bearer token from the Authorization header

    Returns:
        Dictionary with the user's id, email and role

    Raises:
        AuthenticationError: If the token is rejected or no user is returned
        ServiceConfigurationError: If the Supabase project is not configured
    """
    client = create_supabase_client(settings.supabase_anon_key)
    try:
        response = client.auth.get_user(token)
    except (AuthError, httpx.HTTPError) as e:
        logger.warning(
            "auth_user_rejected",
            token_prefix=get_token_prefix(token),
            error=str(e),
        )
        raise AuthenticationError("Unauthorized") from e
    finally:
        client.options.httpx_client.close()

    user = response.user if response is not None else None
    if user is None:
        logger.warning("auth_user_rejected", token_prefix=get_token_prefix(token))
        raise AuthenticationError("Unauthorized")

    logger.debug("auth_user_verified", user_id=user.id)
    return {"id": user.id, "email": user.email, "role": user.role}
