"""Catalog access through Supabase.

The catalog is a Postgres database behind a Supabase project. Two RPC
functions (see ``sql/schema_manager_rpc.sql``) are the only primitives the
service needs: one executes a DDL statement, the other runs a read-only
query and returns its rows as JSON.

Clients are created per request. Nothing is cached between calls.
"""

import json
import time
from typing import Any

import httpx
import structlog
from postgrest.exceptions import APIError
from supabase import Client, ClientOptions, create_client

from schema_manager.config import settings
from schema_manager.errors import CatalogError, ServiceConfigurationError
from schema_manager.metrics import CATALOG_STATEMENT_COUNT, CATALOG_STATEMENT_DURATION

logger = structlog.get_logger(__name__)


def _client_options() -> ClientOptions:
    """Client options with an explicit HTTP timeout for catalog calls."""
    options = ClientOptions()
    options.httpx_client = httpx.Client(timeout=httpx.Timeout(settings.catalog_timeout))
    return options


def create_supabase_client(key: str | None) -> Client:
    """
    Create a Supabase client for the configured project.

    Args:
        key: The API key defining the privilege tier (anon or service role)

    Raises:
        ServiceConfigurationError: If the project URL or key is not configured
    """
    if not settings.supabase_url or not key:
        missing = [name for name, present in settings.catalog_configured.items() if not present]
        logger.error("catalog_not_configured", missing=missing)
        raise ServiceConfigurationError("Catalog connection is not configured")
    return create_client(settings.supabase_url, key, options=_client_options())


class SchemaCatalog:
    """Elevated-privilege catalog access: DDL execution and read-only queries."""

    def __init__(
        self,
        client: Client,
        ddl_rpc: str = "exec_ddl",
        query_rpc: str = "exec_query",
        http_client: httpx.Client | None = None,
    ):
        self.client = client
        self.http_client = http_client
        self.ddl_rpc = ddl_rpc
        self.query_rpc = query_rpc

    @classmethod
    def from_settings(cls) -> "SchemaCatalog":
        """Build a catalog backed by the service role key."""
        client = create_supabase_client(settings.supabase_service_role_key)
        return cls(
            client,
            ddl_rpc=settings.ddl_rpc,
            query_rpc=settings.query_rpc,
            http_client=client.options.httpx_client,
        )

    def _call(self, function: str, sql: str) -> Any:
        start_time = time.perf_counter()
        try:
            response = self.client.rpc(function, {"sql_text": sql}).execute()
        except APIError as e:
            CATALOG_STATEMENT_COUNT.labels(function=function, status="error").inc()
            logger.warning("catalog_statement_failed", function=function, error=e.message)
            raise CatalogError(e.message or "Catalog statement failed") from e
        except httpx.HTTPError as e:
            CATALOG_STATEMENT_COUNT.labels(function=function, status="error").inc()
            logger.warning("catalog_unreachable", function=function, error=str(e))
            raise CatalogError(f"Catalog request failed: {e}") from e
        finally:
            CATALOG_STATEMENT_DURATION.labels(function=function).observe(
                time.perf_counter() - start_time
            )

        CATALOG_STATEMENT_COUNT.labels(function=function, status="success").inc()
        return response.data

    def exec_ddl(self, sql: str) -> None:
        """Execute a single DDL statement."""
        logger.debug("catalog_exec_ddl", sql=sql)
        self._call(self.ddl_rpc, sql)

    def exec_query(self, sql: str) -> list[dict[str, Any]]:
        """Execute a read-only query and return its rows."""
        logger.debug("catalog_exec_query", sql=sql)
        data = self._call(self.query_rpc, sql)
        # exec_query returns json; older deployments return it as text
        if isinstance(data, str):
            data = json.loads(data)
        return data or []

    def close(self) -> None:
        """Release the HTTP client used for catalog calls."""
        if self.http_client is not None:
            self.http_client.close()
            self.http_client = None
