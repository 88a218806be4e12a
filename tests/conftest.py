"""Pytest configuration and fixtures."""

from typing import Any

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from schema_manager import dependencies
from schema_manager.config import settings
from schema_manager.dependencies import get_catalog, require_user
from schema_manager.errors import AuthenticationError, CatalogError
from schema_manager.main import app

# Access token the stubbed verifier accepts
TEST_ACCESS_TOKEN = "test_access_token_for_testing"
TEST_USER = {
    "id": "5b0c6f0e-7d6a-4d53-9a3e-2f1c9b8e4a10",
    "email": "contracts@example.com",
    "role": "authenticated",
}


class FakeCatalog:
    """In-memory stand-in for SchemaCatalog that records every statement.

    ``query_results`` is a queue: each exec_query call pops the next row list.
    ``ddl_failures`` maps a statement fragment to the catalog error message
    raised when a DDL statement contains it.
    """

    def __init__(self):
        self.ddl: list[str] = []
        self.queries: list[str] = []
        self.query_results: list[list[dict[str, Any]]] = []
        self.ddl_failures: dict[str, str] = {}
        self.closed = False

    def exec_ddl(self, sql: str) -> None:
        self.ddl.append(sql)
        for fragment, message in self.ddl_failures.items():
            if fragment in sql:
                raise CatalogError(message)

    def exec_query(self, sql: str) -> list[dict[str, Any]]:
        self.queries.append(sql)
        if self.query_results:
            return self.query_results.pop(0)
        return []

    def close(self) -> None:
        self.closed = True


def _verify_test_token(token: str) -> dict[str, Any]:
    if token != TEST_ACCESS_TOKEN:
        raise AuthenticationError("Unauthorized")
    return dict(TEST_USER)


@pytest.fixture
def fake_catalog():
    """Create an empty recording catalog."""
    return FakeCatalog()


@pytest.fixture
def client(fake_catalog, monkeypatch):
    """Test client whose catalog is the fake and whose verifier accepts TEST_ACCESS_TOKEN."""
    monkeypatch.setattr(dependencies, "verify_access_token", _verify_test_token)
    monkeypatch.setattr(settings, "protected_tables", ["table_settings"])
    monkeypatch.setattr(settings, "system_columns", ["id", "created_at", "updated_at", "user_id"])
    monkeypatch.setattr(settings, "db_schema", "public")

    # Keep the auth dependency in front of the catalog, as in production
    def _fake_get_catalog(user: dict = Depends(require_user)):
        yield fake_catalog

    app.dependency_overrides[get_catalog] = _fake_get_catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Return headers with a valid access token."""
    return {"Authorization": f"Bearer {TEST_ACCESS_TOKEN}"}


@pytest.fixture
def configured_catalog(monkeypatch):
    """Configure Supabase settings with dummy values."""
    monkeypatch.setattr(settings, "supabase_url", "https://project-ref.supabase.co")
    monkeypatch.setattr(settings, "supabase_anon_key", "test-anon-key")
    monkeypatch.setattr(settings, "supabase_service_role_key", "test-service-role-key")
    yield settings


@pytest.fixture
def unconfigured_catalog(monkeypatch):
    """Remove Supabase settings."""
    monkeypatch.setattr(settings, "supabase_url", None)
    monkeypatch.setattr(settings, "supabase_anon_key", None)
    monkeypatch.setattr(settings, "supabase_service_role_key", None)
    yield settings
