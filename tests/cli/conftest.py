"""Fixtures for CLI tests."""

import pytest

from schema_manager_cli.main import state


@pytest.fixture
def mock_config(monkeypatch):
    """Mock CLI configuration."""
    monkeypatch.setenv("SCHEMA_MANAGER_URL", "http://test-api")
    monkeypatch.setenv("SCHEMA_MANAGER_TOKEN", "test-token")


@pytest.fixture(autouse=True)
def reset_state():
    """Global options are set per invocation; start every test from defaults."""
    state.json_output = False
    state.verbose = False
    yield
