"""Pytest configuration and fixtures for inventory-sync.

Engines run against the in-memory store in tests/fakes.py. REST adapter
tests use httpx.MockTransport, so no test needs Firestore credentials.
"""

import os

import pytest

from inventory_sync.core.config import Settings, get_settings
from tests.fakes import InMemoryDocumentStore

# Settings are read from the environment; keep a developer's .env or
# exported variables from leaking into tests.
for _var in (
    "FIREBASE_SERVICE_ACCOUNT_KEY",
    "FIREBASE_SERVICE_ACCOUNT_PATH",
    "TELEMETRY_ENABLED",
):
    os.environ.pop(_var, None)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Each test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def settings() -> Settings:
    """Small pages and caps so tests exercise pagination and batch flushing."""
    return Settings(
        _env_file=None,
        view_page_size=2,
        view_prefetch_threshold=1,
        delete_batch_cap=450,
        delete_page_size=100,
    )
