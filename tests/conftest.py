"""
tests/conftest.py -- Shared test fixtures for authgate integration tests.

This module provides:
  - _patch_lifespan(): wires fake collaborators into app.state, bypassing
    real Firebase initialization
  - gateway: TestClient plus the fakes behind it, fresh for every test
  - record_store: a UserRecordStore over an empty in-memory Firestore

The identity provider is a FakeIdentityProvider wrapped in
MagicMock(wraps=...): calls go through to the fake, and every method keeps
call_count / call_args for assertions. Overriding side_effect on a method
replaces the fake's behaviour for that test only.

Environment must be set before any api/ import: get_settings() and the
slowapi limiter read it at import time.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

# CRITICAL: set before importing api.main
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("WEB_API_KEY", "test-web-api-key")

import pytest
from fakes import FakeFirestore, FakeIdentityProvider
from fastapi.testclient import TestClient

from api.main import app
from auth.provider import FirebaseIdentityProvider
from auth.service import AccountService
from auth.store import UserRecordStore

USERS = "users"


# ---------------------------------------------------------------------------
# Lifespan patch
# ---------------------------------------------------------------------------


def _patch_lifespan(provider, store: UserRecordStore, service: AccountService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.identity_provider = provider
        app.state.user_store = store
        app.state.account_service = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_db() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def record_store(fake_db: FakeFirestore) -> UserRecordStore:
    return UserRecordStore(fake_db, collection=USERS)


@pytest.fixture
def fake_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def provider(fake_provider: FakeIdentityProvider) -> MagicMock:
    return MagicMock(spec=FirebaseIdentityProvider, wraps=fake_provider)


@pytest.fixture
def gateway(
    provider: MagicMock, fake_db: FakeFirestore, record_store: UserRecordStore
) -> Generator[tuple[TestClient, MagicMock, FakeFirestore], None, None]:
    """Yield (client, provider, fake_db) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan, so
    tests hit real route handlers, the real verification dependency and the
    real AccountService / UserRecordStore -- only Firebase itself is faked.
    """
    service = AccountService(provider, record_store)
    app.router.lifespan_context = _patch_lifespan(provider, record_store, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, provider, fake_db
