"""
Configuration for pytest

This module contains fixtures and configuration for pytest.
"""

import os

# Settings are read on first import of coinvest, so these must be set first
os.environ["COINVEST_DATABASE_URL"] = "sqlite://"
os.environ.setdefault("COINVEST_ADMIN_TOKEN", "test-admin-token")
os.environ["COINVEST_LOG_TO_FILE"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from typing import Generator  # noqa: E402

from coinvest.main import app  # noqa: E402
from coinvest.api.deps import get_db  # noqa: E402
from tests.utils.factories import make_session  # noqa: E402


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Get a session on a fresh in-memory database"""
    engine, session = make_session()

    # Use the session instead of the default one
    app.dependency_overrides[get_db] = lambda: session

    yield session

    # Clean up
    app.dependency_overrides.pop(get_db, None)
    session.close()
    engine.dispose()


@pytest.fixture(scope="function")
def client(db) -> Generator[TestClient, None, None]:
    """Get a TestClient for testing"""
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def admin_headers():
    """Headers accepted by the admin endpoints"""
    return {"X-Admin-Token": os.environ["COINVEST_ADMIN_TOKEN"]}
