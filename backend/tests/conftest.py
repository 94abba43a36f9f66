"""
Pytest configuration and fixtures.

Service tests run against a mocked AsyncSession; API tests go through
FastAPI's TestClient with the database and the caller overridden.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import get_current_user
from autocrm.main import app
from factories import make_user


# ============================================================
# AsyncSession mock
# ============================================================


@pytest.fixture
def mock_db():
    """AsyncSession mock with the methods the services use."""
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.get = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    db.begin_nested = MagicMock()
    return db


# ============================================================
# Users
# ============================================================


@pytest.fixture
def master_user():
    return make_user("master", full_name="Иван Петров")


@pytest.fixture
def other_master():
    return make_user("master", full_name="Сергей Смирнов")


@pytest.fixture
def admin_user():
    return make_user("admin")


@pytest.fixture
def director_user():
    return make_user("director")


# ============================================================
# API client
# ============================================================


@pytest.fixture
def api_client(mock_db):
    """
    Factory of TestClients acting as the given user.

    Without a user the bearer dependency runs for real, so requests are
    anonymous.
    """

    async def override_get_db():
        yield mock_db

    def build(user=None) -> TestClient:
        app.dependency_overrides[get_db] = override_get_db
        if user is not None:
            app.dependency_overrides[get_current_user] = lambda: user
        return TestClient(app, raise_server_exceptions=False)

    yield build
    app.dependency_overrides.clear()
