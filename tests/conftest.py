import os
import sys

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app

# Import all schedule fixtures to make them available
from tests.fixtures.schedule_fixtures import *  # noqa: E402,F401,F403


@pytest.fixture
def test_settings() -> Settings:
    return Settings(ENVIRONMENT="test", DEBUG=False, LOG_LEVEL="WARNING")


@pytest.fixture
async def database(tmp_path):
    """Create a fresh SQLite database for each test."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'test_staff_rota.db'}")
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def db(database: Database) -> AsyncSession:
    """Session used by fixtures and service-level tests."""
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def app(test_settings: Settings, database: Database):
    return create_app(settings=test_settings, database=database)


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client


# Test Authentication Utilities
def get_auth_headers(user_id: int) -> dict[str, str]:
    """
    Generate authentication headers for tests.

    The bearer credential is the actor's user ID, as forwarded by the gateway.
    """
    return {"Authorization": f"Bearer {user_id}"}
