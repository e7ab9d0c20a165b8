"""Fixtures for HTTP-level tests."""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from usermgmt.config import get_settings
from usermgmt.database.session import get_async_session
from usermgmt.main import create_app


@pytest.fixture
def api_app(session_factory: async_sessionmaker[AsyncSession]):
    """
    The application wired to the per-test database: `get_async_session` is
    overridden so every request gets its own session from the test engine.
    """
    app = create_app(get_settings())

    async def _override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = _override_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app):
    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as ac:
        yield ac
