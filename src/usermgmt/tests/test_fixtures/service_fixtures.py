"""Fixtures for service tests."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from usermgmt.repositories.user_repository import UserRepository
from usermgmt.services.user_service import UserService


@pytest.fixture
def user_service(user_repository: UserRepository) -> UserService:
    """
    UserService over the shared test session (`db_session`).
    """
    return UserService(user_repository)


@pytest.fixture
async def make_service(session_factory: async_sessionmaker[AsyncSession]):
    """
    Factory returning services that each own a separate session, i.e. separate
    connections. Used to race writers against each other. Sessions are closed at teardown.

    Usage:
        first, second = make_service(), make_service()
    """
    sessions: list[AsyncSession] = []

    def _make() -> UserService:
        session = session_factory()
        sessions.append(session)
        return UserService(UserRepository(session))

    yield _make

    for session in sessions:
        await session.close()
