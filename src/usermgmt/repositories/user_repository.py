"""
User repository for handling user-specific database operations.

This module provides the UserRepository class which extends BaseRepository
with the username-keyed operations: creation, lookup and existence checks by
username, username updates and creation-date range queries.

Uniqueness of usernames is guaranteed by the unique index on `users.username`.
Writes run inside `db_error_handler`, which classifies a rejected write and
raises `DuplicateUsernameError` for a username collision or `StorageError`
for anything else.
"""

import time
import uuid
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
import logging

from usermgmt.models.user import User
from usermgmt.exceptions.mapper import db_error_handler
from usermgmt.exceptions.base import StorageError, InvalidInputError
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """
    Repository for User entity operations.

    Inherits lookup by id, paginated listing, count and delete from `BaseRepository`.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create(self, username: str) -> User:
        """
        Insert a new user with a freshly generated id and the current UTC time.

        The row is flushed (not committed) so constraint violations surface here;
        committing is the caller's unit of work.

        Raises:
            DuplicateUsernameError: If the unique index rejects the username.
            StorageError: For any other database failure.
        """
        logger.debug("repo.create.start", extra={"model": self.model_name, "operation": "create"})
        start = time.perf_counter()

        async with db_error_handler(self.db, self.model_name, username=username):
            user = User(
                id=str(uuid.uuid4()),
                username=username,
                created_at=datetime.now(timezone.utc),
            )
            self.db.add(user)
            await self.db.flush()

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "repo.create.success",
            extra={
                "model": self.model_name,
                "operation": "create",
                "id": user.id,
                "duration_ms": duration_ms,
            },
        )
        return user

    async def find_by_username(self, username: str) -> User | None:
        """
        Get a user by their username (exact, case-sensitive match).

        Returns:
            The User if found, None otherwise
        """
        try:
            result = await self.db.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()

            if user:
                logger.debug(f"Found user by username: {username}")
            else:
                logger.debug(f"No user found with username: {username}")

            return user
        except Exception as e:
            logger.error(f"Error retrieving user by username {username}: {e}")
            raise StorageError("Failed to retrieve user by username") from e

    async def exists_by_username(self, username: str) -> bool:
        """
        Check whether a username is taken without loading the row.
        """
        try:
            query = select(select(User.id).where(User.username == username).exists())
            result = await self.db.execute(query)
            exists = bool(result.scalar())

            logger.debug("repo.exists_by_username", extra={"username": username, "exists": exists})
            return exists

        except Exception as e:
            logger.error(f"Error checking username existence {username}: {e}")
            raise StorageError("Failed to check username existence") from e

    async def update_username(self, user_id: str, new_username: str) -> bool:
        """
        Change the username of an existing user.

        Returns:
            True if a row was updated, False if no user has that id.

        Raises:
            DuplicateUsernameError: If another user already holds `new_username`.
            StorageError: For any other database failure.
        """
        logger.info("repo.update_username.start", extra={"user_id": user_id})

        async with db_error_handler(self.db, self.model_name, username=new_username):
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(username=new_username)
                .execution_options(synchronize_session="fetch")
            )
            result = await self.db.execute(stmt)

        updated = result.rowcount > 0
        if updated:
            logger.info("repo.update_username.success", extra={"user_id": user_id})
        else:
            logger.warning(f"No user found with ID {user_id} to update", extra={"user_id": user_id})
        return updated

    async def find_created_between(self, start: datetime, end: datetime) -> list[User]:
        """
        Users whose `created_at` lies in [start, end] (both inclusive), oldest first.
        """
        if start is None or end is None:
            raise InvalidInputError("start and end are required", fields=["start", "end"])

        try:
            query = (
                select(User)
                .where(User.created_at.between(start, end))
                .order_by(User.created_at.asc(), User.id.asc())
            )
            result = await self.db.execute(query)
            users = list(result.scalars().all())

            logger.debug(f"Found {len(users)} users created between {start} and {end}")
            return users

        except Exception as e:
            logger.error(f"Error retrieving users by creation date range: {e}")
            raise StorageError("Failed to retrieve users by creation date range") from e
