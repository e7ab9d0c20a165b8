"""
Service layer for user management.

`UserService` sits between the HTTP adapter and `UserRepository`:

- validates arguments before anything touches the database (`InvalidInputError`);
- enforces username uniqueness with a pre-check. The pre-check is only a fast
  path: two concurrent writers can both pass it, and the unique index then
  rejects the second write. The repository reports that as the same
  `DuplicateUsernameError`, which is propagated unchanged;
- wraps every write (check + write + commit) in one unit of work;
- returns `UserResponse` value objects, never ORM rows;
- turns anything unexpected, including `StorageError`, into
  `OperationFailedError` with the original exception chained as `__cause__`.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy.ext.asyncio import AsyncSession

from usermgmt.database.session import transaction
from usermgmt.exceptions.base import (
    InvalidInputError,
    DuplicateUsernameError,
    UserNotFoundError,
    OperationFailedError,
)
from usermgmt.repositories.user_repository import UserRepository
from usermgmt.schemas.user import UserResponse, UserPage
from usermgmt.validators.user_validators import (
    require_not_blank,
    validate_username,
    validate_user_id,
)

logger = logging.getLogger(__name__)

# Domain outcomes the caller must see as-is; everything else becomes OperationFailedError.
_PASSTHROUGH_ERRORS = (InvalidInputError, DuplicateUsernameError, UserNotFoundError)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class UserService:
    def __init__(
        self,
        repository: UserRepository,
        session: AsyncSession | None = None,
        *,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ):
        """
        Args:
            repository: the user repository (injected).
            session: session whose transaction is the unit of work; defaults to the
                     repository's own session.
            default_page_size / max_page_size: pagination limits for list_users().
        """
        self.repository = repository
        self.session = session if session is not None else repository.db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    @contextmanager
    def _operation(self, operation: str, failure_message: str, **context) -> Iterator[None]:
        try:
            yield
        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as exc:
            logger.error(
                f"service.{operation}.failed",
                exc_info=True,
                extra={"operation": operation, **context},
            )
            raise OperationFailedError(failure_message) from exc

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_user(self, username: str) -> UserResponse:
        """
        Create a user after checking the username is free.

        Raises:
            InvalidInputError: blank or malformed username.
            DuplicateUsernameError: username taken (pre-check or unique index).
            OperationFailedError: any other failure.
        """
        validate_username(username)
        logger.info("service.create_user.start", extra={"username": username})

        with self._operation("create_user", f"Failed to create user: {username}", username=username):
            async with transaction(self.session):
                if await self.repository.exists_by_username(username):
                    logger.warning(
                        "service.create_user.duplicate_precheck", extra={"username": username}
                    )
                    raise DuplicateUsernameError(username)

                user = await self.repository.create(username)

        logger.info("service.create_user.success", extra={"username": user.username, "user_id": user.id})
        return UserResponse.model_validate(user)

    async def update_username(self, user_id, new_username: str) -> UserResponse:
        """
        Rename a user.

        Raises:
            InvalidInputError: malformed id or username.
            UserNotFoundError: no user with that id.
            DuplicateUsernameError: another user already has `new_username`.
            OperationFailedError: any other failure.
        """
        user_id = validate_user_id(user_id)
        validate_username(new_username)
        logger.info("service.update_username.start", extra={"user_id": user_id})

        with self._operation("update_username", f"Failed to update user: {user_id}", user_id=user_id):
            async with transaction(self.session):
                holder = await self.repository.find_by_username(new_username)
                if holder is not None and holder.id != user_id:
                    logger.warning(
                        "service.update_username.duplicate_precheck",
                        extra={"user_id": user_id, "username": new_username},
                    )
                    raise DuplicateUsernameError(new_username)

                if not await self.repository.update_username(user_id, new_username):
                    raise UserNotFoundError(f"User not found with ID: {user_id}", fields=["id"])

                user = await self.repository.find_by_id(user_id)

        return UserResponse.model_validate(user)

    async def delete_user(self, user_id) -> bool:
        """
        Delete a user. Returns False when the user did not exist (already deleted).
        """
        user_id = validate_user_id(user_id)

        with self._operation("delete_user", f"Failed to delete user: {user_id}", user_id=user_id):
            async with transaction(self.session):
                deleted = await self.repository.delete_by_id(user_id)

        logger.info("service.delete_user.done", extra={"user_id": user_id, "deleted": deleted})
        return deleted

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_user_by_id(self, user_id) -> UserResponse:
        user_id = validate_user_id(user_id)
        logger.debug(f"Retrieving user by ID: {user_id}")

        with self._operation("get_user_by_id", f"Failed to retrieve user by ID: {user_id}", user_id=user_id):
            user = await self.repository.find_by_id(user_id)

        if user is None:
            logger.warning(f"User not found with ID: {user_id}")
            raise UserNotFoundError(f"User not found with ID: {user_id}", fields=["id"])

        return UserResponse.model_validate(user)

    async def get_user_by_username(self, username: str) -> UserResponse:
        require_not_blank(username)
        logger.debug(f"Retrieving user by username: {username}")

        with self._operation("get_user_by_username", f"Failed to retrieve user by username: {username}",
                             username=username):
            user = await self.repository.find_by_username(username)

        if user is None:
            logger.warning(f"User not found with username: {username}")
            raise UserNotFoundError(f"User not found with username: {username}", fields=["username"])

        return UserResponse.model_validate(user)

    async def is_username_available(self, username: str) -> bool:
        require_not_blank(username)

        with self._operation("is_username_available",
                             f"Failed to check username availability: {username}", username=username):
            available = not await self.repository.exists_by_username(username)

        logger.debug(f"Username '{username}' availability: {'available' if available else 'taken'}")
        return available

    async def list_users(self, offset: int = 0, limit: int | None = None) -> UserPage:
        """
        One page of users, newest first, together with the total row count.
        """
        if limit is None:
            limit = self.default_page_size
        if offset is None or offset < 0:
            raise InvalidInputError("offset must be >= 0", fields=["offset"])
        if not 1 <= limit <= self.max_page_size:
            raise InvalidInputError(f"limit must be between 1 and {self.max_page_size}", fields=["limit"])

        with self._operation("list_users", "Failed to list users", offset=offset, limit=limit):
            users = await self.repository.find_all(offset=offset, limit=limit)
            total = await self.repository.count()

        return UserPage(
            items=[UserResponse.model_validate(u) for u in users],
            total=total,
            offset=offset,
            limit=limit,
        )

    async def count_users(self) -> int:
        with self._operation("count_users", "Failed to count users"):
            return await self.repository.count()

    async def find_users_created_between(self, start: datetime, end: datetime) -> list[UserResponse]:
        """
        Users created in [start, end], oldest first. Naive datetimes are taken as UTC.
        """
        if start is None or end is None:
            raise InvalidInputError("start and end are required", fields=["start", "end"])

        start, end = _as_utc(start), _as_utc(end)
        if start > end:
            raise InvalidInputError("start must not be after end", fields=["start", "end"])

        with self._operation("find_users_created_between", "Failed to retrieve users by creation date"):
            users = await self.repository.find_created_between(start, end)

        return [UserResponse.model_validate(u) for u in users]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
