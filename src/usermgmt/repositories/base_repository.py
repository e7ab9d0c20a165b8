"""
Base repository class providing common database operations.

This class serves as a reusable foundation for repositories that interact with
the database using SQLAlchemy's async sessions. It holds the model-agnostic
operations (lookup by primary key, paginated listing, counting, deletion);
model-specific repositories inherit from it and add their own queries.

Contract shared by every method:
    - absence is a normal result (None / False / empty list), never an error;
    - failures coming from the database surface as `StorageError` with the
      original exception chained as `__cause__`.
"""
from usermgmt.exceptions.base import StorageError, InvalidInputError
from usermgmt.exceptions.mapper import db_error_handler

from typing import TypeVar, Generic, Type
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func
import logging

from usermgmt.database.base import Base

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=Base)

# Setup logging
logger = logging.getLogger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic base repository providing common CRUD operations.

    Type Parameters:
        ModelType: The SQLAlchemy model class this repository manages.
    """

    def __init__(self, model: Type[ModelType], db: AsyncSession):
        """
        Initialize the repository.

        Args:
            model: The SQLAlchemy model class itself (e.g. User, not User()),
                   used to build queries: select(self.model), delete(self.model), ...
            db: The async database session (injected per request).
        """
        self.model = model
        self.db = db

    @property
    def model_name(self) -> str:
        return self.model.__name__

    async def find_by_id(self, entity_id: str) -> ModelType | None:
        """
        Get an entity by its ID.

        Returns:
            The entity if found, otherwise None

        Raises:
            StorageError: If an error occurs during retrieval.
        """
        try:
            result = await self.db.execute(
                select(self.model).where(self.model.id == entity_id)
            )
            entity = result.scalar_one_or_none()

            logger.debug(
                "repo.find_by_id",
                extra={"model": self.model_name, "entity_id": entity_id, "found": entity is not None},
            )
            return entity

        except Exception as e:
            logger.error(f"Error retrieving {self.model_name} by ID {entity_id}: {e}")
            raise StorageError(f"Failed to retrieve {self.model_name}") from e

    async def find_all(self, offset: int = 0, limit: int = 100) -> list[ModelType]:
        """
        Get entities page by page, newest first.

        Rows are ordered by `created_at` DESC with `id` DESC as a tie-breaker, so
        consecutive pages never overlap even when timestamps collide.

        Args:
            offset: Number of entities to skip (must be >= 0).
            limit: Maximum number of entities to return (must be >= 0). No upper bound
                   is enforced here; callers cap page sizes.

        Raises:
            InvalidInputError: If offset or limit is negative.
            StorageError: If the query fails.
        """
        if offset < 0 or limit < 0:
            raise InvalidInputError(
                "offset and limit must be non-negative",
                fields=[name for name, value in (("offset", offset), ("limit", limit)) if value < 0],
            )

        try:
            query = (
                select(self.model)
                .order_by(self.model.created_at.desc(), self.model.id.desc())
                .offset(offset)
                .limit(limit)
            )
            result = await self.db.execute(query)
            entities = list(result.scalars().all())

            logger.debug(
                f"Retrieved {len(entities)} {self.model_name} entities",
                extra={"offset": offset, "limit": limit},
            )
            return entities

        except Exception as e:
            logger.error(f"Error retrieving all {self.model_name}: {e}")
            raise StorageError(f"Failed to retrieve {self.model_name} entities") from e

    async def count(self) -> int:
        """
        Return the total number of rows.
        """
        try:
            result = await self.db.execute(select(func.count()).select_from(self.model))
            count = result.scalar() or 0

            logger.debug(f"Counted {count} {self.model_name} entities")
            return count

        except Exception as e:
            logger.error(f"Error counting {self.model_name}: {e}")
            raise StorageError(f"Failed to count {self.model_name} entities") from e

    async def delete_by_id(self, entity_id: str) -> bool:
        """
        Delete an entity by its ID.

        Returns:
            True if a row was removed, False if nothing matched (deleting twice is a no-op).

        Raises:
            StorageError: For database errors
        """
        async with db_error_handler(self.db, self.model_name):
            result = await self.db.execute(
                delete(self.model).where(self.model.id == entity_id)
            )

        deleted = result.rowcount > 0
        if deleted:
            logger.info("repo.delete.success", extra={"model": self.model_name, "entity_id": entity_id})
        else:
            logger.warning(
                f"{self.model_name} with ID {entity_id} not found for deletion",
                extra={"model": self.model_name, "entity_id": entity_id},
            )
        return deleted


__all__ = ["BaseRepository"]
