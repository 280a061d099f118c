from typing import Generic, TypeVar, Type, Optional
from uuid import UUID
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.utils.logging import get_logger

# Define a generic type for SQLAlchemy models
ModelType = TypeVar("ModelType")

LOGGER = get_logger(__name__)


def utcnow() -> datetime:
    """Timezone-aware current timestamp used for created_at/updated_at."""
    return datetime.now(timezone.utc)


class BaseRepository(Generic[ModelType]):
    """Base repository implementing common CRUD operations.

    Repositories only ``flush``; the calling service owns the unit of work and
    decides when to commit or roll back.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model
        self.logger = LOGGER

    async def get_by_id(self, id: UUID, for_update: bool = False) -> Optional[ModelType]:
        """Get a record by its ID.

        Args:
            id: The UUID of the record
            for_update: Lock the row until the surrounding transaction ends

        Returns:
            The record if found, None otherwise
        """
        try:
            query = select(self.model).where(self.model.id == id)
            if for_update:
                query = query.with_for_update().execution_options(populate_existing=True)
            result = await self.session.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error retrieving {self.model.__name__} by ID {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def create(self, **kwargs) -> ModelType:
        """Create a new record and flush it so generated fields are populated.

        Args:
            **kwargs: Fields and values for the new record

        Returns:
            The created record
        """
        try:
            instance = self.model(**kwargs)
            self.session.add(instance)
            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error creating {self.model.__name__}: {str(e)}",
                exc_info=True
            )
            raise

    async def update(self, id: UUID, **kwargs) -> Optional[ModelType]:
        """Update an existing record.

        Args:
            id: The UUID of the record to update
            **kwargs: Fields and values to update

        Returns:
            The updated record if found, None otherwise
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return None

            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)

            if hasattr(instance, "updated_at"):
                setattr(instance, "updated_at", utcnow())

            await self.session.flush()
            return instance
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error updating {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID.

        Args:
            id: The UUID of the record to delete

        Returns:
            True if deleted, False if not found
        """
        try:
            instance = await self.get_by_id(id)
            if not instance:
                return False

            await self.session.delete(instance)
            await self.session.flush()
            return True
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error deleting {self.model.__name__} {id}: {str(e)}",
                exc_info=True
            )
            raise
