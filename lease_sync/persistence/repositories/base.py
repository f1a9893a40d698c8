"""Base repository with common query helpers."""

from typing import Generic, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from lease_sync.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Base repository with simple CRUD helpers."""

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository with model and session."""
        self.model = model
        self.session = session

    async def get_by_id(self, id) -> ModelType | None:
        """Get entity by primary key."""
        return await self.session.get(self.model, id)

    async def create(self, **data) -> ModelType:
        """Create and commit a new entity."""
        instance = self.model(**data)
        self.session.add(instance)
        await self.session.commit()
        await self.session.refresh(instance)
        return instance
