"""Base repository for policy store tables.

Repositories flush so generated ids and constraint errors surface inside
the caller's transaction, but they never commit.
"""

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_engine.domain.exceptions import ResourceNotFoundException
from rbac_engine.infrastructure.persistence.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Session-bound access to one mapped table."""

    # Resource type reported by require() when a row is missing.
    resource_type: ClassVar[str] = "record"

    def __init__(self, db: AsyncSession, model: type[ModelType]) -> None:
        self.db = db
        self.model = model

    async def get_by_id(self, entity_id: str) -> ModelType | None:
        model: Any = self.model
        result = await self.db.execute(select(self.model).where(model.id == entity_id))
        return result.scalar_one_or_none()

    async def require(self, entity_id: str) -> ModelType:
        """Like get_by_id, but a missing row is an error.

        Raises:
            ResourceNotFoundException: If no row has this id.
        """
        row = await self.get_by_id(entity_id)
        if row is None:
            raise ResourceNotFoundException(self.resource_type, entity_id)
        return row

    async def create(self, obj: ModelType) -> ModelType:
        """Insert and reload so server defaults (timestamps) are populated."""
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def save(self, obj: ModelType) -> ModelType:
        await self.db.flush()
        await self.db.refresh(obj)
        return obj
