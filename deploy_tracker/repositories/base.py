"""Shared data access for tracker entities."""

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import BaseModel

ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """Entity access bound to one session.

    Writes are flushed but never committed; the session owner decides when
    the unit of work ends.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelType]):
        self.session = session
        self.model_class = model_class

    async def create(self, **fields: Any) -> ModelType:
        """Build, persist and reload an entity so server defaults are populated."""
        entity = self.model_class(**fields)
        self.session.add(entity)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def add(self, entity: ModelType) -> ModelType:
        """Persist an entity constructed by the caller."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def get_by_id(self, entity_id: uuid.UUID) -> ModelType | None:
        return await self.session.get(self.model_class, entity_id)

    async def update(self, entity: ModelType, **fields: Any) -> ModelType:
        """Assign column values and flush.

        Raises:
            ValueError: If a field is not a column of the entity
        """
        columns = set(inspect(self.model_class).columns.keys())
        unknown = sorted(set(fields) - columns)
        if unknown:
            raise ValueError(
                f"{self.model_class.__name__} has no column(s): {', '.join(unknown)}"
            )

        for name, value in fields.items():
            setattr(entity, name, value)
        await self.session.flush()
        await self.session.refresh(entity)
        return entity

    async def delete_by_id(self, entity_id: uuid.UUID) -> bool:
        """Delete an entity. Returns False when it does not exist."""
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False

        await self.session.delete(entity)
        await self.session.flush()
        return True

    async def list_all(self) -> list[ModelType]:
        """Every entity in the repository's natural order."""
        return await self._execute_query(self._build_base_query())

    async def count_all(self) -> int:
        result = await self.session.execute(select(func.count(self.model_class.id)))
        return result.scalar_one()

    async def flush(self) -> None:
        """Flush changes made directly on loaded entities."""
        await self.session.flush()

    def _build_base_query(self) -> Select[tuple[ModelType]]:
        """Query for all entities; subclasses add their ordering."""
        return select(self.model_class)

    async def _execute_query(self, query: Select[tuple[ModelType]]) -> list[ModelType]:
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def _execute_single_query(
        self, query: Select[tuple[ModelType]]
    ) -> ModelType | None:
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
