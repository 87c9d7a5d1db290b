"""WorkItem repository."""

import uuid
from collections.abc import Iterable

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import WorkItem
from .base import BaseRepository


class WorkItemRepository(BaseRepository[WorkItem]):
    """Repository for WorkItem operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, WorkItem)

    def _build_base_query(self) -> Select[tuple[WorkItem]]:
        # Newest first, matching how items are listed to the user
        return select(WorkItem).order_by(WorkItem.created_at.desc())

    async def get_by_ids(self, item_ids: Iterable[uuid.UUID]) -> list[WorkItem]:
        """Get the work items with the given ids; unknown ids are ignored."""
        ids = list(item_ids)
        if not ids:
            return []
        query = self._build_base_query().where(WorkItem.id.in_(ids))
        return await self._execute_query(query)

    async def get_by_ticket(self, ticket_id: str) -> list[WorkItem]:
        """Get all work items for a ticket."""
        query = self._build_base_query().where(WorkItem.ticket_id == ticket_id.upper())
        return await self._execute_query(query)

    async def get_by_repo(self, repo_full_name: str) -> list[WorkItem]:
        """Get all work items of a source repository."""
        query = self._build_base_query().where(
            WorkItem.source_repo_full_name == repo_full_name
        )
        return await self._execute_query(query)

    async def get_branch_names(self, repo_full_name: str | None = None) -> list[str]:
        """Local branch names already used by work items."""
        query = select(WorkItem.local_branch)
        if repo_full_name is not None:
            query = query.where(WorkItem.source_repo_full_name == repo_full_name)
        result = await self.session.execute(query)
        return list(result.scalars().all())
