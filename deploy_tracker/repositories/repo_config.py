"""Repositories for source and deployment repository configuration."""

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import DeploymentRepoConfig, SourceRepoConfig
from .base import BaseRepository


class SourceRepoConfigRepository(BaseRepository[SourceRepoConfig]):
    """Repository for SourceRepoConfig operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, SourceRepoConfig)

    def _build_base_query(self) -> Select[tuple[SourceRepoConfig]]:
        return select(SourceRepoConfig).order_by(SourceRepoConfig.repo_full_name)

    async def get_by_full_name(self, repo_full_name: str) -> SourceRepoConfig | None:
        """Get configuration by ``owner/repo``."""
        query = select(SourceRepoConfig).where(
            SourceRepoConfig.repo_full_name == repo_full_name
        )
        return await self._execute_single_query(query)

    async def upsert(self, repo_full_name: str, **fields: str) -> SourceRepoConfig:
        """Create the configuration or update the existing one in place."""
        existing = await self.get_by_full_name(repo_full_name)
        if existing is None:
            return await self.create(repo_full_name=repo_full_name, **fields)
        return await self.update(existing, **fields)


class DeploymentRepoConfigRepository(BaseRepository[DeploymentRepoConfig]):
    """Repository for DeploymentRepoConfig operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session."""
        super().__init__(session, DeploymentRepoConfig)

    def _build_base_query(self) -> Select[tuple[DeploymentRepoConfig]]:
        return select(DeploymentRepoConfig).order_by(
            DeploymentRepoConfig.repo_full_name
        )

    async def get_by_full_name(
        self, repo_full_name: str
    ) -> DeploymentRepoConfig | None:
        """Get configuration by ``owner/repo``."""
        query = select(DeploymentRepoConfig).where(
            DeploymentRepoConfig.repo_full_name == repo_full_name
        )
        return await self._execute_single_query(query)

    async def get_default(self) -> DeploymentRepoConfig | None:
        """First configured deployment repository, if any."""
        query = self._build_base_query().limit(1)
        return await self._execute_single_query(query)

    async def upsert(self, repo_full_name: str, **fields: str) -> DeploymentRepoConfig:
        """Create the configuration or update the existing one in place."""
        existing = await self.get_by_full_name(repo_full_name)
        if existing is None:
            return await self.create(repo_full_name=repo_full_name, **fields)
        return await self.update(existing, **fields)
