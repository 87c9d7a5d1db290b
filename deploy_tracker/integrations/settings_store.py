"""Snapshot of repository settings kept outside the database.

The snapshot lets a fresh database pick up the source and deployment
repository configuration the user entered before.
"""

import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from ..repositories import DeploymentRepoConfigRepository, SourceRepoConfigRepository

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SettingsStoreError(Exception):
    """Raised when the settings snapshot cannot be read or written."""

    pass


class PersistedSourceRepo(BaseModel):
    repo_url: str
    repo_full_name: str
    local_path: str
    default_target_branch: str = "main"
    workflow_identifier: str


class PersistedDeploymentRepo(BaseModel):
    repo_url: str
    repo_full_name: str
    local_path: str
    selected_environment_branch: str = "qa"


class PersistedSettings(BaseModel):
    schema_version: int
    source_repos: list[PersistedSourceRepo] = Field(default_factory=list)
    deployment_repos: list[PersistedDeploymentRepo] = Field(default_factory=list)


class SettingsStore:
    """Saves and restores repository settings as a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    async def save(self, session: AsyncSession) -> int:
        """Write every repository configuration to the snapshot file.

        Returns:
            Number of configurations written
        """
        source_repos = await SourceRepoConfigRepository(session).list_all()
        deployment_repos = await DeploymentRepoConfigRepository(session).list_all()

        snapshot = PersistedSettings(
            schema_version=SCHEMA_VERSION,
            source_repos=[
                PersistedSourceRepo(
                    repo_url=repo.repo_url,
                    repo_full_name=repo.repo_full_name,
                    local_path=repo.local_path,
                    default_target_branch=repo.default_target_branch,
                    workflow_identifier=repo.workflow_identifier,
                )
                for repo in source_repos
            ],
            deployment_repos=[
                PersistedDeploymentRepo(
                    repo_url=repo.repo_url,
                    repo_full_name=repo.repo_full_name,
                    local_path=repo.local_path,
                    selected_environment_branch=repo.selected_environment_branch,
                )
                for repo in deployment_repos
            ],
        )

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SettingsStoreError(f"Failed to write settings to {self.path}: {e}") from e

        count = len(snapshot.source_repos) + len(snapshot.deployment_repos)
        logger.info(f"Saved {count} repository settings to {self.path}")
        return count

    async def restore_if_needed(self, session: AsyncSession) -> bool:
        """Load the snapshot into empty configuration tables.

        Nothing happens when either table already has rows, when no snapshot
        exists, or when the snapshot has a different schema version.

        Returns:
            True if settings were restored
        """
        source_repository = SourceRepoConfigRepository(session)
        deployment_repository = DeploymentRepoConfigRepository(session)
        if await source_repository.count_all() or await deployment_repository.count_all():
            return False

        if not self.path.exists():
            return False

        try:
            raw = self.path.read_text(encoding="utf-8")
            snapshot = PersistedSettings.model_validate_json(raw)
        except OSError as e:
            raise SettingsStoreError(f"Failed to read settings from {self.path}: {e}") from e
        except ValidationError as e:
            raise SettingsStoreError(f"Invalid settings file {self.path}: {e}") from e

        if snapshot.schema_version != SCHEMA_VERSION:
            logger.debug(
                f"Skipping settings restore: schema version {snapshot.schema_version} "
                f"!= {SCHEMA_VERSION}"
            )
            return False

        for source in snapshot.source_repos:
            await source_repository.create(**source.model_dump())
        for deployment in snapshot.deployment_repos:
            await deployment_repository.create(**deployment.model_dump())

        logger.info(
            f"Restored {len(snapshot.source_repos)} source and "
            f"{len(snapshot.deployment_repos)} deployment repositories"
        )
        return True
