"""
Shared fixtures for the deploy tracker test suite.

Why: Most components need a database session, a source repository row and a
     work item; building them the same way everywhere keeps tests short
What: Provides a file-backed SQLite database, sessions and sample rows
How: Uses DatabaseConnectionManager with sqlite+aiosqlite in a temp directory
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from deploy_tracker.config.models import DatabaseConfig
from deploy_tracker.database import DatabaseConnectionManager
from deploy_tracker.models import SourceRepoConfig, WorkItem


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[DatabaseConnectionManager, None]:
    """
    Fresh database with all tables created.

    Why: Repository and driver tests need real SQL behavior
    What: A DatabaseConnectionManager bound to a temp SQLite file
    How: Creates the schema up front and disposes the engine afterwards
    """
    manager = DatabaseConnectionManager(
        DatabaseConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")
    )
    await manager.create_all()
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def session(
    database: DatabaseConnectionManager,
) -> AsyncGenerator[AsyncSession, None]:
    """Session that commits when the test body finishes."""
    async with database.get_session() as session:
        yield session


@pytest.fixture
def source_repo() -> SourceRepoConfig:
    """Source repository configuration for acme/app."""
    return SourceRepoConfig(
        repo_full_name="acme/app",
        repo_url="https://github.com/acme/app.git",
        local_path="/tmp/acme-app",
        default_target_branch="main",
        workflow_identifier="build.yml",
    )


@pytest.fixture
def work_item() -> WorkItem:
    """Work item for US100 on its first feature branch."""
    return WorkItem(
        ticket_id="US100",
        source_repo_full_name="acme/app",
        local_branch="feature/starship/US100-1",
    )
