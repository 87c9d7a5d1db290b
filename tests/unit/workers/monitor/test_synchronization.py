"""
Unit tests for SynchronizationDriver.

Why: Refreshes are triggered from several places at once; they must never
     overlap and their results must reach the database.

What: Tests persistence, scoped refreshes, single-flight joining,
      cancellation and the periodic loop.

How: Uses the SQLite database fixture with a mocked resolver whose refresh
     mutates the item it is given.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from deploy_tracker.database import DatabaseConnectionManager
from deploy_tracker.models import PRState, SourceRepoConfig, WorkItem
from deploy_tracker.repositories import SourceRepoConfigRepository, WorkItemRepository
from deploy_tracker.workers.monitor import (
    RefreshOutcome,
    RefreshScope,
    SynchronizationDriver,
)


async def _seed(database: DatabaseConnectionManager, *tickets: str) -> list[WorkItem]:
    async with database.get_session() as session:
        await SourceRepoConfigRepository(session).create(
            repo_full_name="acme/app",
            repo_url="https://github.com/acme/app.git",
            local_path="/tmp/acme-app",
            workflow_identifier="build.yml",
        )
        repo = WorkItemRepository(session)
        return [
            await repo.add(
                WorkItem(
                    ticket_id=ticket,
                    source_repo_full_name="acme/app",
                    local_branch=f"feature/starship/{ticket}-1",
                )
            )
            for ticket in tickets
        ]


def _merging_resolver() -> AsyncMock:
    async def refresh(item: WorkItem, source_repo, preferences) -> RefreshOutcome:
        item.pr_state = PRState.MERGED
        item.pr_number = 1
        return RefreshOutcome(item_id=item.id, success=True)

    resolver = AsyncMock()
    resolver.refresh.side_effect = refresh
    return resolver


@pytest.mark.asyncio
async def test_refresh_persists_results(database: DatabaseConnectionManager) -> None:
    """Test that every item is refreshed and saved."""
    await _seed(database, "US1", "US2")
    resolver = _merging_resolver()
    driver = SynchronizationDriver(database, resolver)

    summary = await driver.request_refresh()

    assert summary.succeeded == 2
    assert summary.failed == 0
    assert summary.completed_at is not None

    # Source repo config is looked up for each item
    _, source_repo, _ = resolver.refresh.await_args.args
    assert isinstance(source_repo, SourceRepoConfig)
    assert source_repo.workflow_identifier == "build.yml"

    async with database.get_session() as session:
        items = await WorkItemRepository(session).list_all()
    assert {item.pr_state for item in items} == {PRState.MERGED}


@pytest.mark.asyncio
async def test_scoped_refresh(database: DatabaseConnectionManager) -> None:
    """Test that only the requested items are refreshed."""
    first, _ = await _seed(database, "US1", "US2")
    resolver = _merging_resolver()

    summary = await SynchronizationDriver(database, resolver).request_refresh(
        RefreshScope.items(first.id)
    )

    assert [outcome.item_id for outcome in summary.outcomes] == [first.id]
    assert resolver.refresh.await_count == 1


@pytest.mark.asyncio
async def test_concurrent_requests_join(database: DatabaseConnectionManager) -> None:
    """Test that a second request for a running scope shares its result."""
    await _seed(database, "US1")
    release = asyncio.Event()

    async def slow_refresh(item: WorkItem, source_repo, preferences) -> RefreshOutcome:
        await release.wait()
        return RefreshOutcome(item_id=item.id, success=True)

    resolver = AsyncMock()
    resolver.refresh.side_effect = slow_refresh
    driver = SynchronizationDriver(database, resolver)

    first = asyncio.create_task(driver.request_refresh())
    second = asyncio.create_task(driver.request_refresh(RefreshScope.all()))
    await asyncio.sleep(0.05)
    release.set()
    results = await asyncio.gather(first, second)

    assert results[0] is results[1]
    assert resolver.refresh.await_count == 1


@pytest.mark.asyncio
async def test_refreshes_never_overlap(database: DatabaseConnectionManager) -> None:
    """Test that different scopes still run one after another."""
    first, second = await _seed(database, "US1", "US2")
    running = 0
    peak = 0

    async def counting_refresh(item: WorkItem, source_repo, preferences) -> RefreshOutcome:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return RefreshOutcome(item_id=item.id, success=True)

    resolver = AsyncMock()
    resolver.refresh.side_effect = counting_refresh
    driver = SynchronizationDriver(database, resolver)

    await asyncio.gather(
        driver.request_refresh(RefreshScope.items(first.id)),
        driver.request_refresh(RefreshScope.items(second.id)),
        driver.request_refresh(),
    )

    assert peak == 1
    assert resolver.refresh.await_count == 4


@pytest.mark.asyncio
async def test_cancel_all(database: DatabaseConnectionManager) -> None:
    """Test that cancel_all abandons the running refresh."""
    await _seed(database, "US1")
    started = asyncio.Event()

    async def hanging_refresh(item: WorkItem, source_repo, preferences) -> RefreshOutcome:
        started.set()
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    resolver = AsyncMock()
    resolver.refresh.side_effect = hanging_refresh
    driver = SynchronizationDriver(database, resolver)

    request = asyncio.create_task(driver.request_refresh())
    await started.wait()
    await driver.cancel_all()

    with pytest.raises(asyncio.CancelledError):
        await request


@pytest.mark.asyncio
async def test_run_periodic_stops_on_shutdown(
    database: DatabaseConnectionManager,
) -> None:
    """Test that the loop refreshes and exits once shutdown is set."""
    await _seed(database, "US1")
    shutdown = asyncio.Event()

    async def refresh_then_stop(item: WorkItem, source_repo, preferences) -> RefreshOutcome:
        shutdown.set()
        return RefreshOutcome(item_id=item.id, success=True)

    resolver = AsyncMock()
    resolver.refresh.side_effect = refresh_then_stop

    await asyncio.wait_for(
        SynchronizationDriver(database, resolver).run_periodic(3600, shutdown),
        timeout=5,
    )

    assert resolver.refresh.await_count == 1
