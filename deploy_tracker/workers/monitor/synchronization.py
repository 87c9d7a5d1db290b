"""Synchronization driver for work item refresh.

Every refresh trigger (command, timer tick) goes through
``SynchronizationDriver.request_refresh``. Refreshes are serialized with a
lock, a request for a scope that is already running joins the running task,
and items within one refresh are processed strictly one after another.
"""

import asyncio
import logging
from datetime import UTC, datetime

from ...config.models import NotificationPreferences
from ...database.connection import DatabaseConnectionManager
from ...repositories import SourceRepoConfigRepository, WorkItemRepository
from .models import RefreshScope, RefreshSummary
from .state_resolver import WorkItemStateResolver

logger = logging.getLogger(__name__)


class SynchronizationDriver:
    """Runs refreshes of stored work items and persists the results."""

    def __init__(
        self,
        database: DatabaseConnectionManager,
        resolver: WorkItemStateResolver,
        preferences: NotificationPreferences | None = None,
    ):
        self.database = database
        self.resolver = resolver
        self.preferences = preferences or NotificationPreferences()

        self._lock = asyncio.Lock()
        self._in_flight: dict[RefreshScope, asyncio.Task[RefreshSummary]] = {}

    async def request_refresh(self, scope: RefreshScope | None = None) -> RefreshSummary:
        """Refresh the work items in ``scope`` (all by default).

        If the same scope is already being refreshed, wait for that run
        instead of starting another one.
        """
        scope = scope or RefreshScope.all()

        task = self._in_flight.get(scope)
        if task is None or task.done():
            task = asyncio.create_task(self._refresh(scope))
            self._in_flight[scope] = task
            task.add_done_callback(lambda done: self._forget(scope, done))
        else:
            logger.debug(f"Joining refresh already running for {scope}")

        # A cancelled waiter must not cancel the run other callers share
        return await asyncio.shield(task)

    def _forget(self, scope: RefreshScope, task: asyncio.Task[RefreshSummary]) -> None:
        if self._in_flight.get(scope) is task:
            del self._in_flight[scope]

    async def cancel_all(self) -> None:
        """Abandon in-flight refreshes. Remote side effects are not rolled back."""
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _refresh(self, scope: RefreshScope) -> RefreshSummary:
        async with self._lock:
            summary = RefreshSummary(scope=scope)
            logger.info(f"Starting refresh of {scope}")

            async with self.database.get_session() as session:
                items_repo = WorkItemRepository(session)
                if scope.item_ids is None:
                    items = await items_repo.list_all()
                else:
                    items = await items_repo.get_by_ids(scope.item_ids)

                source_repos = {
                    repo.repo_full_name: repo
                    for repo in await SourceRepoConfigRepository(session).list_all()
                }

                for item in items:
                    outcome = await self.resolver.refresh(
                        item,
                        source_repos.get(item.source_repo_full_name),
                        self.preferences,
                    )
                    summary.outcomes.append(outcome)
                    # Persist each item as soon as it is done
                    await session.commit()

            summary.completed_at = datetime.now(UTC)
            logger.info(
                f"Refresh of {scope} completed: {summary.succeeded} succeeded, "
                f"{summary.failed} failed"
            )
            return summary

    async def run_periodic(
        self, interval_seconds: float, shutdown_event: asyncio.Event
    ) -> None:
        """Refresh everything every ``interval_seconds`` until shutdown."""
        logger.info(f"Starting refresh loop (interval: {interval_seconds}s)")

        while not shutdown_event.is_set():
            try:
                await self.request_refresh(RefreshScope.all())
            except Exception as e:
                # Continue running despite errors
                logger.error(f"Refresh cycle failed: {e}")

            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=interval_seconds)
                break
            except TimeoutError:
                continue
