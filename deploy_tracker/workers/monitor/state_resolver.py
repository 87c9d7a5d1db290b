"""Derive the pull request state of one work item.

A refresh observes the pull request, its combined commit status and its
activity counters. Observations are applied to the work item only after all
of them were fetched, so a failure part way leaves the previous state intact.
The resolver never raises; failures end up in ``last_error_message``.
"""

import logging

from ...config.models import NotificationPreferences
from ...github.client import GitHubClient
from ...integrations.notifier import Notifier
from ...models import PRState, SourceRepoConfig, WorkItem
from ...models.base import utcnow
from .change_detection import detect_notification_events
from .models import NotificationEvent, NotificationSignalSnapshot, RefreshOutcome
from .tag_resolution import WorkflowTagResolver

logger = logging.getLogger(__name__)


def _error_text(error: Exception) -> str:
    return str(error) or error.__class__.__name__


class WorkItemStateResolver:
    """Refreshes a single work item against GitHub."""

    def __init__(
        self,
        github: GitHubClient,
        notifier: Notifier,
        tag_resolver: WorkflowTagResolver | None = None,
    ):
        self.github = github
        self.notifier = notifier
        self.tag_resolver = tag_resolver or WorkflowTagResolver(github)

    async def refresh(
        self,
        item: WorkItem,
        source_repo: SourceRepoConfig | None,
        preferences: NotificationPreferences,
    ) -> RefreshOutcome:
        """Refresh ``item`` in place and report what happened."""
        previous = NotificationSignalSnapshot.capture(item)
        events: list[NotificationEvent] = []
        resolved_tag: str | None = None
        error: str | None = None

        try:
            pr = await self.github.find_open_or_recent_pr(
                item.source_repo_full_name, item.local_branch
            )

            if pr is None:
                item.clear_pull_request()
                logger.debug(f"{item.ticket_id}: no pull request for {item.local_branch}")
            else:
                pr_state = PRState.from_provider(pr.state, merged=pr.merged_at is not None)
                check_state = await self.github.commit_status(
                    item.source_repo_full_name, pr.head_sha
                )
                signals = await self.github.pull_request_signals(
                    item.source_repo_full_name, pr.number
                )

                observed = NotificationSignalSnapshot(
                    pr_state=pr_state,
                    check_state=check_state,
                    review_requested_count=signals.review_requested_count,
                    issue_comment_count=signals.issue_comment_count,
                    review_comment_count=signals.review_comment_count,
                )

                item.pr_number = pr.number
                item.pr_url = pr.url
                item.head_sha = pr.head_sha
                item.pr_state = pr_state
                item.check_state = check_state
                item.review_requested_count = max(
                    item.review_requested_count, signals.review_requested_count
                )
                item.issue_comment_count = max(
                    item.issue_comment_count, signals.issue_comment_count
                )
                item.review_comment_count = max(
                    item.review_comment_count, signals.review_comment_count
                )

                events = detect_notification_events(
                    item.ticket_id, previous, observed, preferences
                )
                self._deliver(events)

                if pr_state == PRState.MERGED and not item.latest_tag:
                    resolved_tag = await self._resolve_tag(item, source_repo, pr.base_branch)

            item.last_error_message = None

        except Exception as e:
            error = _error_text(e)
            item.last_error_message = error
            logger.warning(f"Refresh of {item.ticket_id} ({item.id}) failed: {error}")

        now = utcnow()
        item.last_synced_at = now
        item.updated_at = now

        return RefreshOutcome(
            item_id=item.id,
            success=error is None,
            events=events,
            error=error,
            tag_resolved=resolved_tag,
        )

    async def _resolve_tag(
        self, item: WorkItem, source_repo: SourceRepoConfig | None, base_branch: str
    ) -> str | None:
        if source_repo is None or not source_repo.workflow_identifier:
            logger.debug(
                f"{item.ticket_id}: no workflow configured for "
                f"{item.source_repo_full_name}, skipping tag resolution"
            )
            return None

        branch = source_repo.default_target_branch or base_branch
        resolved = await self.tag_resolver.resolve_tag(
            item.source_repo_full_name, source_repo.workflow_identifier, branch
        )
        item.latest_tag = resolved.tag
        return resolved.tag

    def _deliver(self, events: list[NotificationEvent]) -> None:
        for event in events:
            try:
                self.notifier.notify(event.title, event.body)
            except Exception as e:
                logger.warning(f"Notification '{event.title}' was not delivered: {e}")
