"""Notification delta between two work item snapshots.

Each category fires at most once per refresh, and only when its preference
flag is enabled:

- merged: the PR state became Merged
- checks failed: the check state became Failing
- review requested: the review request count went up
- PR comments: the issue or review comment count went up (one combined event)
"""

import logging

from ...config.models import NotificationPreferences
from ...models import CheckState, NotificationCategory, PRState
from .models import NotificationEvent, NotificationSignalSnapshot

logger = logging.getLogger(__name__)


def detect_notification_events(
    ticket_id: str,
    previous: NotificationSignalSnapshot,
    current: NotificationSignalSnapshot,
    preferences: NotificationPreferences,
) -> list[NotificationEvent]:
    """Compute the notifications raised by moving from ``previous`` to ``current``."""
    events: list[NotificationEvent] = []

    if (
        preferences.merged
        and previous.pr_state != PRState.MERGED
        and current.pr_state == PRState.MERGED
    ):
        events.append(
            NotificationEvent(
                NotificationCategory.MERGED,
                "PR merged",
                f"{ticket_id} merged successfully.",
            )
        )

    if (
        preferences.checks_failed
        and previous.check_state != CheckState.FAILING
        and current.check_state == CheckState.FAILING
    ):
        events.append(
            NotificationEvent(
                NotificationCategory.CHECKS_FAILED,
                "Checks failed",
                f"{ticket_id} has failing checks.",
            )
        )

    if (
        preferences.review_requested
        and current.review_requested_count > previous.review_requested_count
    ):
        events.append(
            NotificationEvent(
                NotificationCategory.REVIEW_REQUESTED,
                "Review requested",
                f"{ticket_id} has a new review request.",
            )
        )

    if preferences.pr_comments and (
        current.issue_comment_count > previous.issue_comment_count
        or current.review_comment_count > previous.review_comment_count
    ):
        events.append(
            NotificationEvent(
                NotificationCategory.PR_COMMENTS,
                "New PR comments",
                f"{ticket_id} received new PR comments.",
            )
        )

    if events:
        logger.debug(
            f"{ticket_id}: {', '.join(event.category.value for event in events)}"
        )
    return events
