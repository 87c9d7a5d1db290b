"""
Unit tests for the notification delta rule.

Why: Users are notified only about transitions, never about steady state;
     a wrong comparison either spams or hides activity.

What: Tests each category, the combined comments event and preference flags.

How: Builds snapshots directly and compares the returned categories.
"""

from deploy_tracker.config.models import NotificationPreferences
from deploy_tracker.models import CheckState, NotificationCategory, PRState
from deploy_tracker.workers.monitor import (
    NotificationSignalSnapshot,
    detect_notification_events,
)


def _snapshot(
    pr: PRState, checks: CheckState, reviews: int, issues: int, comments: int
) -> NotificationSignalSnapshot:
    return NotificationSignalSnapshot(pr, checks, reviews, issues, comments)


def test_all_categories_fire() -> None:
    """Test the documented example where every category fires."""
    previous = _snapshot(PRState.OPEN, CheckState.PASSING, 0, 2, 1)
    current = _snapshot(PRState.MERGED, CheckState.FAILING, 1, 2, 3)

    events = detect_notification_events(
        "US100", previous, current, NotificationPreferences()
    )

    assert [event.category for event in events] == [
        NotificationCategory.MERGED,
        NotificationCategory.CHECKS_FAILED,
        NotificationCategory.REVIEW_REQUESTED,
        NotificationCategory.PR_COMMENTS,
    ]
    assert events[0].title == "PR merged"
    assert events[0].body == "US100 merged successfully."


def test_issue_comments_alone_fire_single_event() -> None:
    """Test that an issue comment increase alone raises one comments event."""
    previous = _snapshot(PRState.OPEN, CheckState.PASSING, 0, 2, 1)
    current = _snapshot(PRState.OPEN, CheckState.PASSING, 0, 3, 1)

    events = detect_notification_events(
        "US100", previous, current, NotificationPreferences()
    )

    assert [event.category for event in events] == [NotificationCategory.PR_COMMENTS]


def test_steady_state_is_silent() -> None:
    """Test that unchanged merged and failing states do not fire again."""
    snapshot = _snapshot(PRState.MERGED, CheckState.FAILING, 1, 1, 1)

    assert (
        detect_notification_events("US1", snapshot, snapshot, NotificationPreferences())
        == []
    )


def test_decreasing_counters_are_silent() -> None:
    """Test that counters going down raise nothing."""
    previous = _snapshot(PRState.OPEN, CheckState.UNKNOWN, 3, 3, 3)
    current = _snapshot(PRState.OPEN, CheckState.UNKNOWN, 1, 1, 1)

    assert (
        detect_notification_events("US1", previous, current, NotificationPreferences())
        == []
    )


def test_disabled_preferences_suppress_events() -> None:
    """Test that each category respects its flag."""
    previous = _snapshot(PRState.OPEN, CheckState.PASSING, 0, 0, 0)
    current = _snapshot(PRState.MERGED, CheckState.FAILING, 1, 1, 1)
    preferences = NotificationPreferences(
        merged=False, checks_failed=True, review_requested=False, pr_comments=False
    )

    events = detect_notification_events("US1", previous, current, preferences)

    assert [event.category for event in events] == [NotificationCategory.CHECKS_FAILED]
