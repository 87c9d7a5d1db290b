"""Data models for work item refresh.

These dataclasses carry state between the resolver, the change detector and
the synchronization driver. None of them are persisted.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from ...models import CheckState, NotificationCategory, PRState, WorkItem


@dataclass(frozen=True)
class NotificationSignalSnapshot:
    """The notification-relevant state of a work item at one point in time."""

    pr_state: PRState = PRState.NO_PR
    check_state: CheckState = CheckState.UNKNOWN
    review_requested_count: int = 0
    issue_comment_count: int = 0
    review_comment_count: int = 0

    @classmethod
    def capture(cls, item: WorkItem) -> "NotificationSignalSnapshot":
        """Snapshot the current values of a work item."""
        return cls(
            pr_state=item.pr_state,
            check_state=item.check_state,
            review_requested_count=item.review_requested_count,
            issue_comment_count=item.issue_comment_count,
            review_comment_count=item.review_comment_count,
        )


@dataclass(frozen=True)
class NotificationEvent:
    """One notification raised by a refresh."""

    category: NotificationCategory
    title: str
    body: str

    def __str__(self) -> str:
        """Return human-readable string representation."""
        return f"{self.title}: {self.body}"


@dataclass(frozen=True)
class ResolvedTag:
    """Tag published by a successful build together with its run."""

    tag: str
    run_url: str


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of refreshing a single work item."""

    item_id: uuid.UUID
    success: bool
    events: list[NotificationEvent] = field(default_factory=list)
    error: str | None = None
    tag_resolved: str | None = None

    def __str__(self) -> str:
        """Return human-readable string representation."""
        status = "ok" if self.success else f"failed: {self.error}"
        return f"RefreshOutcome({self.item_id}, {status}, events={len(self.events)})"


@dataclass(frozen=True)
class RefreshScope:
    """Which work items a refresh request covers.

    ``item_ids`` of None means every work item.
    """

    item_ids: frozenset[uuid.UUID] | None = None

    @classmethod
    def all(cls) -> "RefreshScope":
        return cls()

    @classmethod
    def items(cls, *item_ids: uuid.UUID) -> "RefreshScope":
        return cls(frozenset(item_ids))

    @property
    def is_all(self) -> bool:
        return self.item_ids is None

    def __str__(self) -> str:
        """Return human-readable string representation."""
        if self.item_ids is None:
            return "all work items"
        return f"{len(self.item_ids)} work item(s)"


@dataclass
class RefreshSummary:
    """Aggregate result of one refresh request."""

    scope: RefreshScope
    outcomes: list[RefreshOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    @property
    def duration(self) -> float | None:
        """Seconds between start and completion."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def __str__(self) -> str:
        """Return human-readable string representation."""
        return (
            f"RefreshSummary({self.scope}, succeeded={self.succeeded}, "
            f"failed={self.failed})"
        )
