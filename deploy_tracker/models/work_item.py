"""WorkItem SQLAlchemy model."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, UTCDateTime, utcnow
from .enums import CheckState, PRState


class WorkItem(BaseModel):
    """One ticket tracked from local branch through pull request to deployment."""

    __tablename__ = "work_items"

    ticket_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source_repo_full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    local_branch: Mapped[str] = mapped_column(String(200), nullable=False)

    # Pull request
    pr_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pr_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    head_sha: Mapped[str | None] = mapped_column(String(64), nullable=True)
    pr_state_raw: Mapped[str] = mapped_column(
        "pr_state", String(20), default=PRState.NO_PR.value, nullable=False
    )
    check_state_raw: Mapped[str] = mapped_column(
        "check_state", String(20), default=CheckState.UNKNOWN.value, nullable=False
    )

    # Release
    latest_tag: Mapped[str | None] = mapped_column(String(200), nullable=True)
    deployment_pr_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Activity counters
    review_requested_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    issue_comment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    review_comment_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Ticket link
    ticket_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    ticket_markdown: Mapped[str | None] = mapped_column(Text, nullable=True)

    last_error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_synced_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    def __init__(self, **kwargs: Any) -> None:
        """Create a work item with zeroed counters and unknown states."""
        kwargs.setdefault("id", uuid.uuid4())
        if "pr_state" not in kwargs:
            kwargs.setdefault("pr_state_raw", PRState.NO_PR.value)
        if "check_state" not in kwargs:
            kwargs.setdefault("check_state_raw", CheckState.UNKNOWN.value)
        kwargs.setdefault("review_requested_count", 0)
        kwargs.setdefault("issue_comment_count", 0)
        kwargs.setdefault("review_comment_count", 0)
        kwargs.setdefault("created_at", utcnow())
        kwargs.setdefault("updated_at", kwargs["created_at"])
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<WorkItem(id={self.id}, ticket_id={self.ticket_id}, "
            f"branch={self.local_branch}, pr_state={self.pr_state.value})>"
        )

    @property
    def pr_state(self) -> PRState:
        return PRState.decode(self.pr_state_raw)

    @pr_state.setter
    def pr_state(self, value: PRState) -> None:
        self.pr_state_raw = value.value

    @property
    def check_state(self) -> CheckState:
        return CheckState.decode(self.check_state_raw)

    @check_state.setter
    def check_state(self, value: CheckState) -> None:
        self.check_state_raw = value.value

    @property
    def owner(self) -> str:
        """Owner component of the source repository."""
        return self.source_repo_full_name.split("/", 1)[0]

    def clear_pull_request(self) -> None:
        """Forget the pull request; counters are left untouched."""
        self.pr_number = None
        self.pr_url = None
        self.head_sha = None
        self.pr_state = PRState.NO_PR
        self.check_state = CheckState.UNKNOWN
