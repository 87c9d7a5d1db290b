"""Enums for work item state.

Values are the persisted discriminants, so they must never change. Decoding
is defensive: unknown values fall back to the "nothing known" member instead
of failing to load a row.
"""

import enum


class PRState(str, enum.Enum):
    """Pull request state of a work item."""

    NO_PR = "No PR"
    OPEN = "Open"
    MERGED = "Merged"
    CLOSED = "Closed"

    @classmethod
    def decode(cls, raw: str | None) -> "PRState":
        """Decode a stored value, defaulting to NO_PR."""
        try:
            return cls(raw)
        except ValueError:
            return cls.NO_PR

    @classmethod
    def from_provider(cls, state: str, merged: bool) -> "PRState":
        """Derive state from the provider's ``state`` field and merge marker."""
        if merged:
            return cls.MERGED
        if state == "open":
            return cls.OPEN
        if state == "closed":
            return cls.CLOSED
        return cls.NO_PR


class CheckState(str, enum.Enum):
    """Combined commit status of a pull request head."""

    UNKNOWN = "Unknown"
    PASSING = "Passing"
    FAILING = "Failing"

    @classmethod
    def decode(cls, raw: str | None) -> "CheckState":
        """Decode a stored value, defaulting to UNKNOWN."""
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_provider(cls, state: str | None) -> "CheckState":
        """Map a combined commit status state to a check state."""
        if state == "success":
            return cls.PASSING
        if state in ("failure", "error"):
            return cls.FAILING
        return cls.UNKNOWN


class NotificationCategory(str, enum.Enum):
    """Categories of work item activity that can raise a notification."""

    MERGED = "merged"
    CHECKS_FAILED = "checks_failed"
    REVIEW_REQUESTED = "review_requested"
    PR_COMMENTS = "pr_comments"
