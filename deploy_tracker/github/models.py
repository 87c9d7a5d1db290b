"""Typed results returned by the GitHub client.

Each dataclass is built from the raw JSON payload with a ``from_api``
constructor that raises ``GitHubMalformedResponseError`` when a required
field is missing or has the wrong type.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .exceptions import GitHubMalformedResponseError


def _require(data: Any, key: str, kind: type | tuple[type, ...]) -> Any:
    if not isinstance(data, dict):
        raise GitHubMalformedResponseError(
            f"Expected JSON object with '{key}', got {type(data).__name__}"
        )
    value = data.get(key)
    # bool is a subclass of int; never accept it where an id is expected
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise GitHubMalformedResponseError(
            f"Field '{key}' missing or invalid in GitHub response"
        )
    return value


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise GitHubMalformedResponseError(f"Invalid timestamp value: {value!r}")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise GitHubMalformedResponseError(f"Invalid timestamp value: {value!r}") from e


@dataclass(frozen=True)
class PullRequestSummary:
    """Snapshot of one pull request as returned by the pulls endpoint."""

    number: int
    url: str
    state: str
    merged_at: datetime | None
    head_sha: str
    base_branch: str

    @classmethod
    def from_api(cls, data: Any) -> "PullRequestSummary":
        head = _require(data, "head", dict)
        base = _require(data, "base", dict)
        return cls(
            number=_require(data, "number", int),
            url=_require(data, "html_url", str),
            state=_require(data, "state", str),
            merged_at=_parse_timestamp(data.get("merged_at")),
            head_sha=_require(head, "sha", str),
            base_branch=_require(base, "ref", str),
        )


@dataclass(frozen=True)
class PullRequestSignals:
    """Activity counters for a pull request."""

    review_requested_count: int
    issue_comment_count: int
    review_comment_count: int


@dataclass(frozen=True)
class WorkflowRunSummary:
    """A GitHub Actions workflow run."""

    id: int
    html_url: str
    conclusion: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> "WorkflowRunSummary":
        conclusion = data.get("conclusion") if isinstance(data, dict) else None
        return cls(
            id=_require(data, "id", int),
            html_url=_require(data, "html_url", str),
            conclusion=conclusion if isinstance(conclusion, str) else None,
        )


@dataclass(frozen=True)
class JobSummary:
    """A job inside a workflow run."""

    id: int
    name: str

    @classmethod
    def from_api(cls, data: Any) -> "JobSummary":
        return cls(id=_require(data, "id", int), name=_require(data, "name", str))


@dataclass(frozen=True)
class RepositoryFile:
    """Decoded file contents together with the blob sha used for updates."""

    path: str
    content: str
    sha: str


@dataclass(frozen=True)
class CreatedPullRequest:
    """Pull request created through the API."""

    number: int
    url: str

    @classmethod
    def from_api(cls, data: Any) -> "CreatedPullRequest":
        return cls(
            number=_require(data, "number", int),
            url=_require(data, "html_url", str),
        )
