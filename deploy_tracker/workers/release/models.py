"""Requests and results of the release pipelines."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PairStatus(str, Enum):
    """What happened to one module/environment values file."""

    UPDATED = "updated"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PairOutcome:
    """Outcome of updating the values file of one module in one environment."""

    module: str
    environment: str
    path: str
    status: PairStatus
    reason: str | None = None

    def __str__(self) -> str:
        """Return human-readable string representation."""
        text = f"{self.module}/{self.environment} ({self.path}): {self.status.value}"
        return f"{text} - {self.reason}" if self.reason else text


@dataclass(frozen=True)
class DeploymentUpdateResult:
    """Mobile deployment config pull request."""

    branch_name: str
    pr_url: str


@dataclass
class WebDeploymentRequest:
    """Everything needed to open a values repository pull request."""

    values_repo: str
    base_branch: str
    modules: list[str]
    environments: list[str]
    versions: dict[str, str]
    pr_title: str = "Update dockerImageTag"
    source_repo: str = ""
    source_branch: str = ""
    ticket_id: str | None = None
    source_pr_url: str | None = None


@dataclass
class WebDeploymentResult:
    """Values repository pull request and the per-file outcomes behind it."""

    branch_name: str
    pr_url: str
    pr_number: int
    updated_file_count: int
    outcomes: list[PairOutcome] = field(default_factory=list)

    @property
    def skipped(self) -> list[PairOutcome]:
        return [o for o in self.outcomes if o.status == PairStatus.SKIPPED]


@dataclass
class FullWebWorkflowResult:
    """Discovery, pull request, and optional merge and trigger in one run."""

    versions: dict[str, str]
    deployment: WebDeploymentResult
    merged: bool = False
    execution_urls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PipelineOutcome:
    """What the release service reports back to its caller."""

    ok: bool
    message: str
    result: Any = None

    def __str__(self) -> str:
        """Return human-readable string representation."""
        return ("Done: " if self.ok else "Failed: ") + self.message
