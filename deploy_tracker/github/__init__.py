"""GitHub API client package."""

from .auth import AuthProvider, AuthToken, SecretStoreAuth, TokenAuth
from .client import GitHubClient, GitHubClientConfig
from .exceptions import (
    GitHubAlreadyExistsError,
    GitHubAuthenticationError,
    GitHubConnectionError,
    GitHubError,
    GitHubMalformedResponseError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubServerError,
    GitHubTimeoutError,
    GitHubValidationError,
)
from .models import (
    CreatedPullRequest,
    JobSummary,
    PullRequestSignals,
    PullRequestSummary,
    RepositoryFile,
    WorkflowRunSummary,
)
from .rate_limiting import RateLimitInfo, RateLimitManager
from .utils import parse_repo_full_name, split_repo_full_name

__all__ = [
    "AuthProvider",
    "AuthToken",
    "CreatedPullRequest",
    "GitHubAlreadyExistsError",
    "GitHubAuthenticationError",
    "GitHubClient",
    "GitHubClientConfig",
    "GitHubConnectionError",
    "GitHubError",
    "GitHubMalformedResponseError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubServerError",
    "GitHubTimeoutError",
    "GitHubValidationError",
    "JobSummary",
    "PullRequestSignals",
    "PullRequestSummary",
    "RateLimitInfo",
    "RateLimitManager",
    "RepositoryFile",
    "SecretStoreAuth",
    "TokenAuth",
    "WorkflowRunSummary",
    "parse_repo_full_name",
    "split_repo_full_name",
]
