"""GitHub API client with authentication and rate limit tracking."""

import asyncio
import base64
import binascii
import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

import aiohttp

from ..models.enums import CheckState
from .auth import AuthProvider
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
from .rate_limiting import RateLimitManager
from .utils import encode_path, split_repo_full_name

logger = logging.getLogger(__name__)


@dataclass
class GitHubClientConfig:
    """Configuration for GitHub client."""

    base_url: str = "https://api.github.com"
    timeout: int = 30
    user_agent: str = "deploy-tracker/1.0"
    max_concurrent_requests: int = 10


@dataclass
class _Response:
    status: int
    body: str


class GitHubClient:
    """Async GitHub REST client.

    Every operation takes an ``owner/repo`` identity and returns a typed
    result. Failures raise the ``GitHubError`` hierarchy; nothing is retried.
    """

    def __init__(
        self,
        auth: AuthProvider,
        config: GitHubClientConfig | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            auth: Authentication provider, asked for a token on every request
            config: Client configuration
        """
        self.auth = auth
        self.config = config or GitHubClientConfig()
        self.rate_limiter = RateLimitManager()

        # HTTP session will be initialized on first use
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()
        self._request_semaphore = asyncio.Semaphore(self.config.max_concurrent_requests)

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_session(self) -> None:
        """Ensure HTTP session is initialized."""
        if self._session is None or self._session.closed:
            async with self._session_lock:
                if self._session is None or self._session.closed:
                    timeout = aiohttp.ClientTimeout(total=self.config.timeout)
                    self._session = aiohttp.ClientSession(
                        timeout=timeout,
                        headers={
                            "User-Agent": self.config.user_agent,
                            "Accept": "application/vnd.github+json",
                        },
                    )

    async def close(self) -> None:
        """Close HTTP session and cleanup resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def _generate_correlation_id(self) -> str:
        """Generate correlation ID for request tracking."""
        return str(uuid.uuid4())[:8]

    def _url(self, path: str) -> str:
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        decode_errors: str = "strict",
    ) -> _Response:
        """Send one request and return its status and body.

        The body is decoded as UTF-8 with ``decode_errors`` as the codec error
        handler.

        Raises:
            GitHubError: Various GitHub API errors
        """
        correlation_id = self._generate_correlation_id()
        url = self._url(path)

        self.rate_limiter.check_rate_limit()

        auth_token = await self.auth.get_token()
        request_headers = auth_token.to_header()

        await self._ensure_session()
        if not self._session:
            raise GitHubConnectionError("Failed to initialize HTTP session")

        request_kwargs: dict[str, Any] = {"headers": request_headers}
        if params:
            request_kwargs["params"] = {k: str(v) for k, v in params.items()}
        if data is not None:
            request_kwargs["json"] = data

        try:
            async with self._request_semaphore:
                start_time = time.time()
                logger.debug(f"GitHub API request [{correlation_id}] {method} {url}")

                async with self._session.request(
                    method, url, **request_kwargs
                ) as response:
                    request_time = time.time() - start_time
                    self.rate_limiter.update_rate_limit(response.headers)

                    logger.debug(
                        f"GitHub API response [{correlation_id}] "
                        f"{response.status} in {request_time:.2f}s"
                    )

                    if not 200 <= response.status < 300:
                        await self._handle_error_response(response, correlation_id)
                    raw = await response.read()
                    try:
                        body = raw.decode("utf-8", errors=decode_errors)
                    except UnicodeDecodeError as e:
                        raise GitHubMalformedResponseError(
                            f"Response body of {method} {url} is not valid UTF-8",
                            response.status,
                        ) from e
                    return _Response(status=response.status, body=body)

        except TimeoutError as e:
            raise GitHubTimeoutError(f"Request timeout for {method} {url}") from e
        except aiohttp.ClientError as e:
            raise GitHubConnectionError(
                f"Connection error for {method} {url}: {e}"
            ) from e

    async def _handle_error_response(
        self, response: aiohttp.ClientResponse, correlation_id: str
    ) -> None:
        """Handle error responses from GitHub API.

        Args:
            response: HTTP response
            correlation_id: Request correlation ID

        Raises:
            GitHubError: Appropriate error based on status code
        """
        text = (await response.read()).decode("utf-8", errors="replace")
        try:
            error_data = json.loads(text) if text else {}
        except json.JSONDecodeError:
            error_data = {"message": text}
        if not isinstance(error_data, dict):
            error_data = {"message": text}

        error_message = error_data.get("message") or f"HTTP {response.status}"

        logger.warning(
            f"GitHub API error [{correlation_id}] {response.status}: {error_message}"
        )

        if response.status == 401:
            raise GitHubAuthenticationError(error_message, response.status, error_data)
        elif response.status in (403, 429):
            if response.status == 429 or "rate limit" in error_message.lower():
                reset_time = response.headers.get("X-RateLimit-Reset")
                remaining = response.headers.get("X-RateLimit-Remaining", "0")
                limit = response.headers.get("X-RateLimit-Limit", "0")

                raise GitHubRateLimitError(
                    error_message,
                    reset_time=int(reset_time) if reset_time else None,
                    remaining=int(remaining),
                    limit=int(limit),
                    status_code=response.status,
                )
            raise GitHubAuthenticationError(error_message, response.status, error_data)
        elif response.status == 404:
            raise GitHubNotFoundError(error_message, response.status, error_data)
        elif response.status == 422:
            raise GitHubValidationError(error_message, response.status, error_data)
        elif 500 <= response.status < 600:
            raise GitHubServerError(error_message, response.status, error_data)
        else:
            raise GitHubError(error_message, response.status, error_data)

    async def _json(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._request(method, path, params=params, data=data)
        if not response.body:
            return None
        try:
            return json.loads(response.body)
        except json.JSONDecodeError as e:
            raise GitHubMalformedResponseError(
                f"Invalid JSON in response to {method} {path}",
                response.status,
            ) from e

    @staticmethod
    def _expect_list(payload: Any, key: str | None = None) -> list[Any]:
        if key is not None:
            if not isinstance(payload, dict):
                raise GitHubMalformedResponseError(
                    f"Expected JSON object with '{key}'"
                )
            payload = payload.get(key)
        if not isinstance(payload, list):
            raise GitHubMalformedResponseError("Expected JSON array in response")
        return payload

    # Pull requests

    async def find_open_or_recent_pr(
        self, repo: str, head_branch: str
    ) -> PullRequestSummary | None:
        """Find the most recent pull request whose head is ``head_branch``.

        Open, closed and merged pull requests all match.
        """
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET",
            f"/repos/{owner}/{name}/pulls",
            params={"head": f"{owner}:{head_branch}", "state": "all", "per_page": 1},
        )
        pulls = self._expect_list(payload)
        if not pulls:
            return None
        return PullRequestSummary.from_api(pulls[0])

    async def commit_status(self, repo: str, sha: str) -> CheckState:
        """Get the combined commit status for a sha."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET", f"/repos/{owner}/{name}/commits/{encode_path(sha)}/status"
        )
        if not isinstance(payload, dict):
            raise GitHubMalformedResponseError("Expected JSON object for commit status")
        state = payload.get("state")
        return CheckState.from_provider(state if isinstance(state, str) else None)

    async def pull_request_signals(self, repo: str, number: int) -> PullRequestSignals:
        """Count review requests and comments on a pull request.

        The three lookups run concurrently and are joined before returning;
        if any of them fails the whole call fails.
        """
        owner, name = split_repo_full_name(repo)
        base = f"/repos/{owner}/{name}"

        reviewers, issue_comments, review_comments = await asyncio.gather(
            self._json("GET", f"{base}/pulls/{number}/requested_reviewers"),
            self._json(
                "GET", f"{base}/issues/{number}/comments", params={"per_page": 100}
            ),
            self._json(
                "GET", f"{base}/pulls/{number}/comments", params={"per_page": 100}
            ),
        )

        users = self._expect_list(reviewers, "users")
        teams = self._expect_list(reviewers, "teams")
        return PullRequestSignals(
            review_requested_count=len(users) + len(teams),
            issue_comment_count=len(self._expect_list(issue_comments)),
            review_comment_count=len(self._expect_list(review_comments)),
        )

    async def create_pull_request(
        self, repo: str, title: str, body: str, head: str, base: str
    ) -> CreatedPullRequest:
        """Open a pull request from ``head`` into ``base``."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "POST",
            f"/repos/{owner}/{name}/pulls",
            data={"title": title, "body": body, "head": head, "base": base},
        )
        created = CreatedPullRequest.from_api(payload)
        logger.info(f"Created pull request #{created.number} in {repo}")
        return created

    async def merge_pull_request(
        self, repo: str, number: int, method: str = "squash"
    ) -> None:
        """Merge a pull request."""
        owner, name = split_repo_full_name(repo)
        await self._request(
            "PUT",
            f"/repos/{owner}/{name}/pulls/{number}/merge",
            data={"merge_method": method},
        )
        logger.info(f"Merged pull request #{number} in {repo} ({method})")

    # Actions

    async def list_workflow_runs(
        self, repo: str, branch: str, per_page: int = 100
    ) -> list[WorkflowRunSummary]:
        """List recent workflow runs for a branch regardless of conclusion."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET",
            f"/repos/{owner}/{name}/actions/runs",
            params={"branch": branch, "per_page": per_page},
        )
        return [
            WorkflowRunSummary.from_api(run)
            for run in self._expect_list(payload, "workflow_runs")
        ]

    async def latest_successful_workflow_run(
        self, repo: str, workflow_id: str, branch: str
    ) -> WorkflowRunSummary | None:
        """Most recent successful run among the last 10 completed runs."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET",
            f"/repos/{owner}/{name}/actions/workflows/{encode_path(workflow_id)}/runs",
            params={"branch": branch, "status": "completed", "per_page": 10},
        )
        for raw in self._expect_list(payload, "workflow_runs"):
            run = WorkflowRunSummary.from_api(raw)
            if run.conclusion == "success":
                return run
        return None

    async def list_jobs(self, repo: str, run_id: int) -> list[JobSummary]:
        """List the jobs of a workflow run."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET",
            f"/repos/{owner}/{name}/actions/runs/{run_id}/jobs",
            params={"per_page": 100},
        )
        return [JobSummary.from_api(job) for job in self._expect_list(payload, "jobs")]

    async def job_logs(self, repo: str, job_id: int) -> str:
        """Download the raw log text of a job.

        Bytes that are not valid UTF-8 are replaced with U+FFFD.
        """
        owner, name = split_repo_full_name(repo)
        response = await self._request(
            "GET",
            f"/repos/{owner}/{name}/actions/jobs/{job_id}/logs",
            decode_errors="replace",
        )
        return response.body

    # Git data

    async def list_branches(self, repo: str) -> list[str]:
        """List branch names of a repository (first page of 100)."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET", f"/repos/{owner}/{name}/branches", params={"per_page": 100}
        )
        branches = []
        for raw in self._expect_list(payload):
            if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
                raise GitHubMalformedResponseError("Branch entry without a name")
            branches.append(raw["name"])
        return branches

    async def branch_sha(self, repo: str, branch: str) -> str:
        """Resolve the head sha of a branch."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET", f"/repos/{owner}/{name}/git/ref/heads/{encode_path(branch)}"
        )
        obj = payload.get("object") if isinstance(payload, dict) else None
        sha = obj.get("sha") if isinstance(obj, dict) else None
        if not isinstance(sha, str) or not sha:
            raise GitHubMalformedResponseError(f"No sha for branch '{branch}'")
        return sha

    async def create_branch(self, repo: str, name: str, base_sha: str) -> None:
        """Create ``refs/heads/{name}`` pointing at ``base_sha``.

        Raises:
            GitHubAlreadyExistsError: If the ref already exists
        """
        owner, repo_name = split_repo_full_name(repo)
        try:
            await self._request(
                "POST",
                f"/repos/{owner}/{repo_name}/git/refs",
                data={"ref": f"refs/heads/{name}", "sha": base_sha},
            )
        except GitHubValidationError as e:
            raise GitHubAlreadyExistsError(
                f"Branch '{name}' already exists in {repo}",
                e.status_code,
                e.response_data,
            ) from e
        logger.info(f"Created branch {name} in {repo}")

    async def file_contents(self, repo: str, path: str, ref: str) -> RepositoryFile:
        """Fetch and decode a file at a given ref."""
        owner, name = split_repo_full_name(repo)
        payload = await self._json(
            "GET",
            f"/repos/{owner}/{name}/contents/{encode_path(path)}",
            params={"ref": ref},
        )
        if not isinstance(payload, dict):
            raise GitHubMalformedResponseError(f"Expected file object for '{path}'")
        encoded = payload.get("content")
        sha = payload.get("sha")
        if not isinstance(encoded, str) or not isinstance(sha, str):
            raise GitHubMalformedResponseError(f"No content for '{path}'")

        try:
            raw = base64.b64decode(encoded.replace("\n", ""), validate=True)
            content = raw.decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise GitHubMalformedResponseError(
                f"Undecodable content for '{path}'"
            ) from e
        return RepositoryFile(path=path, content=content, sha=sha)

    async def update_file(
        self,
        repo: str,
        path: str,
        branch: str,
        content_base64: str,
        previous_sha: str,
        message: str,
    ) -> None:
        """Replace a file on a branch.

        ``previous_sha`` must be the blob sha the new content was derived
        from; a stale sha is rejected by GitHub.
        """
        owner, name = split_repo_full_name(repo)
        await self._request(
            "PUT",
            f"/repos/{owner}/{name}/contents/{encode_path(path)}",
            data={
                "message": message,
                "content": content_base64,
                "sha": previous_sha,
                "branch": branch,
            },
        )
        logger.debug(f"Updated {path} on {repo}@{branch}")
