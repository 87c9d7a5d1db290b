"""Web flavor: bump image tags in the values repository and trigger deploys."""

import base64
import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from ...config.models import WebReleaseConfig
from ...github import GitHubAlreadyExistsError, GitHubClient
from ...harness import (
    HarnessClient,
    HarnessMalformedResponseError,
    module_slug,
    render_runtime_inputs,
)
from ...scraping import replace_declared_version
from .errors import MissingVersionsError, NoFilesUpdatedError, ReleasePipelineError
from .models import PairOutcome, PairStatus, WebDeploymentRequest, WebDeploymentResult

logger = logging.getLogger(__name__)


class WebDeploymentPipeline:
    """Updates per-module values files on a fresh branch and opens a pull request.

    Module/environment pairs are processed one at a time in request order, so
    the outcome list and the log read the same way every run.
    """

    def __init__(
        self,
        github: GitHubClient,
        config: WebReleaseConfig | None = None,
        harness: HarnessClient | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.github = github
        self.config = config or WebReleaseConfig()
        self.harness = harness
        self._clock = clock or (lambda: datetime.now(UTC))

    def values_path(self, module: str, environment: str) -> str:
        """Path of the values file for one module in one environment."""
        return self.config.path_template.format(
            module=module, module_slug=module_slug(module), environment=environment
        )

    def branch_name(self) -> str:
        return f"{self.config.branch_prefix}{self._clock().strftime('%Y%m%d-%H%M%S')}"

    async def create_deployment_pr(
        self, request: WebDeploymentRequest
    ) -> WebDeploymentResult:
        """Create the update branch, patch every pair and open the pull request.

        Raises:
            MissingVersionsError: A selected module has no version
            NoFilesUpdatedError: Every pair was skipped
            GitHubError: Branch setup or pull request creation failed
        """
        if not request.modules or not request.environments:
            raise ReleasePipelineError("Select at least one module and one environment.")

        missing = [m for m in request.modules if not request.versions.get(m, "").strip()]
        if missing:
            raise MissingVersionsError(missing)

        branch = self.branch_name()
        base_sha = await self.github.branch_sha(request.values_repo, request.base_branch)
        try:
            await self.github.create_branch(request.values_repo, branch, base_sha)
        except GitHubAlreadyExistsError:
            logger.info(f"Branch {branch} already exists in {request.values_repo}")

        outcomes = [
            await self._update_pair(request, branch, module, environment)
            for module in request.modules
            for environment in request.environments
        ]
        updated = sum(1 for o in outcomes if o.status == PairStatus.UPDATED)
        if updated == 0:
            raise NoFilesUpdatedError(
                "No values files were updated: "
                + "; ".join(str(outcome) for outcome in outcomes)
            )

        created = await self.github.create_pull_request(
            request.values_repo,
            request.pr_title or self.config.pr_title,
            self._pull_request_body(request, updated),
            branch,
            request.base_branch,
        )
        logger.info(
            f"Opened {created.url} updating {updated} of {len(outcomes)} values files"
        )
        return WebDeploymentResult(
            branch_name=branch,
            pr_url=created.url,
            pr_number=created.number,
            updated_file_count=updated,
            outcomes=outcomes,
        )

    async def _update_pair(
        self, request: WebDeploymentRequest, branch: str, module: str, environment: str
    ) -> PairOutcome:
        version = request.versions[module].strip()
        path = self.values_path(module, environment)

        def skipped(reason: str) -> PairOutcome:
            logger.warning(f"Skipping {path}: {reason}")
            return PairOutcome(module, environment, path, PairStatus.SKIPPED, reason)

        try:
            current = await self.github.file_contents(request.values_repo, path, branch)
            patched = replace_declared_version(
                current.content, self.config.version_key, version
            )
            if patched == current.content:
                return skipped(f"{self.config.version_key} not found or already {version}")

            await self.github.update_file(
                request.values_repo,
                path,
                branch,
                base64.b64encode(patched.encode("utf-8")).decode("ascii"),
                current.sha,
                f"Update {self.config.version_key} to {version} for {path}",
            )
        except Exception as e:
            # One bad pair must not stop the others
            return skipped(str(e))

        return PairOutcome(module, environment, path, PairStatus.UPDATED)

    def _pull_request_body(self, request: WebDeploymentRequest, updated: int) -> str:
        source = request.source_repo or "N/A"
        if request.source_repo and request.source_branch:
            source = f"{request.source_repo}@{request.source_branch}"
        lines = [
            f"Automated update of {self.config.version_key}",
            "",
            f"Source ticket: {request.ticket_id or 'N/A'}",
            f"Source repo: {source}",
            f"Source PR: {request.source_pr_url or 'N/A'}",
            f"Updated files: {updated}",
            "",
            "Updated modules:",
        ]
        lines.extend(f"- {m}: {request.versions[m].strip()}" for m in request.modules)
        return "\n".join(lines)

    async def merge_deployment_pr(self, repo: str, number: int) -> None:
        """Squash-merge the deployment pull request."""
        await self.github.merge_pull_request(repo, number, method="squash")
        logger.info(f"Merged {repo}#{number}")

    async def trigger_deployments(
        self, modules: Iterable[str], environments: Iterable[str]
    ) -> list[str]:
        """Start one Harness execution per module and environment.

        Returns:
            Execution URLs of the started runs. Pairs whose response carried
            no execution URL are left out.
        """
        if self.harness is None:
            raise ReleasePipelineError("Harness is not configured.")

        envs = list(environments)
        urls: list[str] = []
        for module in modules:
            for environment in envs:
                inputs = render_runtime_inputs(self.harness.config, module, environment)
                try:
                    url = await self.harness.execute_pipeline(inputs)
                except HarnessMalformedResponseError as e:
                    logger.warning(f"No execution URL for {module}/{environment}: {e}")
                    continue
                logger.info(f"Triggered {module}/{environment}: {url}")
                urls.append(url)
        return urls
