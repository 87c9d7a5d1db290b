"""Release service: the boundary between callers and the release pipelines.

Every operation returns a ``PipelineOutcome`` instead of raising. Failures
are recorded on the work item as ``last_error_message`` so they survive the
command that caused them.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

from ...models import DeploymentRepoConfig, WorkItem
from ...models.base import utcnow
from .errors import ReleasePipelineError
from .mobile import MobileDeploymentPipeline
from .models import FullWebWorkflowResult, PipelineOutcome, WebDeploymentRequest
from .versions import VersionDiscovery
from .web import WebDeploymentPipeline

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReleaseService:
    """Runs mobile and web release operations on behalf of a work item."""

    def __init__(
        self,
        mobile: MobileDeploymentPipeline | None = None,
        web: WebDeploymentPipeline | None = None,
        versions: VersionDiscovery | None = None,
    ):
        self.mobile = mobile
        self.web = web
        self.versions = versions

    async def _run(
        self,
        item: WorkItem,
        action: str,
        operation: Callable[[], Awaitable[T]],
        describe: Callable[[T], str],
    ) -> PipelineOutcome:
        try:
            result = await operation()
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"{action} failed for {item.ticket_id}: {message}")
            item.last_error_message = message
            item.updated_at = utcnow()
            return PipelineOutcome(ok=False, message=message)

        item.updated_at = utcnow()
        message = describe(result)
        logger.info(f"{action} for {item.ticket_id}: {message}")
        return PipelineOutcome(ok=True, message=message, result=result)

    def _require(self, component: T | None, name: str) -> T:
        if component is None:
            raise ReleasePipelineError(f"{name} is not configured.")
        return component

    async def update_mobile_deployment(
        self, item: WorkItem, deployment_repo: DeploymentRepoConfig | None
    ) -> PipelineOutcome:
        """Open the mobile deploy tag pull request and remember its URL."""

        async def operation() -> Any:
            pipeline = self._require(self.mobile, "Mobile release")
            repo = self._require(deployment_repo, "Deployment repository")
            result = await pipeline.update_deployment_config(repo, item)
            item.deployment_pr_url = result.pr_url
            return result

        return await self._run(
            item, "Mobile deployment update", operation, lambda r: f"Opened {r.pr_url}"
        )

    async def discover_versions(
        self, item: WorkItem, repo: str, branch: str, modules: Sequence[str]
    ) -> PipelineOutcome:
        """Look up the latest module versions; partial results count as success."""

        async def operation() -> dict[str, str]:
            discovery = self._require(self.versions, "Version discovery")
            return await discovery.find_latest_versions(repo, branch, modules)

        return await self._run(
            item,
            "Version discovery",
            operation,
            lambda found: f"Found versions for {len(found)} of {len(modules)} modules",
        )

    async def create_web_deployment(
        self, item: WorkItem, request: WebDeploymentRequest
    ) -> PipelineOutcome:
        """Open the values repository pull request and remember its URL."""

        async def operation() -> Any:
            pipeline = self._require(self.web, "Web release")
            result = await pipeline.create_deployment_pr(request)
            item.deployment_pr_url = result.pr_url
            return result

        return await self._run(
            item,
            "Web deployment",
            operation,
            lambda r: f"Opened {r.pr_url} ({r.updated_file_count} files updated)",
        )

    async def trigger_web_deployments(
        self, item: WorkItem, modules: Sequence[str], environments: Sequence[str]
    ) -> PipelineOutcome:
        """Start the Harness executions for every module and environment."""

        async def operation() -> list[str]:
            pipeline = self._require(self.web, "Web release")
            return await pipeline.trigger_deployments(modules, environments)

        return await self._run(
            item,
            "Deployment trigger",
            operation,
            lambda urls: f"Started {len(urls)} executions",
        )

    async def run_full_web_workflow(
        self,
        item: WorkItem,
        request: WebDeploymentRequest,
        source_repo: str,
        source_branch: str,
        merge: bool = False,
        trigger: bool = False,
    ) -> PipelineOutcome:
        """Discover versions, open the pull request, then optionally merge and trigger.

        Versions already present in ``request.versions`` take precedence over
        discovered ones.
        """

        async def operation() -> FullWebWorkflowResult:
            pipeline = self._require(self.web, "Web release")
            discovery = self._require(self.versions, "Version discovery")

            discovered = await discovery.find_latest_versions(
                source_repo, source_branch, request.modules
            )
            versions = {**discovered, **{k: v for k, v in request.versions.items() if v}}
            request.versions = versions

            deployment = await pipeline.create_deployment_pr(request)
            item.deployment_pr_url = deployment.pr_url
            result = FullWebWorkflowResult(versions=versions, deployment=deployment)

            if merge:
                await pipeline.merge_deployment_pr(request.values_repo, deployment.pr_number)
                result.merged = True
            if trigger:
                result.execution_urls = await pipeline.trigger_deployments(
                    request.modules, request.environments
                )
            return result

        def describe(result: FullWebWorkflowResult) -> str:
            parts = [f"Opened {result.deployment.pr_url}"]
            if result.merged:
                parts.append("merged")
            if trigger:
                parts.append(f"started {len(result.execution_urls)} executions")
            return ", ".join(parts)

        return await self._run(item, "Full web workflow", operation, describe)
