"""Resolve the artifact tag published by the latest successful build."""

import logging

from ...github.client import GitHubClient
from ...scraping import ScrapingError, extract_tag
from ..release.errors import MissingTagError, NoBuildJobError, NoRunError
from .models import ResolvedTag

logger = logging.getLogger(__name__)

BUILD_JOB_NAME = "build-and-publish"


class WorkflowTagResolver:
    """Reads the tag out of the build job log of the newest successful run.

    Read-only: calling it again after a failure is always safe.
    """

    def __init__(self, github: GitHubClient, build_job_name: str = BUILD_JOB_NAME):
        self.github = github
        self.build_job_name = build_job_name

    async def resolve_tag(self, repo: str, workflow_id: str, branch: str) -> ResolvedTag:
        """Find the tag for ``workflow_id`` on ``branch``.

        Raises:
            NoRunError: No successful run among the recent completed runs
            NoBuildJobError: The run has no job named ``build-and-publish``
            MissingTagError: The job log carries no tag
            GitHubError: Any API failure
        """
        run = await self.github.latest_successful_workflow_run(repo, workflow_id, branch)
        if run is None:
            raise NoRunError(
                f"No successful run of workflow '{workflow_id}' on {repo}@{branch}"
            )

        jobs = await self.github.list_jobs(repo, run.id)
        job = next((job for job in jobs if job.name == self.build_job_name), None)
        if job is None:
            raise NoBuildJobError(
                f"Run {run.id} has no '{self.build_job_name}' job"
            )

        logs = await self.github.job_logs(repo, job.id)
        try:
            tag = extract_tag(logs)
        except ScrapingError as e:
            raise MissingTagError(f"No tag found in logs of run {run.id}: {e}") from e

        logger.info(f"Resolved tag {tag} for {repo}@{branch} from run {run.id}")
        return ResolvedTag(tag=tag, run_url=run.html_url)
