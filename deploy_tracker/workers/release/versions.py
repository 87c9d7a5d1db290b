"""Discover the latest published version of each module from CI logs."""

import logging
from collections.abc import Iterable, Sequence

from ...github import GitHubClient, GitHubError
from ...scraping import extract_module_versions

logger = logging.getLogger(__name__)

DEFAULT_JOB_NAME_FILTERS = ("docker publish", "container scan")


class VersionDiscovery:
    """Scans recent workflow runs for container image lines.

    Runs are visited newest first regardless of conclusion. The first version
    seen for a module wins, and scanning stops as soon as every requested
    module has one. Modules that never show up are simply absent from the
    result.
    """

    def __init__(
        self,
        github: GitHubClient,
        run_budget: int = 50,
        job_name_filters: Sequence[str] = DEFAULT_JOB_NAME_FILTERS,
    ):
        self.github = github
        self.run_budget = run_budget
        self.job_name_filters = [f.lower() for f in job_name_filters]

    def _is_relevant_job(self, name: str) -> bool:
        lowered = name.lower()
        return any(f in lowered for f in self.job_name_filters)

    async def find_latest_versions(
        self, repo: str, branch: str, modules: Iterable[str]
    ) -> dict[str, str]:
        """Map each module to the newest version found for it.

        Raises:
            GitHubError: Listing the workflow runs failed
        """
        wanted = [m for m in dict.fromkeys(modules) if m]
        versions: dict[str, str] = {}
        if not wanted:
            return versions

        runs = await self.github.list_workflow_runs(repo, branch, per_page=100)
        for run in runs[: self.run_budget]:
            try:
                jobs = await self.github.list_jobs(repo, run.id)
                for job in jobs:
                    if not self._is_relevant_job(job.name):
                        continue
                    unresolved = [m for m in wanted if m not in versions]
                    logs = await self.github.job_logs(repo, job.id)
                    extract_module_versions(logs, unresolved, into=versions)
                    if len(versions) == len(wanted):
                        break
            except GitHubError as e:
                logger.warning(f"Skipping run {run.id} of {repo}: {e}")
                continue

            if len(versions) == len(wanted):
                break

        missing = [m for m in wanted if m not in versions]
        if missing:
            logger.info(f"No versions found in {repo}@{branch} for: {', '.join(missing)}")
        return versions
