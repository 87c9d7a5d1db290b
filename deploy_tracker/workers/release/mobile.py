"""Mobile flavor: bump the deploy tag in the deployment repo's CI config."""

import logging
import re
from pathlib import Path

from ...config.models import MobileReleaseConfig
from ...github.client import GitHubClient
from ...integrations.vcs import GitRepository
from ...models import DeploymentRepoConfig, WorkItem
from ...scraping import replace_declared_version
from .errors import InvalidConfigFileError, MissingTagError
from .models import DeploymentUpdateResult

logger = logging.getLogger(__name__)

_UNSAFE_BRANCH_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_branch_component(value: str) -> str:
    """Replace every character outside ``[A-Za-z0-9._-]`` with ``-``."""
    return _UNSAFE_BRANCH_CHARS.sub("-", value)


class MobileDeploymentPipeline:
    """Opens a pull request that sets the mobile deploy tag.

    Works on the local working copy of the deployment repository: the
    environment branch is pulled, a tag branch is (re)created from it, the
    config file is patched, committed and pushed, and a pull request is opened
    against the environment branch. Any failure aborts the sequence.
    """

    def __init__(
        self,
        vcs: GitRepository,
        github: GitHubClient,
        config: MobileReleaseConfig | None = None,
    ):
        self.vcs = vcs
        self.github = github
        self.config = config or MobileReleaseConfig()

    async def update_deployment_config(
        self, deployment_repo: DeploymentRepoConfig, work_item: WorkItem
    ) -> DeploymentUpdateResult:
        """Run the update and return the branch and pull request URL.

        Raises:
            MissingTagError: The work item has no tag yet
            InvalidConfigFileError: The tag key is missing or already set
            VCSError: A git step failed
            GitHubError: Opening the pull request failed
        """
        tag = (work_item.latest_tag or "").strip()
        if not tag:
            raise MissingTagError("No tag is available for deployment update.")

        branch_name = f"{self.config.branch_prefix}{sanitize_branch_component(tag)}"
        target_branch = deployment_repo.selected_environment_branch
        repo_path = deployment_repo.local_path

        logger.info(
            f"Updating {deployment_repo.repo_full_name}@{target_branch} "
            f"to tag {tag} on {branch_name}"
        )
        await self.vcs.checkout(repo_path, target_branch)
        await self.vcs.pull(repo_path, target_branch)
        await self.vcs.checkout(repo_path, branch_name, create=True)

        config_file = Path(repo_path).expanduser() / self.config.config_file_path
        try:
            original = config_file.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise InvalidConfigFileError(
                f"Could not read {self.config.config_file_path}: {e}"
            ) from e

        updated = self._patch(original, tag)
        config_file.write_bytes(updated.encode("utf-8"))

        title = f"chore: update mobile deployment tag to {tag}"
        await self.vcs.commit(repo_path, title, [self.config.config_file_path])
        await self.vcs.push(repo_path, branch_name)

        body = "\n".join(
            [
                f"Source ticket: {work_item.ticket_id}",
                f"Source PR: {work_item.pr_url or 'N/A'}",
                f"Updated key: {self.config.tag_key_path}",
                f"New tag: {tag}",
            ]
        )
        created = await self.github.create_pull_request(
            deployment_repo.repo_full_name, title, body, branch_name, target_branch
        )
        return DeploymentUpdateResult(branch_name=branch_name, pr_url=created.url)

    def _patch(self, content: str, tag: str) -> str:
        key = self.config.tag_key_path
        updated = replace_declared_version(content, key, tag, quote=True)
        if updated == content:
            raise InvalidConfigFileError(
                f"Could not update {key} in {self.config.config_file_path}: "
                f"the key is missing or already {tag}."
            )
        return updated
