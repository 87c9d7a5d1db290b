"""Work item lifecycle operations outside of refresh and release."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..github.client import GitHubClient
from ..integrations.vcs import GitRepository
from ..models import PRState, SourceRepoConfig, WorkItem
from ..models.base import utcnow
from ..repositories import WorkItemRepository
from .branches import next_branch_name
from .tickets import build_ticket_url, parse_ticket_link, parse_tickets

logger = logging.getLogger(__name__)


class WorkItemError(Exception):
    """Raised when a work item operation is given unusable input."""

    pass


class WorkItemService:
    """Creates, links and deletes work items."""

    def __init__(
        self,
        session: AsyncSession,
        vcs: GitRepository | None = None,
        github: GitHubClient | None = None,
        branch_namespace: str = "starship",
        ticket_url_template: str = "",
    ):
        self.repository = WorkItemRepository(session)
        self.vcs = vcs
        self.github = github
        self.branch_namespace = branch_namespace
        self.ticket_url_template = ticket_url_template

    async def create_from_text(
        self,
        text: str,
        source_repo: SourceRepoConfig,
        create_git_branch: bool = False,
    ) -> list[WorkItem]:
        """Create one work item per ticket id found in ``text``.

        Branch names account for every branch already used by work items and
        for the ones created earlier in this call. If a git branch cannot be
        created the call stops; items created before it are kept.

        Raises:
            WorkItemError: If the text holds no ticket ids
            VCSError: If ``create_git_branch`` is set and git fails
        """
        tickets = parse_tickets(text)
        if not tickets:
            raise WorkItemError(
                "No valid tickets found. Use values like US12345 or DE12345."
            )
        if create_git_branch and self.vcs is None:
            raise WorkItemError("Creating git branches requires a git repository")

        existing = await self.repository.get_branch_names()
        created: list[WorkItem] = []

        for ticket in tickets:
            branch = next_branch_name(ticket, existing, self.branch_namespace)
            if create_git_branch and self.vcs is not None:
                await self.vcs.create_branch(source_repo.local_path, branch)

            item = WorkItem(
                ticket_id=ticket,
                source_repo_full_name=source_repo.repo_full_name,
                local_branch=branch,
                ticket_url=build_ticket_url(self.ticket_url_template, ticket),
            )
            await self.repository.add(item)
            existing.append(branch)
            created.append(item)
            logger.info(f"Created work item {ticket} on branch {branch}")

        return created

    async def set_ticket_link(self, item: WorkItem, markdown: str) -> WorkItem:
        """Attach a ``[ID](url)`` ticket link; blank input clears it.

        Raises:
            WorkItemError: If the markdown is not a valid link
        """
        markdown = markdown.strip()
        if not markdown:
            item.ticket_markdown = None
            item.ticket_url = None
        else:
            link = parse_ticket_link(markdown)
            if link is None:
                raise WorkItemError("Invalid markdown. Use [Ticket](url).")
            item.ticket_markdown = link.markdown
            item.ticket_url = link.url

        item.updated_at = utcnow()
        await self.repository.flush()
        return item

    async def create_source_pull_request(
        self,
        item: WorkItem,
        base: str,
        title: str | None = None,
        body: str = "",
    ) -> WorkItem:
        """Open the pull request for the work item's branch."""
        if self.github is None:
            raise WorkItemError("Creating pull requests requires a GitHub client")

        title = (title or "").strip() or f"{item.ticket_id}: work in progress"
        created = await self.github.create_pull_request(
            item.source_repo_full_name, title, body, item.local_branch, base
        )
        item.pr_number = created.number
        item.pr_url = created.url
        item.pr_state = PRState.OPEN
        item.updated_at = utcnow()
        await self.repository.flush()
        return item

    async def delete(self, item_id: uuid.UUID) -> bool:
        """Delete a work item. Returns False if it does not exist."""
        deleted = await self.repository.delete_by_id(item_id)
        if deleted:
            logger.info(f"Deleted work item {item_id}")
        return deleted
