"""
Unit tests for WorkItemService.

Why: Creating work items touches the database and optionally git; branch
     numbering has to stay unique across both.

What: Tests creation from free text, git branch creation, ticket links,
      source pull requests and deletion.

How: Uses the SQLite session fixture with mocked git and GitHub clients.
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from deploy_tracker.github.models import CreatedPullRequest
from deploy_tracker.integrations.vcs import VCSError
from deploy_tracker.models import PRState, SourceRepoConfig, WorkItem
from deploy_tracker.repositories import WorkItemRepository
from deploy_tracker.workitems import WorkItemError, WorkItemService


@pytest.mark.asyncio
async def test_create_from_text(session: AsyncSession, source_repo: SourceRepoConfig) -> None:
    """Test one item per ticket with ticket URLs and unique branches."""
    await WorkItemRepository(session).add(
        WorkItem(
            ticket_id="US100",
            source_repo_full_name="acme/app",
            local_branch="feature/starship/US100-1",
        )
    )
    service = WorkItemService(
        session, ticket_url_template="https://tracker.example.com/{ticketNumber}"
    )

    items = await service.create_from_text("us100 and DE7, again US100", source_repo)

    assert [(i.ticket_id, i.local_branch) for i in items] == [
        ("US100", "feature/starship/US100-2"),
        ("DE7", "fix/starship/DE7-1"),
    ]
    assert items[1].ticket_url == "https://tracker.example.com/DE7"
    assert await WorkItemRepository(session).count_all() == 3


@pytest.mark.asyncio
async def test_create_without_tickets(
    session: AsyncSession, source_repo: SourceRepoConfig
) -> None:
    """Test that text without ticket ids is rejected."""
    with pytest.raises(WorkItemError, match="No valid tickets"):
        await WorkItemService(session).create_from_text("nothing here", source_repo)


@pytest.mark.asyncio
async def test_create_git_branches(
    session: AsyncSession, source_repo: SourceRepoConfig
) -> None:
    """Test that git branches are created in the source working copy."""
    vcs = AsyncMock()

    await WorkItemService(session, vcs=vcs).create_from_text(
        "US1 US2", source_repo, create_git_branch=True
    )

    assert [c.args for c in vcs.create_branch.await_args_list] == [
        ("/tmp/acme-app", "feature/starship/US1-1"),
        ("/tmp/acme-app", "feature/starship/US2-1"),
    ]


@pytest.mark.asyncio
async def test_git_failure_keeps_earlier_items(
    session: AsyncSession, source_repo: SourceRepoConfig
) -> None:
    """Test that a git failure stops creation after the items already made."""
    vcs = AsyncMock()
    vcs.create_branch.side_effect = [None, VCSError("branch exists")]

    with pytest.raises(VCSError):
        await WorkItemService(session, vcs=vcs).create_from_text(
            "US1 US2", source_repo, create_git_branch=True
        )

    items = await WorkItemRepository(session).list_all()
    assert [item.ticket_id for item in items] == ["US1"]


@pytest.mark.asyncio
async def test_git_branch_requires_vcs(
    session: AsyncSession, source_repo: SourceRepoConfig
) -> None:
    """Test that branch creation without git is rejected up front."""
    with pytest.raises(WorkItemError):
        await WorkItemService(session).create_from_text(
            "US1", source_repo, create_git_branch=True
        )


@pytest.mark.asyncio
async def test_set_and_clear_ticket_link(session: AsyncSession, work_item: WorkItem) -> None:
    """Test linking, rejecting invalid markdown and clearing."""
    await WorkItemRepository(session).add(work_item)
    service = WorkItemService(session)

    await service.set_ticket_link(work_item, " [US100](https://tracker.example.com/US100) ")
    assert work_item.ticket_url == "https://tracker.example.com/US100"
    assert work_item.ticket_markdown == "[US100](https://tracker.example.com/US100)"

    with pytest.raises(WorkItemError):
        await service.set_ticket_link(work_item, "[US100](no-scheme)")
    assert work_item.ticket_url == "https://tracker.example.com/US100"

    await service.set_ticket_link(work_item, "  ")
    assert work_item.ticket_url is None
    assert work_item.ticket_markdown is None


@pytest.mark.asyncio
async def test_create_source_pull_request(
    session: AsyncSession, work_item: WorkItem
) -> None:
    """Test that the pull request is opened from the work item branch."""
    await WorkItemRepository(session).add(work_item)
    github = AsyncMock()
    github.create_pull_request.return_value = CreatedPullRequest(
        number=42, url="https://github.com/acme/app/pull/42"
    )

    await WorkItemService(session, github=github).create_source_pull_request(
        work_item, "main"
    )

    github.create_pull_request.assert_awaited_once_with(
        "acme/app", "US100: work in progress", "", "feature/starship/US100-1", "main"
    )
    assert work_item.pr_number == 42
    assert work_item.pr_state == PRState.OPEN


@pytest.mark.asyncio
async def test_delete(session: AsyncSession, work_item: WorkItem) -> None:
    """Test deleting existing and unknown items."""
    await WorkItemRepository(session).add(work_item)
    service = WorkItemService(session)

    assert await service.delete(work_item.id) is True
    assert await service.delete(work_item.id) is False
