"""
Unit tests for ReleaseService.

Why: The service is where pipeline failures turn into user-facing outcomes
     and persisted error messages.

What: Tests outcome mapping, error recording, missing components and the
      full web workflow.

How: Replaces pipelines with AsyncMock objects.
"""

from unittest.mock import AsyncMock

import pytest

from deploy_tracker.models import DeploymentRepoConfig, WorkItem
from deploy_tracker.workers.release import (
    DeploymentUpdateResult,
    FullWebWorkflowResult,
    MissingTagError,
    ReleaseService,
    WebDeploymentRequest,
    WebDeploymentResult,
)

DEPLOYMENT_REPO = DeploymentRepoConfig(
    repo_full_name="acme/mobile-deploy",
    repo_url="https://github.com/acme/mobile-deploy.git",
    local_path="/tmp/mobile-deploy",
    selected_environment_branch="qa",
)


def _request() -> WebDeploymentRequest:
    return WebDeploymentRequest(
        values_repo="acme/values",
        base_branch="main",
        modules=["orders", "billing"],
        environments=["qa"],
        versions={"orders": "", "billing": "9.0.0"},
    )


def _web_result() -> WebDeploymentResult:
    return WebDeploymentResult(
        branch_name="update-docker-tags-1",
        pr_url="https://github.com/acme/values/pull/3",
        pr_number=3,
        updated_file_count=2,
    )


@pytest.mark.asyncio
async def test_mobile_success_records_pr(work_item: WorkItem) -> None:
    """Test that a mobile update stores the deployment pull request URL."""
    mobile = AsyncMock()
    mobile.update_deployment_config.return_value = DeploymentUpdateResult(
        branch_name="chore/update-mobile-tag-2.3.4",
        pr_url="https://github.com/acme/mobile-deploy/pull/5",
    )

    outcome = await ReleaseService(mobile=mobile).update_mobile_deployment(
        work_item, DEPLOYMENT_REPO
    )

    assert outcome.ok
    assert outcome.message == "Opened https://github.com/acme/mobile-deploy/pull/5"
    assert work_item.deployment_pr_url == "https://github.com/acme/mobile-deploy/pull/5"
    mobile.update_deployment_config.assert_awaited_once_with(DEPLOYMENT_REPO, work_item)


@pytest.mark.asyncio
async def test_failure_is_recorded_on_item(work_item: WorkItem) -> None:
    """Test that errors become failed outcomes and last_error_message."""
    mobile = AsyncMock()
    mobile.update_deployment_config.side_effect = MissingTagError(
        "No tag is available for deployment update."
    )
    before = work_item.updated_at

    outcome = await ReleaseService(mobile=mobile).update_mobile_deployment(
        work_item, DEPLOYMENT_REPO
    )

    assert not outcome.ok
    assert str(outcome) == "Failed: No tag is available for deployment update."
    assert work_item.last_error_message == "No tag is available for deployment update."
    assert work_item.updated_at >= before


@pytest.mark.asyncio
async def test_missing_components(work_item: WorkItem) -> None:
    """Test that unconfigured pipelines and repositories fail cleanly."""
    service = ReleaseService(mobile=AsyncMock())

    no_repo = await service.update_mobile_deployment(work_item, None)
    no_web = await service.create_web_deployment(work_item, _request())

    assert no_repo.message == "Deployment repository is not configured."
    assert no_web.message == "Web release is not configured."


@pytest.mark.asyncio
async def test_discover_versions_partial_is_success(work_item: WorkItem) -> None:
    """Test that partial discovery still succeeds."""
    versions = AsyncMock()
    versions.find_latest_versions.return_value = {"orders": "1.0.0"}

    outcome = await ReleaseService(versions=versions).discover_versions(
        work_item, "acme/app", "main", ["orders", "billing"]
    )

    assert outcome.ok
    assert outcome.result == {"orders": "1.0.0"}
    assert outcome.message == "Found versions for 1 of 2 modules"


@pytest.mark.asyncio
async def test_trigger_web_deployments(work_item: WorkItem) -> None:
    """Test that execution URLs are passed through."""
    web = AsyncMock()
    web.trigger_deployments.return_value = ["https://app.harness.io/exec/1"]

    outcome = await ReleaseService(web=web).trigger_web_deployments(
        work_item, ["orders"], ["qa"]
    )

    assert outcome.ok
    assert outcome.message == "Started 1 executions"


@pytest.mark.asyncio
async def test_full_workflow_merges_versions(work_item: WorkItem) -> None:
    """Test discovery, caller overrides, merge and trigger in one run."""
    versions = AsyncMock()
    versions.find_latest_versions.return_value = {"orders": "1.0.0", "billing": "1.1.0"}
    web = AsyncMock()
    web.create_deployment_pr.return_value = _web_result()
    web.trigger_deployments.return_value = ["https://app.harness.io/exec/1"]
    request = _request()

    outcome = await ReleaseService(web=web, versions=versions).run_full_web_workflow(
        work_item, request, "acme/app", "main", merge=True, trigger=True
    )

    assert outcome.ok
    result = outcome.result
    assert isinstance(result, FullWebWorkflowResult)
    # Blank caller versions are filled in, explicit ones win
    assert result.versions == {"orders": "1.0.0", "billing": "9.0.0"}
    assert request.versions == result.versions
    assert result.merged
    assert result.execution_urls == ["https://app.harness.io/exec/1"]
    assert work_item.deployment_pr_url == "https://github.com/acme/values/pull/3"
    versions.find_latest_versions.assert_awaited_once_with(
        "acme/app", "main", ["orders", "billing"]
    )
    web.merge_deployment_pr.assert_awaited_once_with("acme/values", 3)
    assert outcome.message == (
        "Opened https://github.com/acme/values/pull/3, merged, started 1 executions"
    )


@pytest.mark.asyncio
async def test_full_workflow_without_merge(work_item: WorkItem) -> None:
    """Test that merge and trigger are opt-in."""
    versions = AsyncMock()
    versions.find_latest_versions.return_value = {"orders": "1.0.0"}
    web = AsyncMock()
    web.create_deployment_pr.return_value = _web_result()

    outcome = await ReleaseService(web=web, versions=versions).run_full_web_workflow(
        work_item, _request(), "acme/app", "main"
    )

    assert outcome.ok
    assert outcome.message == "Opened https://github.com/acme/values/pull/3"
    web.merge_deployment_pr.assert_not_awaited()
    web.trigger_deployments.assert_not_awaited()
