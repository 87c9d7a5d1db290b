"""Command line interface for the deploy tracker."""

import argparse
import asyncio
import getpass
import json
import logging
import sys
import uuid
from collections.abc import Awaitable, Callable, Sequence
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from .github.utils import parse_repo_full_name
from .models import WorkItem
from .repositories import (
    DeploymentRepoConfigRepository,
    SourceRepoConfigRepository,
    WorkItemRepository,
)
from .workers.monitor import RefreshScope
from .workers.release import PipelineOutcome, WebDeploymentRequest
from .workers.tracker_worker import TrackerWorker
from .workitems import WorkItemError, WorkItemService, parse_ticket_links

logger = logging.getLogger(__name__)

Handler = Callable[[TrackerWorker, argparse.Namespace], Awaitable[int]]


class CommandError(Exception):
    """A command cannot run with the given arguments."""

    pass


def _session(worker: TrackerWorker) -> AbstractAsyncContextManager[AsyncSession]:
    if worker.database is None:
        raise RuntimeError("Worker not initialized")
    return worker.database.get_session()


def _parse_item_id(raw: str) -> uuid.UUID:
    try:
        return uuid.UUID(raw)
    except ValueError as e:
        raise CommandError(f"Not a work item id: {raw}") from e


async def _get_item(session: AsyncSession, raw_id: str) -> WorkItem:
    item = await WorkItemRepository(session).get_by_id(_parse_item_id(raw_id))
    if item is None:
        raise CommandError(f"Work item {raw_id} not found")
    return item


def _repo_name_from_url(url: str) -> str:
    full_name = parse_repo_full_name(url)
    if full_name is None:
        raise CommandError(f"Cannot read owner/repo from {url}")
    return full_name


def _print_outcome(outcome: PipelineOutcome) -> int:
    print(("✅ " if outcome.ok else "❌ ") + outcome.message)
    return 0 if outcome.ok else 1


def _parse_versions(pairs: Sequence[str]) -> dict[str, str]:
    versions: dict[str, str] = {}
    for pair in pairs:
        module, sep, version = pair.partition("=")
        if not sep or not module.strip():
            raise CommandError(f"Expected MODULE=VERSION, got '{pair}'")
        versions[module.strip()] = version.strip()
    return versions


# Repository settings


async def cmd_init_db(worker: TrackerWorker, args: argparse.Namespace) -> int:
    # Tables are created during initialization
    print("✅ Database ready")
    return 0


async def cmd_add_source_repo(worker: TrackerWorker, args: argparse.Namespace) -> int:
    full_name = _repo_name_from_url(args.url)
    async with _session(worker) as session:
        repo = await SourceRepoConfigRepository(session).upsert(
            full_name,
            repo_url=args.url,
            local_path=args.local_path,
            default_target_branch=args.target_branch,
            workflow_identifier=args.workflow,
        )
    print(f"✅ Source repository {repo.repo_full_name} saved")
    return 0


async def cmd_add_deployment_repo(
    worker: TrackerWorker, args: argparse.Namespace
) -> int:
    full_name = _repo_name_from_url(args.url)
    async with _session(worker) as session:
        repo = await DeploymentRepoConfigRepository(session).upsert(
            full_name,
            repo_url=args.url,
            local_path=args.local_path,
            selected_environment_branch=args.env_branch,
        )
    print(
        f"✅ Deployment repository {repo.repo_full_name} saved "
        f"(branch {repo.selected_environment_branch})"
    )
    return 0


async def cmd_save_settings(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.settings_store is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        count = await worker.settings_store.save(session)
    print(f"✅ Saved {count} repository settings to {worker.settings_store.path}")
    return 0


async def cmd_restore_settings(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.settings_store is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        restored = await worker.settings_store.restore_if_needed(session)
    if restored:
        print("✅ Repository settings restored")
    else:
        print("Nothing restored (settings already present or no snapshot)")
    return 0


async def cmd_set_secret(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.secret_store is None:
        raise RuntimeError("Worker not initialized")
    value = getpass.getpass(f"{args.key}: ")
    worker.secret_store.save_token(args.key, value)
    print(f"✅ Saved {args.key}")
    return 0


# Work items


def _work_item_service(worker: TrackerWorker, session: AsyncSession) -> WorkItemService:
    if worker.config is None:
        raise RuntimeError("Worker not initialized")
    return WorkItemService(
        session,
        vcs=worker.vcs,
        github=worker.github_client,
        branch_namespace=worker.config.branch_namespace,
        ticket_url_template=worker.config.ticket_url_template,
    )


async def cmd_new(worker: TrackerWorker, args: argparse.Namespace) -> int:
    text = sys.stdin.read() if args.text == ["-"] else " ".join(args.text)
    async with _session(worker) as session:
        source_repo = await SourceRepoConfigRepository(session).get_by_full_name(
            args.repo
        )
        if source_repo is None:
            raise CommandError(f"Source repository {args.repo} is not configured")

        items = await _work_item_service(worker, session).create_from_text(
            text, source_repo, create_git_branch=args.create_branch
        )
        for item in items:
            print(f"✅ {item.id}  {item.ticket_id}  {item.local_branch}")
    return 0


async def cmd_list(worker: TrackerWorker, args: argparse.Namespace) -> int:
    async with _session(worker) as session:
        repo = WorkItemRepository(session)
        items = await (repo.get_by_repo(args.repo) if args.repo else repo.list_all())

    if args.json:
        print(json.dumps([item.to_dict() for item in items], indent=2))
        return 0

    for item in items:
        print(
            f"{item.id}  {item.ticket_id:<10} {item.local_branch:<32} "
            f"{item.pr_state.value:<7} {item.check_state.value:<8} "
            f"{item.latest_tag or '-'}"
        )
        if item.pr_url:
            print(f"    PR: {item.pr_url}")
        if item.deployment_pr_url:
            print(f"    Deployment PR: {item.deployment_pr_url}")
        if item.last_error_message:
            print(f"    Error: {item.last_error_message}")
    return 0


async def cmd_link(worker: TrackerWorker, args: argparse.Namespace) -> int:
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        await _work_item_service(worker, session).set_ticket_link(item, args.markdown)
    print(f"✅ {item.ticket_id} linked to {item.ticket_url or 'nothing'}")
    return 0


async def cmd_check_links(worker: TrackerWorker, args: argparse.Namespace) -> int:
    links, invalid = parse_ticket_links(sys.stdin.read())
    for link in links:
        print(f"{link.ticket_id}  {link.url}")
    for line in invalid:
        print(f"❌ Invalid link: {line}")
    return 1 if invalid else 0


async def cmd_open_pr(worker: TrackerWorker, args: argparse.Namespace) -> int:
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        base = args.base
        if base is None:
            source_repo = await SourceRepoConfigRepository(session).get_by_full_name(
                item.source_repo_full_name
            )
            base = source_repo.default_target_branch if source_repo else "main"
        await _work_item_service(worker, session).create_source_pull_request(
            item, base, title=args.title, body=args.body
        )
    print(f"✅ Opened {item.pr_url}")
    return 0


async def cmd_branches(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.github_client is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        source_repo = await SourceRepoConfigRepository(session).get_by_full_name(
            args.repo
        )
    default = source_repo.default_target_branch if source_repo else None
    for name in await worker.github_client.list_branches(args.repo):
        print(f"{name} (default target)" if name == default else name)
    return 0


async def cmd_delete(worker: TrackerWorker, args: argparse.Namespace) -> int:
    async with _session(worker) as session:
        deleted = await _work_item_service(worker, session).delete(
            _parse_item_id(args.item)
        )
    if not deleted:
        raise CommandError(f"Work item {args.item} not found")
    print(f"✅ Deleted {args.item}")
    return 0


# Refresh


async def cmd_refresh(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.driver is None:
        raise RuntimeError("Worker not initialized")

    scope = (
        RefreshScope.items(*(_parse_item_id(raw) for raw in args.item))
        if args.item
        else RefreshScope.all()
    )
    summary = await worker.driver.request_refresh(scope)
    for outcome in summary.outcomes:
        status = "✅" if outcome.success else f"❌ {outcome.error}"
        print(f"{outcome.item_id}  {status}")
        for event in outcome.events:
            print(f"    {event}")
        if outcome.tag_resolved:
            print(f"    Tag: {outcome.tag_resolved}")
    print(f"{summary.succeeded} refreshed, {summary.failed} failed")
    return 0 if summary.failed == 0 else 1


async def cmd_watch(worker: TrackerWorker, args: argparse.Namespace) -> int:
    await worker.run()
    return 0


# Release


async def cmd_mobile_deploy(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.release_service is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        deployments = DeploymentRepoConfigRepository(session)
        deployment_repo = (
            await deployments.get_by_full_name(args.deployment_repo)
            if args.deployment_repo
            else await deployments.get_default()
        )
        outcome = await worker.release_service.update_mobile_deployment(
            item, deployment_repo
        )
    return _print_outcome(outcome)


def _web_request(
    worker: TrackerWorker, args: argparse.Namespace, item: WorkItem
) -> WebDeploymentRequest:
    if worker.config is None:
        raise RuntimeError("Worker not initialized")
    web = worker.config.web
    modules = args.module or web.default_modules
    environments = args.env or web.default_environments
    if not web.values_repo:
        raise CommandError("web.values_repo is not configured")
    return WebDeploymentRequest(
        values_repo=web.values_repo,
        base_branch=web.base_branch,
        modules=list(modules),
        environments=list(environments),
        versions=_parse_versions(getattr(args, "version", None) or []),
        pr_title=web.pr_title,
        source_repo=web.source_repo or item.source_repo_full_name,
        source_branch=web.source_branch,
        ticket_id=item.ticket_id,
        source_pr_url=item.pr_url,
    )


async def cmd_web_versions(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.release_service is None or worker.config is None:
        raise RuntimeError("Worker not initialized")
    web = worker.config.web
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        modules = args.module or web.default_modules
        outcome = await worker.release_service.discover_versions(
            item,
            web.source_repo or item.source_repo_full_name,
            web.source_branch,
            modules,
        )
    if outcome.ok:
        for module in modules:
            print(f"{module}={outcome.result.get(module, '')}")
    return _print_outcome(outcome)


async def cmd_web_deploy(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.release_service is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        request = _web_request(worker, args, item)
        outcome = await worker.release_service.create_web_deployment(item, request)
    if outcome.ok:
        for pair in outcome.result.outcomes:
            print(f"    {pair}")
    return _print_outcome(outcome)


async def cmd_web_run(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.release_service is None:
        raise RuntimeError("Worker not initialized")
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        request = _web_request(worker, args, item)
        outcome = await worker.release_service.run_full_web_workflow(
            item,
            request,
            request.source_repo,
            request.source_branch,
            merge=args.merge,
            trigger=args.trigger,
        )
    if outcome.ok:
        for url in outcome.result.execution_urls:
            print(f"    {url}")
    return _print_outcome(outcome)


async def cmd_web_trigger(worker: TrackerWorker, args: argparse.Namespace) -> int:
    if worker.release_service is None or worker.config is None:
        raise RuntimeError("Worker not initialized")
    web = worker.config.web
    async with _session(worker) as session:
        item = await _get_item(session, args.item)
        outcome = await worker.release_service.trigger_web_deployments(
            item,
            args.module or web.default_modules,
            args.env or web.default_environments,
        )
    if outcome.ok:
        for url in outcome.result:
            print(f"    {url}")
    return _print_outcome(outcome)


def _add_web_selection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("item", help="Work item id")
    parser.add_argument(
        "--module", action="append", help="Module to deploy (repeatable)"
    )
    parser.add_argument(
        "--env", action="append", help="Target environment (repeatable)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subcommand per operation."""
    parser = argparse.ArgumentParser(
        prog="deploy-tracker",
        description="Track work items from ticket to deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register a source repository
  deploy-tracker add-source-repo https://github.com/acme/app.git ~/src/app \\
      --workflow build.yml

  # Create work items from any text mentioning ticket ids
  deploy-tracker new --repo acme/app "US100 and DE42" --create-branch

  # Refresh everything once, or keep refreshing
  deploy-tracker refresh
  deploy-tracker watch
        """,
    )
    parser.add_argument("--config", "-c", help="Configuration file path")
    parser.add_argument("--log-level", default=None, help="Log level")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the database tables")

    p = sub.add_parser("add-source-repo", help="Register a source repository")
    p.add_argument("url")
    p.add_argument("local_path")
    p.add_argument("--target-branch", default="main")
    p.add_argument(
        "--workflow", required=True, help="Workflow file name or id used for tags"
    )

    p = sub.add_parser("add-deployment-repo", help="Register a deployment repository")
    p.add_argument("url")
    p.add_argument("local_path")
    p.add_argument("--env-branch", default="qa")

    sub.add_parser("save-settings", help="Write repository settings to the snapshot")
    sub.add_parser(
        "restore-settings", help="Load the snapshot into an empty database"
    )

    p = sub.add_parser("set-secret", help="Save a token in the secret store")
    p.add_argument("key", help="e.g. github-token or harness-api-key")

    p = sub.add_parser("new", help="Create work items from ticket ids in text")
    p.add_argument("text", nargs="+", help="Text with ticket ids, or - for stdin")
    p.add_argument("--repo", required=True, help="Source repository owner/repo")
    p.add_argument("--create-branch", action="store_true")

    p = sub.add_parser("list", help="List work items")
    p.add_argument("--repo", help="Only items of this owner/repo")
    p.add_argument("--json", action="store_true", help="Output JSON")

    p = sub.add_parser("link", help="Set the ticket link as [ID](url) markdown")
    p.add_argument("item")
    p.add_argument("markdown", help="Empty string clears the link")

    sub.add_parser("check-links", help="Validate [ID](url) lines read from stdin")

    p = sub.add_parser("open-pr", help="Open the pull request for a work item")
    p.add_argument("item")
    p.add_argument("--base", help="Target branch (repository default otherwise)")
    p.add_argument("--title")
    p.add_argument("--body", default="")

    p = sub.add_parser("branches", help="List base branch choices of a repository")
    p.add_argument("repo", help="owner/repo")

    p = sub.add_parser("delete", help="Delete a work item")
    p.add_argument("item")

    p = sub.add_parser("refresh", help="Refresh work items once")
    p.add_argument("--item", action="append", help="Work item id (repeatable)")

    sub.add_parser("watch", help="Refresh periodically until interrupted")

    p = sub.add_parser("mobile-deploy", help="Open the mobile deploy tag PR")
    p.add_argument("item")
    p.add_argument("--deployment-repo", help="owner/repo (first configured otherwise)")

    p = sub.add_parser("web-versions", help="Discover module versions from CI logs")
    p.add_argument("item", help="Work item id")
    p.add_argument("--module", action="append", help="Module (repeatable)")

    p = sub.add_parser("web-deploy", help="Open the values repository PR")
    _add_web_selection(p)
    p.add_argument(
        "--version", action="append", help="MODULE=VERSION (repeatable)"
    )

    p = sub.add_parser("web-run", help="Discover versions, open, merge and trigger")
    _add_web_selection(p)
    p.add_argument(
        "--version", action="append", help="MODULE=VERSION override (repeatable)"
    )
    p.add_argument("--merge", action="store_true", help="Squash-merge the PR")
    p.add_argument("--trigger", action="store_true", help="Trigger Harness deploys")

    p = sub.add_parser("web-trigger", help="Trigger Harness deployments")
    _add_web_selection(p)

    return parser


COMMANDS: dict[str, Handler] = {
    "init-db": cmd_init_db,
    "add-source-repo": cmd_add_source_repo,
    "add-deployment-repo": cmd_add_deployment_repo,
    "save-settings": cmd_save_settings,
    "restore-settings": cmd_restore_settings,
    "set-secret": cmd_set_secret,
    "new": cmd_new,
    "list": cmd_list,
    "link": cmd_link,
    "check-links": cmd_check_links,
    "open-pr": cmd_open_pr,
    "branches": cmd_branches,
    "delete": cmd_delete,
    "refresh": cmd_refresh,
    "watch": cmd_watch,
    "mobile-deploy": cmd_mobile_deploy,
    "web-versions": cmd_web_versions,
    "web-deploy": cmd_web_deploy,
    "web-run": cmd_web_run,
    "web-trigger": cmd_web_trigger,
}


async def run_command(args: argparse.Namespace, worker: TrackerWorker) -> int:
    """Initialize ``worker``, run the selected command and clean up."""
    try:
        await worker.initialize()
        return await COMMANDS[args.command](worker, args)
    except (CommandError, WorkItemError) as e:
        print(f"❌ {e}")
        return 2
    except Exception as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"❌ {e}")
        return 1
    finally:
        await worker.cleanup()


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    worker = TrackerWorker(
        config_path=args.config,
        auto_restore=args.command != "restore-settings",
        log_level=args.log_level,
    )
    log_level = args.log_level or "INFO"
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        return asyncio.run(run_command(args, worker))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
