"""
Unit tests for TrackerWorker.

Why: The worker wires every component from configuration; a wiring
     mistake breaks every command at once.

What: Tests initialization, secret backend selection, settings restore,
      the refresh loop lifecycle and cleanup.

How: Builds Config objects pointing into tmp_path and replaces the driver
     with AsyncMock where the loop is exercised.
"""

import logging
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from deploy_tracker.config.models import Config
from deploy_tracker.integrations.secrets import EnvironmentSecretStore, FileSecretStore
from deploy_tracker.repositories import SourceRepoConfigRepository
from deploy_tracker.workers.tracker_worker import TrackerWorker, build_secret_store
from tests.fixtures import InMemorySecretStore, RecordingNotifier


def _config(tmp_path: Path, **overrides) -> Config:
    data = {
        "database": {"url": f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}"},
        "settings_path": str(tmp_path / "settings.json"),
    }
    data.update(overrides)
    return Config(**data)


def test_build_secret_store(tmp_path: Path) -> None:
    """Test backend selection."""
    env_store = build_secret_store(_config(tmp_path))
    file_store = build_secret_store(
        _config(
            tmp_path,
            secrets={"backend": "file", "file_path": str(tmp_path / "s.json")},
        )
    )

    assert isinstance(env_store, EnvironmentSecretStore)
    assert isinstance(file_store, FileSecretStore)
    assert file_store.path == tmp_path / "s.json"


@pytest.mark.asyncio
async def test_initialize_wires_components(tmp_path: Path) -> None:
    """Test that every component exists after initialize."""
    notifier = RecordingNotifier()
    worker = TrackerWorker(config=_config(tmp_path), notifier=notifier)

    await worker.initialize()
    try:
        assert worker.database is not None
        assert worker.github_client is not None
        assert worker.harness_client is not None
        assert worker.driver is not None
        assert worker.release_service is not None
        assert worker.release_service.web is not None
        assert worker.settings_store is not None
        assert notifier.authorized
        assert worker.started_at is not None
    finally:
        await worker.cleanup()


@pytest.mark.asyncio
async def test_initialize_restores_settings(tmp_path: Path) -> None:
    """Test that a snapshot is restored into a fresh database."""
    (tmp_path / "settings.json").write_text(
        '{"schema_version": 1, "source_repos": [{"repo_url": '
        '"https://github.com/acme/app.git", "repo_full_name": "acme/app", '
        '"local_path": "/tmp/app", "workflow_identifier": "build.yml"}]}'
    )
    worker = TrackerWorker(config=_config(tmp_path), secret_store=InMemorySecretStore())

    await worker.initialize()
    try:
        assert worker.database is not None
        async with worker.database.get_session() as session:
            repo = await SourceRepoConfigRepository(session).get_by_full_name("acme/app")
        assert repo is not None
    finally:
        await worker.cleanup()


@pytest.mark.asyncio
async def test_invalid_config_path_fails(tmp_path: Path) -> None:
    """Test that a missing config file aborts initialization."""
    worker = TrackerWorker(config_path=str(tmp_path / "absent.yaml"))

    with pytest.raises(Exception, match="not found"):
        await worker.initialize()


@pytest.mark.asyncio
async def test_run_returns_when_auto_refresh_disabled(tmp_path: Path) -> None:
    """Test that a disabled timer makes run a no-op."""
    worker = TrackerWorker(
        config=_config(tmp_path, refresh={"auto_refresh_enabled": False})
    )
    await worker.initialize()
    try:
        worker.driver = AsyncMock()

        await worker.run()

        worker.driver.run_periodic.assert_not_called()
    finally:
        await worker.cleanup()


@pytest.mark.asyncio
async def test_run_until_shutdown(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that run starts the loop and stops it on shutdown."""
    worker = TrackerWorker(config=_config(tmp_path, refresh={"interval_seconds": 60}))
    await worker.initialize()
    monkeypatch.setattr(worker, "_setup_signal_handlers", lambda: None)
    try:
        worker.driver = AsyncMock()
        await worker.shutdown()

        await worker.run()

        worker.driver.run_periodic.assert_called_once_with(60, worker.shutdown_event)
        worker.driver.cancel_all.assert_awaited_once()
        assert not worker.running
    finally:
        await worker.cleanup()


@pytest.mark.asyncio
async def test_run_requires_initialize() -> None:
    """Test that run refuses to start before initialize."""
    with pytest.raises(RuntimeError):
        await TrackerWorker().run()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "system,explicit,expected",
    [
        ({"log_level": "WARNING"}, None, logging.WARNING),
        ({"log_level": "WARNING", "debug_mode": True}, None, logging.DEBUG),
        ({"debug_mode": True}, "ERROR", logging.ERROR),
    ],
)
async def test_log_level_follows_system_config(
    tmp_path: Path, system: dict, explicit: str | None, expected: int
) -> None:
    """Test that debug mode and the configured level reach the root logger."""
    root = logging.getLogger()
    previous = root.level
    root.setLevel(logging.ERROR)
    worker = TrackerWorker(
        config=_config(tmp_path, system=system),
        secret_store=InMemorySecretStore(),
        log_level=explicit,
    )

    try:
        await worker.initialize()
        assert root.level == expected
    finally:
        await worker.cleanup()
        root.setLevel(previous)
