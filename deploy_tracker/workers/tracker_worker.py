"""Deploy tracker worker: wiring and the scheduled refresh loop.

This module builds every runtime component from configuration (database,
secret store, GitHub and Harness clients, notifier, refresh driver, release
service) and runs the periodic refresh until a shutdown signal arrives. The
CLI reuses the same wiring for one-shot commands.
"""

import asyncio
import contextlib
import logging
import signal
import sys
from datetime import UTC, datetime
from typing import Any

from ..config.loader import ConfigurationLoader
from ..config.models import Config, LogLevel, SecretBackend
from ..database.connection import DatabaseConnectionManager
from ..github.auth import SecretStoreAuth
from ..github.client import GitHubClient, GitHubClientConfig
from ..harness.client import HarnessClient
from ..integrations.notifier import LoggingNotifier, Notifier
from ..integrations.secrets import EnvironmentSecretStore, FileSecretStore, SecretStore
from ..integrations.settings_store import SettingsStore
from ..integrations.vcs import GitRepository
from .monitor import SynchronizationDriver, WorkItemStateResolver
from .release import (
    MobileDeploymentPipeline,
    ReleaseService,
    VersionDiscovery,
    WebDeploymentPipeline,
)

logger = logging.getLogger(__name__)


def build_secret_store(config: Config) -> SecretStore:
    """Secret store for the configured backend."""
    if config.secrets.backend == SecretBackend.FILE:
        return FileSecretStore(config.secrets.file_path)
    return EnvironmentSecretStore(config.secrets.env_prefix)


class TrackerWorker:
    """Owns the runtime components and the refresh loop.

    Manages the lifecycle of:
    - Configuration loading
    - Database connection and schema
    - GitHub and Harness clients
    - Settings restore on first start
    - Scheduled refresh of every work item
    """

    def __init__(
        self,
        config: Config | None = None,
        config_path: str | None = None,
        notifier: Notifier | None = None,
        secret_store: SecretStore | None = None,
        auto_restore: bool = True,
        log_level: str | None = None,
    ):
        """Initialize the worker.

        Args:
            config: Already loaded configuration; wins over ``config_path``
            config_path: Optional path to a configuration file
            notifier: Notification sink, logs by default
            secret_store: Overrides the configured secret backend
            auto_restore: Restore the settings snapshot into an empty database
            log_level: Explicit log level; the configured one is used otherwise
        """
        self.config_path = config_path
        self.config = config
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.secret_store = secret_store
        self.auto_restore = auto_restore
        self.log_level = log_level

        self.database: DatabaseConnectionManager | None = None
        self.github_client: GitHubClient | None = None
        self.harness_client: HarnessClient | None = None
        self.vcs = GitRepository()
        self.settings_store: SettingsStore | None = None
        self.driver: SynchronizationDriver | None = None
        self.release_service: ReleaseService | None = None

        self.running = False
        self.shutdown_event = asyncio.Event()
        self.refresh_task: asyncio.Task[None] | None = None
        self.started_at: datetime | None = None

    async def initialize(self) -> None:
        """Initialize worker components and connections."""
        logger.info("Initializing deploy tracker...")

        try:
            self._load_configuration()
            await self._initialize_database()
            self._initialize_clients()
            self._initialize_services()
            if self.auto_restore:
                await self._restore_settings()

            self.started_at = datetime.now(UTC)
            logger.info("Deploy tracker initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize deploy tracker: {e}")
            await self.cleanup()
            raise

    def _load_configuration(self) -> None:
        if self.config is None:
            loader = ConfigurationLoader()
            if self.config_path:
                self.config = loader.load_from_file(self.config_path)
            else:
                self.config = loader.auto_load()

        self._apply_log_level()

        if self.secret_store is None:
            self.secret_store = build_secret_store(self.config)

        logger.info(
            f"Configuration loaded (secrets: {self.config.secrets.backend.value}, "
            f"auto refresh: {self.config.refresh.auto_refresh_enabled})"
        )

    def _apply_log_level(self) -> None:
        """Set the root log level from configuration unless given explicitly."""
        if self.config is None or self.log_level:
            return
        system = self.config.system
        level = LogLevel.DEBUG if system.debug_mode else system.log_level
        logging.getLogger().setLevel(level.value)

    async def _initialize_database(self) -> None:
        if self.config is None:
            raise RuntimeError("Configuration not loaded")

        self.database = DatabaseConnectionManager(self.config.database)
        await self.database.create_all()
        logger.info("Database initialized")

    def _initialize_clients(self) -> None:
        if self.config is None or self.secret_store is None:
            raise RuntimeError("Configuration not loaded")

        github = self.config.github
        self.github_client = GitHubClient(
            auth=SecretStoreAuth(self.secret_store, github.token_key),
            config=GitHubClientConfig(
                base_url=github.base_url,
                timeout=github.timeout,
                user_agent=github.user_agent,
                max_concurrent_requests=github.max_concurrent_requests,
            ),
        )
        self.harness_client = HarnessClient(self.config.harness, self.secret_store)
        logger.info("API clients initialized")

    def _initialize_services(self) -> None:
        if self.config is None or self.database is None or self.github_client is None:
            raise RuntimeError("Required components not initialized")

        resolver = WorkItemStateResolver(self.github_client, self.notifier)
        self.driver = SynchronizationDriver(
            self.database, resolver, self.config.notifications
        )

        web = self.config.web
        self.release_service = ReleaseService(
            mobile=MobileDeploymentPipeline(self.vcs, self.github_client, self.config.mobile),
            web=WebDeploymentPipeline(self.github_client, web, self.harness_client),
            versions=VersionDiscovery(
                self.github_client, web.run_budget, web.job_name_filters
            ),
        )
        self.settings_store = SettingsStore(self.config.settings_path)
        self.notifier.request_authorization()

    async def _restore_settings(self) -> None:
        if self.database is None or self.settings_store is None:
            raise RuntimeError("Required components not initialized")

        async with self.database.get_session() as session:
            if await self.settings_store.restore_if_needed(session):
                logger.info("Restored repository settings from snapshot")

    async def run(self) -> None:
        """Run the refresh loop until shutdown."""
        if self.driver is None or self.config is None:
            raise RuntimeError("Worker not initialized. Call initialize() first.")

        if not self.config.refresh.auto_refresh_enabled:
            logger.info("Auto refresh is disabled; nothing to run")
            return

        self.running = True
        logger.info("Starting deploy tracker worker...")

        self._setup_signal_handlers()

        try:
            self.refresh_task = asyncio.create_task(
                self.driver.run_periodic(
                    self.config.refresh.interval_seconds, self.shutdown_event
                )
            )
            await self.shutdown_event.wait()

        except asyncio.CancelledError:
            logger.info("Worker cancelled")
        finally:
            self.running = False

            if self.refresh_task and not self.refresh_task.done():
                self.refresh_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await self.refresh_task
            await self.driver.cancel_all()

            logger.info("Deploy tracker worker stopped")

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""

        def signal_handler(sig: int, frame: Any) -> None:
            logger.info(f"Received signal {sig}, initiating shutdown...")
            self.shutdown_event.set()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    async def shutdown(self) -> None:
        """Initiate graceful shutdown."""
        logger.info("Shutting down deploy tracker worker...")
        self.shutdown_event.set()

    async def cleanup(self) -> None:
        """Clean up resources."""
        try:
            if self.github_client:
                await self.github_client.close()
            if self.harness_client:
                await self.harness_client.close()
            if self.database:
                await self.database.close()
            logger.info("Cleanup completed")

        except Exception as e:
            logger.error(f"Error during cleanup: {e}")


async def main() -> None:
    """Main entry point for the deploy tracker worker."""
    import argparse

    parser = argparse.ArgumentParser(description="Deploy Tracker Worker")
    parser.add_argument("--config", help="Configuration file path")
    parser.add_argument("--log-level", default=None, help="Log level")

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, (args.log_level or "INFO").upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    worker = TrackerWorker(config_path=args.config, log_level=args.log_level)

    try:
        await worker.initialize()
        await worker.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Worker failed: {e}")
        sys.exit(1)
    finally:
        await worker.cleanup()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
