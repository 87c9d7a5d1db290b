"""User notification delivery."""

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers short user-facing notifications."""

    def request_authorization(self) -> None:
        """Ask for permission to show notifications; called once at start."""
        ...

    def notify(self, title: str, body: str) -> None:
        """Show a notification. Delivery is fire-and-forget."""
        ...


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    def request_authorization(self) -> None:
        logger.debug("Logging notifier needs no authorization")

    def notify(self, title: str, body: str) -> None:
        logger.info(f"{title}: {body}")

