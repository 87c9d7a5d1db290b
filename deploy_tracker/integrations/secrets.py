"""Secret storage collaborators for API credentials.

Tokens are looked up by a logical key (``github-token``, ``harness-api-key``)
every time a caller needs them; nothing here caches values between calls.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class SecretStoreError(Exception):
    """Raised when a secret cannot be persisted or read from its backend."""

    pass


class SecretStore(ABC):
    """Abstract secret store."""

    @abstractmethod
    def load_token(self, key: str) -> str:
        """Return the stored value for ``key`` or an empty string when unset."""
        pass

    @abstractmethod
    def save_token(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``.

        Raises:
            SecretStoreError: If the backend cannot be written
        """
        pass


class EnvironmentSecretStore(SecretStore):
    """Secret store backed by process environment variables.

    ``github-token`` maps to ``{prefix}GITHUB_TOKEN``.
    """

    def __init__(self, prefix: str = "DEPLOY_TRACKER_"):
        self.prefix = prefix

    def variable_name(self, key: str) -> str:
        """Get the environment variable name for a logical key."""
        return f"{self.prefix}{key.upper().replace('-', '_')}"

    def load_token(self, key: str) -> str:
        return os.environ.get(self.variable_name(key), "").strip()

    def save_token(self, key: str, value: str) -> None:
        os.environ[self.variable_name(key)] = value


class FileSecretStore(SecretStore):
    """Secret store backed by a JSON file readable only by the current user."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SecretStoreError(f"Failed to read secret file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise SecretStoreError(f"Secret file {self.path} is not a JSON object")
        return {str(k): str(v) for k, v in data.items()}

    def load_token(self, key: str) -> str:
        return self._read_all().get(key, "").strip()

    def save_token(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise SecretStoreError(f"Failed to save secret '{key}': {e}") from e

        logger.debug(f"Saved secret '{key}' to {self.path}")
