"""Configuration loading.

This module loads configuration from YAML files, validates it with the
pydantic models and reports failures as configuration errors.

The loading hierarchy is:
1. Default values from Pydantic models
2. Configuration file (YAML)
3. Environment variables substituted into file values
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .models import Config

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "deploy-tracker.yaml"
CONFIG_ENV_VAR = "DEPLOY_TRACKER_CONFIG"


class ConfigurationLoader:
    """Handles loading and validation of configuration from various sources."""

    def __init__(self) -> None:
        """Initialize configuration loader."""
        self._config: Config | None = None
        self._config_file_path: Path | None = None

    def load_from_file(self, config_path: str | Path) -> Config:
        """Load configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationFileError: If file cannot be read or parsed
            ConfigurationValidationError: If configuration validation fails
        """
        config_path = Path(config_path).expanduser()

        if not config_path.exists():
            raise ConfigurationFileError(
                f"Configuration file not found: {config_path}", str(config_path)
            )

        if not config_path.is_file():
            raise ConfigurationFileError(
                f"Configuration path is not a file: {config_path}", str(config_path)
            )

        try:
            with open(config_path, encoding="utf-8") as f:
                config_data = yaml.safe_load(f)

            if config_data is None:
                config_data = {}

        except yaml.YAMLError as e:
            raise ConfigurationFileError(
                f"Failed to parse YAML configuration: {e}", str(config_path)
            ) from e
        except OSError as e:
            raise ConfigurationFileError(
                f"Failed to read configuration file: {e}", str(config_path)
            ) from e

        if not isinstance(config_data, dict):
            raise ConfigurationFileError(
                "Configuration file must contain a mapping at the top level",
                str(config_path),
            )

        config = self.load_from_dict(config_data)
        self._config_file_path = config_path.resolve()
        logger.debug(f"Loaded configuration from {self._config_file_path}")
        return config

    def load_from_dict(self, config_data: dict[str, Any]) -> Config:
        """Load configuration from a dictionary.

        Raises:
            ConfigurationValidationError: If configuration validation fails
        """
        try:
            self._config = Config(**config_data)
        except (ValidationError, ValueError) as e:
            errors = e.errors() if isinstance(e, ValidationError) else []
            raise ConfigurationValidationError(
                f"Configuration validation failed: {e}", validation_errors=errors
            ) from e

        return self._config

    def load_default(self) -> Config:
        """Load configuration with default values only."""
        self._config = Config()
        self._config_file_path = None
        return self._config

    def find_config_file(self, filename: str = CONFIG_FILENAME) -> Path | None:
        """Find configuration file in standard locations.

        Search order:
        1. Current working directory
        2. DEPLOY_TRACKER_CONFIG environment variable (file or directory)
        3. ~/.deploy-tracker/config.yaml

        Returns:
            Path to found configuration file, or None if not found
        """
        search_paths = [Path.cwd() / filename]

        env_path_str = os.getenv(CONFIG_ENV_VAR)
        if env_path_str:
            env_path = Path(env_path_str).expanduser()
            if env_path.is_dir():
                search_paths.append(env_path / filename)
            else:
                search_paths.append(env_path)

        search_paths.append(Path.home() / ".deploy-tracker" / "config.yaml")

        for path in search_paths:
            if path.exists() and path.is_file():
                return path

        return None

    def auto_load(self) -> Config:
        """Load the first configuration file found, or defaults if none exists."""
        config_path = self.find_config_file()

        if config_path is None:
            logger.debug("No configuration file found, using defaults")
            return self.load_default()

        return self.load_from_file(config_path)

    @property
    def config(self) -> Config | None:
        """Get the loaded configuration."""
        return self._config

    @property
    def config_file_path(self) -> Path | None:
        """Get the path to the loaded configuration file."""
        return self._config_file_path

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._config is not None


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from an explicit file or auto-discovery.

    Args:
        config_path: Explicit path to configuration file

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If configuration cannot be loaded or is invalid
    """
    loader = ConfigurationLoader()
    try:
        if config_path:
            return loader.load_from_file(config_path)
        return loader.auto_load()
    except (ConfigurationFileError, ConfigurationValidationError) as e:
        raise ConfigurationError(f"Failed to load configuration: {e}") from e
