"""Configuration management for the deploy tracker.

Loads YAML configuration into validated pydantic models with environment
variable substitution (``${VAR}`` and ``${VAR:default}``).
"""

from .exceptions import (
    ConfigurationError,
    ConfigurationFileError,
    ConfigurationValidationError,
)
from .loader import ConfigurationLoader, load_config
from .models import (
    Config,
    DatabaseConfig,
    GitHubConfig,
    HarnessConfig,
    LogLevel,
    MobileReleaseConfig,
    NotificationPreferences,
    RefreshConfig,
    SecretBackend,
    SecretsConfig,
    SystemConfig,
    WebReleaseConfig,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "ConfigurationFileError",
    "ConfigurationLoader",
    "ConfigurationValidationError",
    "DatabaseConfig",
    "GitHubConfig",
    "HarnessConfig",
    "LogLevel",
    "MobileReleaseConfig",
    "NotificationPreferences",
    "RefreshConfig",
    "SecretBackend",
    "SecretsConfig",
    "SystemConfig",
    "WebReleaseConfig",
    "load_config",
]
