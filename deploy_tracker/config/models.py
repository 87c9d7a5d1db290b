"""Pydantic configuration models for the deploy tracker.

The configuration hierarchy follows this structure:
- Config: Root configuration containing all subsystems
- SystemConfig: Logging and debug settings
- Component-specific configs: GitHub, Harness, database, refresh timer,
  notifications, mobile and web release pipelines, secret storage

Environment variables are substituted using the format ${VAR_NAME} with
optional defaults: ${VAR_NAME:default_value}
"""

import os
import re
from enum import Enum
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LogLevel(str, Enum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class SecretBackend(str, Enum):
    """Where the GitHub token and Harness API key are stored."""

    ENV = "env"
    FILE = "file"


DEFAULT_HOME = Path("~/.deploy-tracker")


DEFAULT_RUNTIME_INPUTS_TEMPLATE = """\
pipeline:
  identifier: {pipeline_id}
  template:
    templateInputs:
      stages:
        - stage:
            identifier: initialize
            type: Deployment
            spec:
              service:
                serviceRef: {service_ref}
              environment:
                environmentRef: {environment_ref}
                infrastructureDefinitions:
                  - identifier: {infrastructure_ref}
            variables:
              - name: ISTIO_CANARY_WEIGHTAGE
                type: Number
                default: 0
                value: 0
              - name: HELM_VALUES_FILE_NAME
                type: String
                value: v1
              - name: COOKIE_BASED_TRAFFIC_ROUTING
                type: String
                default: "false"
                value: "false"
        - stage:
            identifier: rfc_inputs
            type: Custom
            variables:
              - name: CHANGE_DESCRIPTION
                type: String
                value: <+input>.executionInput()
              - name: RFC_SHORT_DESC
                type: String
                value: <+input>.executionInput()
              - name: CHANGE_IMPACTED_WEBSITE
                type: String
                value: <+input>.executionInput()
              - name: CHANGE_DOMAIN
                type: String
                value: <+input>.executionInput()
              - name: RFC_IQOQ
                type: String
                default: <+pipeline.stages.initialize.spec.execution.steps.init_validate.output.outputVariables.RFC_IQOQ>
                value: <+input>.executionInput().default(<+pipeline.stages.initialize.spec.execution.steps.init_validate.output.outputVariables.RFC_IQOQ>)
              - name: RFC_BACKOUT_PLAN
                type: String
                default: <+pipeline.stages.initialize.spec.execution.steps.init_validate.output.outputVariables.RFC_BO_PLAN>
                value: <+input>.executionInput().default(<+pipeline.stages.initialize.spec.execution.steps.init_validate.output.outputVariables.RFC_BO_PLAN>)
              - name: RFC_NUMBER
                type: String
                value: <+input>.executionInput()
"""

RUNTIME_INPUT_FIELDS = (
    "pipeline_id",
    "service_ref",
    "environment_ref",
    "infrastructure_ref",
    "module",
    "module_slug",
    "environment",
)


class BaseConfigModel(BaseModel):
    """Base configuration model with environment variable substitution."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def substitute_env_vars(cls, values: Any) -> Any:
        """Substitute environment variables in string values.

        Supports formats:
        - ${VAR_NAME} - Required environment variable
        - ${VAR_NAME:default} - Optional with default value

        Raises:
            ValueError: If required environment variable is missing
        """
        if not isinstance(values, dict):
            return values

        def substitute_value(value: Any) -> Any:
            if isinstance(value, str):
                # Pattern: ${VAR_NAME} or ${VAR_NAME:default}
                pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

                def replacer(match: re.Match[str]) -> str:
                    var_name = match.group(1)
                    default_value = match.group(2)

                    env_value = os.getenv(var_name)
                    if env_value is not None:
                        return env_value
                    elif default_value is not None:
                        return default_value
                    else:
                        raise ValueError(
                            f"Required environment variable '{var_name}' not found"
                        )

                return re.sub(pattern, replacer, value)
            elif isinstance(value, dict):
                return {k: substitute_value(v) for k, v in value.items()}
            elif isinstance(value, list):
                return [substitute_value(item) for item in value]
            else:
                return value

        return {key: substitute_value(value) for key, value in values.items()}


class SystemConfig(BaseConfigModel):
    """Core system configuration settings."""

    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="System-wide logging level"
    )

    debug_mode: bool = Field(
        default=False, description="Enable debug mode with verbose logging"
    )


class GitHubConfig(BaseConfigModel):
    """GitHub REST API client settings."""

    base_url: str = Field(
        default="https://api.github.com", description="GitHub API base URL"
    )

    timeout: int = Field(
        default=30, ge=1, le=300, description="Per-request timeout in seconds"
    )

    user_agent: str = Field(
        default="deploy-tracker/1.0", description="User-Agent sent on every request"
    )

    token_key: str = Field(
        default="github-token", description="Secret store key of the bearer token"
    )

    max_concurrent_requests: int = Field(default=10, ge=1, le=100)


class HarnessConfig(BaseConfigModel):
    """Harness pipeline execution settings.

    The ``*_template`` fields are rendered with ``{module}``,
    ``{module_slug}`` (module with dashes removed) and ``{environment}``.
    ``runtime_inputs_template`` additionally receives ``{pipeline_id}`` and
    the rendered ``{service_ref}``, ``{environment_ref}`` and
    ``{infrastructure_ref}``; literal braces must be doubled.
    """

    base_url: str = Field(default="https://app.harness.io")
    timeout: int = Field(default=30, ge=1, le=300)
    user_agent: str = Field(default="deploy-tracker/1.0")
    api_key_key: str = Field(
        default="harness-api-key", description="Secret store key of the API key"
    )

    account_id: str = Field(default="")
    org_id: str = Field(default="default")
    project_id: str = Field(default="default")
    pipeline_id: str = Field(default="deploy")
    module_type: str = Field(default="")
    repo_identifier: str = Field(default="")
    branch: str = Field(default="main")
    parent_entity_connector_ref: str = Field(default="")
    parent_entity_repo_name: str = Field(default="")

    service_ref_template: str = Field(default="{module_slug}_svc")
    environment_ref_template: str = Field(default="{environment}")
    infrastructure_ref_template: str = Field(default="{environment}")
    delegate_selector_template: str = Field(default="")
    runtime_inputs_template: str = Field(
        default=DEFAULT_RUNTIME_INPUTS_TEMPLATE,
        description="Runtime inputs YAML posted with every pipeline execution",
    )

    @field_validator("runtime_inputs_template")
    @classmethod
    def validate_runtime_inputs_template(cls, v: str) -> str:
        """Reject templates with unknown placeholders."""
        try:
            v.format(**dict.fromkeys(RUNTIME_INPUT_FIELDS, ""))
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid runtime inputs template: {e}") from e
        return v


class DatabaseConfig(BaseConfigModel):
    """Database connection configuration."""

    url: str = Field(
        default_factory=lambda: (
            f"sqlite+aiosqlite:///{DEFAULT_HOME.expanduser() / 'tracker.db'}"
        ),
        description="SQLAlchemy async database URL",
    )

    echo: bool = Field(default=False, description="Enable SQLAlchemy query logging")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL format."""
        if not v:
            raise ValueError("Database URL cannot be empty")

        scheme = urlparse(v).scheme
        if not scheme:
            raise ValueError("Database URL must include scheme")
        if scheme.split("+", 1)[0] not in ["postgresql", "mysql", "sqlite"]:
            raise ValueError(f"Unsupported database scheme '{scheme}'")

        return v


class RefreshConfig(BaseConfigModel):
    """Periodic refresh timer."""

    auto_refresh_enabled: bool = Field(default=True)

    interval_seconds: int = Field(
        default=1200, ge=30, le=86400, description="Seconds between refreshes"
    )


class NotificationPreferences(BaseConfigModel):
    """Which categories of work item activity raise a notification."""

    merged: bool = Field(default=True)
    checks_failed: bool = Field(default=True)
    review_requested: bool = Field(default=True)
    pr_comments: bool = Field(default=True)


class MobileReleaseConfig(BaseConfigModel):
    """Mobile deployment config update pipeline."""

    config_file_path: str = Field(default=".circleci/config.yml")
    tag_key_path: str = Field(default="parameters.DEPLOY_TAG.default")
    branch_prefix: str = Field(default="chore/update-mobile-tag-")


class WebReleaseConfig(BaseConfigModel):
    """Web values repository update pipeline."""

    values_repo: str = Field(
        default="", description="owner/repo of the deployment values repository"
    )
    source_repo: str = Field(
        default="", description="owner/repo whose CI logs carry module versions"
    )
    source_branch: str = Field(default="main")
    base_branch: str = Field(default="main")
    path_template: str = Field(
        default="{module_slug}-svc/{environment}/values/v1.yaml",
        description="Values file path for a module and environment",
    )
    version_key: str = Field(default="dockerImageTag")
    branch_prefix: str = Field(default="update-docker-tags-")
    pr_title: str = Field(default="Update dockerImageTag")
    default_modules: list[str] = Field(default_factory=list)
    default_environments: list[str] = Field(default_factory=list)
    run_budget: int = Field(
        default=50, ge=1, le=100, description="Workflow runs scanned for versions"
    )
    job_name_filters: list[str] = Field(
        default_factory=lambda: ["docker publish", "container scan"]
    )

    @field_validator("values_repo", "source_repo")
    @classmethod
    def validate_repo_full_name(cls, v: str) -> str:
        """Validate owner/repo format when set."""
        if v and (v.count("/") != 1 or not all(v.split("/"))):
            raise ValueError(f"Repository must be 'owner/repo', got '{v}'")
        return v


class SecretsConfig(BaseConfigModel):
    """Secret storage backend."""

    backend: SecretBackend = Field(default=SecretBackend.ENV)
    file_path: str = Field(default=str(DEFAULT_HOME / "secrets.json"))
    env_prefix: str = Field(default="DEPLOY_TRACKER_")


class Config(BaseConfigModel):
    """Root configuration containing all subsystem configurations."""

    system: SystemConfig = Field(
        default_factory=SystemConfig, description="Core system configuration"
    )

    github: GitHubConfig = Field(default_factory=GitHubConfig)

    harness: HarnessConfig = Field(default_factory=HarnessConfig)

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    refresh: RefreshConfig = Field(default_factory=RefreshConfig)

    notifications: NotificationPreferences = Field(
        default_factory=NotificationPreferences
    )

    mobile: MobileReleaseConfig = Field(default_factory=MobileReleaseConfig)

    web: WebReleaseConfig = Field(default_factory=WebReleaseConfig)

    secrets: SecretsConfig = Field(default_factory=SecretsConfig)

    settings_path: str = Field(
        default=str(DEFAULT_HOME / "settings-v1.json"),
        description="Repository settings snapshot file",
    )

    branch_namespace: str = Field(
        default="starship", description="Middle segment of work item branch names"
    )

    ticket_url_template: str = Field(
        default="", description="Ticket URL with a {ticketNumber} placeholder"
    )

    @model_validator(mode="after")
    def validate_consistent_configuration(self) -> "Config":
        """Validate cross-field consistency."""
        if self.ticket_url_template and not urlparse(self.ticket_url_template).scheme:
            raise ValueError("ticket_url_template must be an absolute URL")
        return self
