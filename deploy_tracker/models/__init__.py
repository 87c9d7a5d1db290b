"""SQLAlchemy models for the deploy tracker."""

from .base import Base, BaseModel
from .enums import CheckState, NotificationCategory, PRState
from .repo_config import DeploymentRepoConfig, SourceRepoConfig
from .work_item import WorkItem

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    # Enums
    "PRState",
    "CheckState",
    "NotificationCategory",
    # Core models
    "WorkItem",
    "SourceRepoConfig",
    "DeploymentRepoConfig",
]
