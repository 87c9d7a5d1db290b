"""Repository implementations for data access layer."""

from .base import BaseRepository
from .repo_config import DeploymentRepoConfigRepository, SourceRepoConfigRepository
from .work_item import WorkItemRepository

__all__ = [
    "BaseRepository",
    "WorkItemRepository",
    "SourceRepoConfigRepository",
    "DeploymentRepoConfigRepository",
]
