"""Repository configuration SQLAlchemy models."""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class SourceRepoConfig(BaseModel):
    """A source code repository whose pull requests are tracked."""

    __tablename__ = "source_repo_configs"

    repo_full_name: Mapped[str] = mapped_column(String(300), nullable=False)
    repo_url: Mapped[str] = mapped_column(String(500), nullable=False)
    local_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    default_target_branch: Mapped[str] = mapped_column(
        String(200), default="main", nullable=False
    )
    # Workflow file name or numeric id used for tag resolution
    workflow_identifier: Mapped[str] = mapped_column(String(300), nullable=False)

    __table_args__ = (
        UniqueConstraint("repo_full_name", name="uq_source_repo_full_name"),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"<SourceRepoConfig(id={self.id}, repo={self.repo_full_name})>"


class DeploymentRepoConfig(BaseModel):
    """A repository holding deployment configuration for an environment."""

    __tablename__ = "deployment_repo_configs"

    repo_full_name: Mapped[str] = mapped_column(String(300), nullable=False)
    repo_url: Mapped[str] = mapped_column(String(500), nullable=False)
    local_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    selected_environment_branch: Mapped[str] = mapped_column(
        String(200), default="qa", nullable=False
    )

    __table_args__ = (
        UniqueConstraint("repo_full_name", name="uq_deployment_repo_full_name"),
    )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<DeploymentRepoConfig(id={self.id}, repo={self.repo_full_name}, "
            f"branch={self.selected_environment_branch})>"
        )
