"""Release pipelines: mobile tag bump, web values update, version discovery."""

from .errors import (
    InvalidConfigFileError,
    MissingTagError,
    MissingVersionsError,
    NoBuildJobError,
    NoFilesUpdatedError,
    NoRunError,
    ReleasePipelineError,
)
from .mobile import MobileDeploymentPipeline, sanitize_branch_component
from .models import (
    DeploymentUpdateResult,
    FullWebWorkflowResult,
    PairOutcome,
    PairStatus,
    PipelineOutcome,
    WebDeploymentRequest,
    WebDeploymentResult,
)
from .service import ReleaseService
from .versions import VersionDiscovery
from .web import WebDeploymentPipeline

__all__ = [
    "DeploymentUpdateResult",
    "FullWebWorkflowResult",
    "InvalidConfigFileError",
    "MissingTagError",
    "MissingVersionsError",
    "MobileDeploymentPipeline",
    "NoBuildJobError",
    "NoFilesUpdatedError",
    "NoRunError",
    "PairOutcome",
    "PairStatus",
    "PipelineOutcome",
    "ReleasePipelineError",
    "ReleaseService",
    "VersionDiscovery",
    "WebDeploymentPipeline",
    "WebDeploymentRequest",
    "WebDeploymentResult",
    "sanitize_branch_component",
]
