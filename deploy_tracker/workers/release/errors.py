"""Release pipeline errors."""

from collections.abc import Sequence


class ReleasePipelineError(Exception):
    """Base class for release pipeline failures."""

    pass


class MissingTagError(ReleasePipelineError):
    """No tag is available for the work item or in the build logs."""

    pass


class NoRunError(ReleasePipelineError):
    """No successful workflow run exists for the branch."""

    pass


class NoBuildJobError(ReleasePipelineError):
    """The workflow run has no build job."""

    pass


class InvalidConfigFileError(ReleasePipelineError):
    """The deployment config file has no updatable tag declaration."""

    pass


class MissingVersionsError(ReleasePipelineError):
    """Some selected modules have no version."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing versions for modules: {', '.join(self.missing)}")


class NoFilesUpdatedError(ReleasePipelineError):
    """No values file was updated, so no pull request was opened."""

    pass
