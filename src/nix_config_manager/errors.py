"""Exception taxonomy for nix-config-manager.

Pipeline-stage errors are caught inside ``run_pipeline`` and turned into a
``RunOutcome`` plus an operator notification. Only ``ConfigurationError`` and
``RunInProgressError`` are seen by the command-line entry point.
"""

from __future__ import annotations

from nix_config_manager.models import ComparatorStage


class NixConfigManagerError(Exception):
    """Base class for all nix-config-manager errors."""


class ConfigurationError(NixConfigManagerError):
    """The run configuration could not be loaded or is invalid."""


class RepositoryError(NixConfigManagerError):
    """A git query or mutation against the working tree failed."""


class StatusQueryError(RepositoryError):
    """``git status`` could not be queried (distinct from a dirty tree)."""


class RemoteResolutionError(RepositoryError):
    """The remote branch tip could not be resolved."""


class LocalResolutionError(RepositoryError):
    """The local tip could not be resolved."""


class SyncError(RepositoryError):
    """Fetching or hard-resetting to the remote tip failed."""


class RebuildError(NixConfigManagerError):
    """The system rebuild command failed."""


class PersistenceError(NixConfigManagerError):
    """The run configuration could not be written back."""


class NotificationError(NixConfigManagerError):
    """A notification could not be delivered."""


class RunInProgressError(NixConfigManagerError):
    """Another run already holds the lock for this repository."""


class GitCommandError(RepositoryError):
    """A single git invocation exited non-zero, timed out or could not start."""

    def __init__(self, args: tuple[str, ...], returncode: int | None, stderr: str = "") -> None:
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr
        command = "git " + " ".join(args)
        if returncode is None:
            message = f"{command} failed: {stderr}" if stderr else f"{command} failed"
        else:
            message = f"{command} exited with status {returncode}"
            if stderr:
                message = f"{message}: {stderr}"
        super().__init__(message)


class ComparatorError(RepositoryError):
    """Resolving one side of the revision comparison failed."""

    def __init__(self, stage: ComparatorStage, cause: str) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(cause)
