"""Git access for the managed working tree.

All git subprocess calls are confined to this module. Each public method of
``GitRepository`` maps a failing invocation onto the error type of the
pipeline stage that called it.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Protocol

from nix_config_manager.constants import (
    DEFAULT_GIT_REMOTE,
    DEFAULT_GIT_TIMEOUT_SECONDS,
    GIT_METADATA_DIR,
    MAX_STDERR_CHARS,
)
from nix_config_manager.errors import (
    GitCommandError,
    LocalResolutionError,
    RemoteResolutionError,
    StatusQueryError,
    SyncError,
)
from nix_config_manager.logging import get_logger

log = get_logger("nix_config_manager.git")


class Repository(Protocol):
    """Version-control capability consumed by the pipeline."""

    def is_repository(self) -> bool: ...

    def is_clean(self) -> bool: ...

    def refresh(self, branch: str) -> None: ...

    def resolve_remote_tip(self, branch: str) -> str: ...

    def resolve_local_tip(self) -> str: ...

    def force_sync(self, branch: str, revision: str | None = None) -> None: ...


def is_git_repo(path: str | Path) -> bool:
    """Return True if *path* is the root of a git working tree."""
    return (Path(path) / GIT_METADATA_DIR).is_dir()


def parse_ls_remote(output: str, ref: str) -> str | None:
    """Return the commit id advertised for exactly *ref* in ``git ls-remote`` output."""
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] == ref:
            return parts[0]
    return None


class GitRepository:
    """Subprocess-backed git working tree."""

    def __init__(
        self,
        path: str | Path,
        remote: str = DEFAULT_GIT_REMOTE,
        timeout: float | None = DEFAULT_GIT_TIMEOUT_SECONDS,
    ) -> None:
        self._path = Path(path)
        self._remote = remote
        self._timeout = timeout

    @property
    def path(self) -> Path:
        return self._path

    @property
    def remote(self) -> str:
        return self._remote

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_repository(self) -> bool:
        return is_git_repo(self._path)

    def is_clean(self) -> bool:
        """Return True if there are no untracked, modified or staged entries."""
        try:
            out = self._run_git("status", "--porcelain")
        except GitCommandError as exc:
            raise StatusQueryError(f"failed to check git status: {exc}") from exc
        return out.strip() == ""

    def refresh(self, branch: str) -> None:
        """Fetch *branch* so remote-tracking data reflects the remote."""
        try:
            self._run_git("fetch", self._remote, branch)
        except GitCommandError as exc:
            raise RemoteResolutionError(
                f"failed to fetch updates for branch {branch}: {exc}"
            ) from exc

    def resolve_remote_tip(self, branch: str) -> str:
        """Ask the remote for the current tip of *branch*."""
        ref = f"refs/heads/{branch}"
        try:
            out = self._run_git("ls-remote", self._remote, ref)
        except GitCommandError as exc:
            raise RemoteResolutionError(f"failed to get remote hash: {exc}") from exc

        revision = parse_ls_remote(out, ref)
        if revision is None:
            raise RemoteResolutionError(f"no hash found for branch {branch}")
        return revision

    def resolve_local_tip(self) -> str:
        """Return the commit id checked out in the working tree."""
        try:
            out = self._run_git("rev-parse", "--verify", "HEAD")
        except GitCommandError as exc:
            raise LocalResolutionError(f"failed to get local hash: {exc}") from exc

        revision = out.strip()
        if not revision:
            raise LocalResolutionError("failed to get local hash: empty output")
        return revision

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def force_sync(self, branch: str, revision: str | None = None) -> None:
        """Discard local state and reset the working tree to the remote tip.

        Resets to *revision* when given, otherwise to ``<remote>/<branch>``.
        """
        target = revision or f"{self._remote}/{branch}"
        try:
            self._run_git("fetch", self._remote, branch)
            self._run_git("reset", "--hard", target)
        except GitCommandError as exc:
            raise SyncError(f"git command failed: {exc}") from exc
        log.info("git_reset_complete", repo=str(self._path), target=target)

    # ------------------------------------------------------------------
    # Subprocess helper
    # ------------------------------------------------------------------

    def _run_git(self, *args: str) -> str:
        """Run ``git -C <path> <args>`` and return stdout.

        Raises:
            GitCommandError: On non-zero exit, timeout, or if git cannot start.
        """
        cmd = ["git", "-C", str(self._path), *args]
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            log.warning("git_cmd_timeout", cmd=" ".join(args), timeout=self._timeout)
            raise GitCommandError(args, None, f"timed out after {self._timeout}s") from exc
        except OSError as exc:
            log.warning("git_cmd_error", cmd=" ".join(args), error=str(exc))
            raise GitCommandError(args, None, str(exc)) from exc

        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()[:MAX_STDERR_CHARS]
            log.warning(
                "git_cmd_failed",
                cmd=" ".join(args),
                returncode=proc.returncode,
                stderr=stderr,
            )
            raise GitCommandError(args, proc.returncode, stderr)

        return proc.stdout or ""
