"""Per-repository run lock.

Two concurrent hard resets or rebuilds against the same tree are unsafe, so
the entry point holds an exclusive ``flock`` for the duration of a run.
"""

from __future__ import annotations

import fcntl
import hashlib
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from nix_config_manager.constants import DEFAULT_LOCK_DIR, LOCK_DIR_MODE
from nix_config_manager.errors import RunInProgressError
from nix_config_manager.logging import get_logger

log = get_logger("nix_config_manager.lock")


def default_lock_path(repo_path: str | Path, lock_dir: str | Path = DEFAULT_LOCK_DIR) -> Path:
    """Return a lock file path keyed by the resolved repository path.

    *lock_dir* must only be writable by the user the agent runs as; the
    default lives under ``/run`` rather than the shared temp directory.
    """
    resolved = str(Path(repo_path).expanduser().resolve())
    digest = hashlib.sha256(resolved.encode("utf-8")).hexdigest()[:16]
    return Path(lock_dir) / f"{digest}.lock"


@contextmanager
def run_lock(path: str | Path) -> Iterator[Path]:
    """Hold an exclusive, non-blocking lock on *path*.

    The lock file is never opened through a symlink.

    Raises:
        RunInProgressError: If another process already holds the lock.
        OSError: If the lock file cannot be created or opened.
    """
    lock_path = Path(path)
    lock_path.parent.mkdir(mode=LOCK_DIR_MODE, parents=True, exist_ok=True)
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT | os.O_NOFOLLOW | os.O_CLOEXEC, 0o600)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            raise RunInProgressError(f"another run holds {lock_path}") from exc

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        log.debug("run_lock_acquired", path=str(lock_path))
        try:
            yield lock_path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            log.debug("run_lock_released", path=str(lock_path))
    finally:
        os.close(fd)
