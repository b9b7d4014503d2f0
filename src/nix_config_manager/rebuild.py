"""System rebuild trigger."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from nix_config_manager.constants import DEFAULT_REBUILD_COMMAND
from nix_config_manager.errors import RebuildError
from nix_config_manager.logging import get_logger

log = get_logger("nix_config_manager.rebuild")


class Rebuilder(Protocol):
    """Rebuild capability: one blocking call, no parameters."""

    def apply(self) -> None: ...


class SystemRebuilder:
    """Runs the rebuild command, streaming its output to ours."""

    def __init__(
        self,
        command: Sequence[str] = DEFAULT_REBUILD_COMMAND,
        cwd: str | Path | None = None,
        timeout: float | None = None,
    ) -> None:
        if not command:
            raise ValueError("rebuild command must not be empty")
        self._command = list(command)
        self._cwd = cwd
        self._timeout = timeout

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def apply(self) -> None:
        """Run the rebuild to completion.

        Raises:
            RebuildError: If the command cannot start, times out or exits non-zero.
        """
        display = shlex.join(self._command)
        log.info("rebuild_started", cmd=display)
        try:
            proc = subprocess.run(
                self._command,
                cwd=self._cwd,
                timeout=self._timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise RebuildError(f"{display} timed out after {self._timeout}s") from exc
        except OSError as exc:
            raise RebuildError(f"{display} could not be started: {exc}") from exc

        if proc.returncode != 0:
            raise RebuildError(f"{display} exited with status {proc.returncode}")
        log.info("rebuild_finished", cmd=display)
