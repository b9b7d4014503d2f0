"""Run outcome and result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class RunOutcome(Enum):
    """Terminal outcome of a single run. Exactly one is produced per run."""

    NOT_A_REPOSITORY = "not_a_repository"
    STATUS_CHECK_FAILED = "status_check_failed"
    DIRTY_WORKING_TREE = "dirty_working_tree"
    COMPARATOR_FAILURE = "comparator_failure"
    NO_CHANGE = "no_change"
    SYNC_FAILURE = "sync_failure"
    REBUILD_FAILURE = "rebuild_failure"
    SUCCESS = "success"

    @property
    def notifies(self) -> bool:
        """Whether this outcome is reported to the operator."""
        return self is not RunOutcome.NO_CHANGE

    @property
    def is_failure(self) -> bool:
        return self not in (
            RunOutcome.NO_CHANGE,
            RunOutcome.DIRTY_WORKING_TREE,
            RunOutcome.SUCCESS,
        )


class ComparatorStage(Enum):
    """Which side of the revision comparison failed."""

    REMOTE = "remote"
    LOCAL = "local"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass
class RunResult:
    """Record of a single pipeline run."""

    outcome: RunOutcome
    repo_path: str
    branch: str
    host: str
    stage: ComparatorStage | None = None
    error: str | None = None
    remote_revision: str | None = None
    local_revision: str | None = None
    applied_revision: str | None = None
    persisted: bool = False
    notified: bool = False
    steps_completed: list[str] = field(default_factory=list)
    started_at: str = field(default_factory=_now_iso)
    completed_at: str | None = None
    duration_seconds: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "repo_path": self.repo_path,
            "branch": self.branch,
            "host": self.host,
            "stage": self.stage.value if self.stage else None,
            "error": self.error,
            "remote_revision": self.remote_revision,
            "local_revision": self.local_revision,
            "applied_revision": self.applied_revision,
            "persisted": self.persisted,
            "notified": self.notified,
            "steps_completed": self.steps_completed,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "duration_seconds": self.duration_seconds,
        }
