"""Update detection and apply pipeline.

Lifecycle of a run:
1. Validate that the configured path is a git working tree
2. Refuse to continue if the tree has uncommitted changes
3. Refresh remote-tracking data, then resolve the remote and local tips
4. Stop quietly if they are equal
5. Hard-reset the tree to the remote tip
6. Run the system rebuild
7. Record the applied revision and notify the operator

Every failure ends the run with a single notification; nothing is retried.
A rebuild failure leaves the tree at the new revision: the sync is not
rolled back, so the host is "code updated, system not rebuilt" until the
next successful run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from nix_config_manager.config import RunConfig
from nix_config_manager.errors import (
    ComparatorError,
    PersistenceError,
    RebuildError,
    RepositoryError,
    StatusQueryError,
    SyncError,
)
from nix_config_manager.git import Repository
from nix_config_manager.logging import get_logger
from nix_config_manager.models import ComparatorStage, RunOutcome, RunResult
from nix_config_manager.notifier import Notifier
from nix_config_manager.rebuild import Rebuilder

log = get_logger("nix_config_manager.pipeline")


class ConfigStore(Protocol):
    """Persistence capability for the run configuration."""

    def save(self, config: RunConfig) -> None: ...


@dataclass(frozen=True)
class RevisionComparison:
    """Remote and local tips resolved for one run."""

    remote: str
    local: str

    @property
    def changed(self) -> bool:
        return revisions_differ(self.remote, self.local)


def revisions_differ(remote: str, local: str) -> bool:
    """Return True if the two commit ids denote different commits.

    Any divergence counts, including a local branch that is ahead of the
    remote or a remote whose history was rewritten.
    """
    return remote != local


def compare_revisions(repository: Repository, branch: str) -> RevisionComparison:
    """Refresh remote-tracking data and resolve both tips.

    The remote side is resolved first; if it fails the local side is never
    queried.

    Raises:
        ComparatorError: With ``stage`` naming the side that failed.
    """
    try:
        repository.refresh(branch)
        remote = repository.resolve_remote_tip(branch)
    except RepositoryError as exc:
        raise ComparatorError(ComparatorStage.REMOTE, str(exc)) from exc

    try:
        local = repository.resolve_local_tip()
    except RepositoryError as exc:
        raise ComparatorError(ComparatorStage.LOCAL, str(exc)) from exc

    log.info("revision_compared", remote=remote, local=local)
    return RevisionComparison(remote=remote, local=local)


def run_pipeline(
    config: RunConfig,
    *,
    repository: Repository,
    rebuilder: Rebuilder,
    notifier: Notifier,
    host: str,
    store: ConfigStore | None = None,
) -> RunResult:
    """Run one detection/apply pass against *config*.

    Never raises for pipeline-stage failures: each one is reported through
    *notifier* and reflected in the returned ``RunResult``.
    """
    start = time.monotonic()
    bound = log.bind(repo=config.repo_path, branch=config.branch, host=host)
    result = RunResult(
        outcome=RunOutcome.NO_CHANGE,
        repo_path=config.repo_path,
        branch=config.branch,
        host=host,
    )

    def finish(outcome: RunOutcome, error: str | None = None) -> RunResult:
        result.outcome = outcome
        result.error = error
        result.completed_at = datetime.now(UTC).isoformat()
        result.duration_seconds = round(time.monotonic() - start, 2)
        if outcome.notifies:
            result.notified = notifier.notify(result)
        log_method = bound.warning if outcome.is_failure else bound.info
        log_method("run_finished", **result.to_dict())
        return result

    # Step 1: repository validation
    if not repository.is_repository():
        bound.error("not_a_git_repo")
        return finish(RunOutcome.NOT_A_REPOSITORY, f"{config.repo_path} is not a Git repo")
    result.steps_completed.append("validate")

    # Step 2: cleanliness
    try:
        clean = repository.is_clean()
    except StatusQueryError as exc:
        return finish(RunOutcome.STATUS_CHECK_FAILED, str(exc))
    if not clean:
        bound.warning("uncommitted_changes_skipping_rebuild")
        return finish(RunOutcome.DIRTY_WORKING_TREE)
    result.steps_completed.append("status_check")

    # Step 3: revision comparison
    try:
        comparison = compare_revisions(repository, config.branch)
    except ComparatorError as exc:
        result.stage = exc.stage
        return finish(RunOutcome.COMPARATOR_FAILURE, exc.cause)
    result.remote_revision = comparison.remote
    result.local_revision = comparison.local
    result.steps_completed.append("compare")

    # Step 4: change gate
    if not comparison.changed:
        bound.info("no_changes_detected", revision=comparison.local)
        return finish(RunOutcome.NO_CHANGE)

    bound.info(
        "change_detected_pulling_and_rebuilding",
        remote=comparison.remote,
        local=comparison.local,
    )

    # Step 5: sync
    try:
        repository.force_sync(config.branch, comparison.remote)
    except SyncError as exc:
        return finish(RunOutcome.SYNC_FAILURE, str(exc))
    result.steps_completed.append("sync")

    # Step 6: rebuild (no rollback of the sync on failure)
    try:
        rebuilder.apply()
    except RebuildError as exc:
        return finish(RunOutcome.REBUILD_FAILURE, str(exc))
    result.steps_completed.append("rebuild")
    result.applied_revision = comparison.remote
    bound.info("rebuild_successful", revision=comparison.remote)

    # Step 7: persist the applied revision
    if store is not None:
        try:
            store.save(config.with_applied_revision(comparison.remote))
        except PersistenceError as exc:
            bound.warning("persist_revision_failed", error=str(exc))
        else:
            result.persisted = True
            result.steps_completed.append("persist")

    return finish(RunOutcome.SUCCESS)
