"""Command-line entry point for nix-config-manager."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from contextlib import ExitStack

from pydantic import ValidationError

from nix_config_manager import __version__
from nix_config_manager.config import RunConfigStore, get_settings
from nix_config_manager.constants import EXIT_BUSY, EXIT_FATAL, EXIT_OK
from nix_config_manager.errors import ConfigurationError, RunInProgressError
from nix_config_manager.git import GitRepository
from nix_config_manager.lock import default_lock_path, run_lock
from nix_config_manager.logging import get_logger, setup_logging
from nix_config_manager.models import RunOutcome, RunResult
from nix_config_manager.notifier import Notifier, build_channel, current_host_name
from nix_config_manager.pipeline import run_pipeline
from nix_config_manager.rebuild import SystemRebuilder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nix-config-manager",
        description="Pull the tracked branch and rebuild NixOS when it changes",
    )
    parser.add_argument("--config", help="Run configuration file (default: from settings)")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument(
        "--no-lock", action="store_true", help="Do not take the per-repository run lock"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def exit_code_for(result: RunResult) -> int:
    """Only an invalid repository path is a fatal process error."""
    if result.outcome is RunOutcome.NOT_A_REPOSITORY:
        return EXIT_FATAL
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    """Run a single update pass and return the process exit code."""
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ValidationError as exc:
        # Logging is not configured yet; structlog defaults apply.
        get_logger("nix_config_manager.cli").error(
            "config_load_failed", source="environment", error=str(exc)
        )
        return EXIT_FATAL
    setup_logging(args.log_level)
    log = get_logger("nix_config_manager.cli")

    store = RunConfigStore(args.config or settings.config_path)
    try:
        config = store.load()
    except ConfigurationError as exc:
        log.error("config_load_failed", path=str(store.path), error=str(exc))
        return EXIT_FATAL

    host = current_host_name(settings.host_name)
    repository = GitRepository(
        config.repo_path,
        remote=settings.git_remote,
        timeout=settings.git_timeout,
    )
    rebuilder = SystemRebuilder(
        settings.rebuild_command,
        cwd=config.repo_path,
        timeout=settings.rebuild_timeout,
    )
    notifier = Notifier(build_channel(config.discord_webhook, timeout=settings.webhook_timeout))

    with ExitStack() as stack:
        if not args.no_lock:
            lock_path = settings.lock_file or default_lock_path(config.repo_path)
            try:
                stack.enter_context(run_lock(lock_path))
            except RunInProgressError as exc:
                log.warning("run_already_in_progress", error=str(exc))
                return EXIT_BUSY
            except OSError as exc:
                log.error("run_lock_failed", path=str(lock_path), error=str(exc))
                return EXIT_FATAL

        result = run_pipeline(
            config,
            repository=repository,
            rebuilder=rebuilder,
            notifier=notifier,
            host=host,
            store=store,
        )
    return exit_code_for(result)
