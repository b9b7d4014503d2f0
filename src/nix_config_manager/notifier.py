"""Operator notifications.

Maps each run outcome to a short message and delivers it through a channel
(a Discord webhook in production). Delivery is best-effort: a failed send is
logged and never changes or masks the run's outcome.
"""

from __future__ import annotations

import socket
from typing import Protocol

import httpx

from nix_config_manager.constants import (
    DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
    MAX_DISCORD_MESSAGE_LENGTH,
    UNKNOWN_HOST,
)
from nix_config_manager.errors import NotificationError
from nix_config_manager.logging import get_logger
from nix_config_manager.models import RunOutcome, RunResult

log = get_logger("nix_config_manager.notifier")


class Channel(Protocol):
    """Notification capability. ``send`` raises ``NotificationError`` on failure."""

    def send(self, message: str) -> None: ...


def current_host_name(override: str | None = None) -> str:
    """Return the host name to report, falling back to ``unknown-host``."""
    if override:
        return override
    try:
        name = socket.gethostname()
    except OSError as exc:
        log.warning("hostname_lookup_failed", error=str(exc))
        return UNKNOWN_HOST
    return name or UNKNOWN_HOST


def truncate_message(message: str, limit: int = MAX_DISCORD_MESSAGE_LENGTH) -> str:
    """Clip *message* to *limit* characters, marking the cut with an ellipsis."""
    if limit <= 0:
        raise ValueError("limit must be > 0")
    if len(message) <= limit:
        return message
    return message[: limit - 1] + "…"


def format_message(result: RunResult) -> str | None:
    """Build the operator message for *result*, or None if nothing is reported."""
    host = result.host
    outcome = result.outcome

    if outcome is RunOutcome.NOT_A_REPOSITORY:
        return f"Repo path `{result.repo_path}` on `{host}` is not a Git repo"
    if outcome is RunOutcome.STATUS_CHECK_FAILED:
        return f"Failed to check Git status on `{host}`: {result.error}"
    if outcome is RunOutcome.DIRTY_WORKING_TREE:
        return (
            f"Repo at `{result.repo_path}` on `{host}` has uncommitted changes. "
            "Skipping rebuild."
        )
    if outcome is RunOutcome.COMPARATOR_FAILURE:
        side = result.stage.value if result.stage else "revision"
        return f"Failed to get {side} hash on `{host}`: {result.error}"
    if outcome is RunOutcome.SYNC_FAILURE:
        return f"Failed to pull repo on `{host}`: {result.error}"
    if outcome is RunOutcome.REBUILD_FAILURE:
        return f"NixOS rebuild failed on `{host}`: {result.error}"
    if outcome is RunOutcome.SUCCESS:
        revision = (result.applied_revision or "")[:12]
        suffix = f" (now at `{revision}`)" if revision else ""
        return f"NixOS rebuild successful on `{host}`.{suffix}"
    return None


class DiscordWebhook:
    """Posts messages to a Discord webhook URL."""

    def __init__(self, url: str, timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS) -> None:
        self._url = url
        self._timeout = timeout

    def send(self, message: str) -> None:
        try:
            with httpx.Client(timeout=self._timeout) as client:
                resp = client.post(self._url, json={"content": truncate_message(message)})
        except httpx.HTTPError as exc:
            raise NotificationError(f"failed to send Discord webhook: {exc}") from exc

        if not resp.is_success:
            raise NotificationError(
                f"Discord webhook rejected message: HTTP {resp.status_code} {resp.text[:200]}"
            )


class LogChannel:
    """Fallback channel used when no webhook is configured."""

    def send(self, message: str) -> None:
        log.info("notification_not_delivered", reason="no webhook configured", message=message)


class Notifier:
    """Formats run results and delivers them, never raising."""

    def __init__(self, channel: Channel) -> None:
        self._channel = channel

    def notify(self, result: RunResult) -> bool:
        """Report *result* to the operator.

        Returns True if a message was handed to the channel successfully.
        """
        message = format_message(result)
        if message is None:
            return False

        try:
            self._channel.send(message)
        except NotificationError as exc:
            log.warning("notification_failed", outcome=result.outcome.value, error=str(exc))
            return False
        except Exception as exc:
            log.exception(
                "notification_unexpected_error", outcome=result.outcome.value, error=str(exc)
            )
            return False

        log.debug("notification_sent", outcome=result.outcome.value)
        return True


def build_channel(webhook_url: str, timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS) -> Channel:
    """Return a webhook channel for *webhook_url*, or a log-only one if it is empty."""
    if webhook_url.strip():
        return DiscordWebhook(webhook_url.strip(), timeout=timeout)
    return LogChannel()
