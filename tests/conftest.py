"""Shared fixtures and in-memory capability fakes."""

from __future__ import annotations

import pytest
import structlog

from nix_config_manager.config import RunConfig, get_settings
from nix_config_manager.errors import NotificationError, PersistenceError


class FakeRepository:
    """In-memory VCS capability that records every call."""

    def __init__(
        self,
        *,
        remote: str = "aaa111",
        local: str = "aaa111",
        is_repository: bool = True,
        clean: bool = True,
        errors: dict[str, Exception] | None = None,
    ) -> None:
        self.remote = remote
        self.local = local
        self._is_repository = is_repository
        self.clean = clean
        self.errors = errors or {}
        self.calls: list[str] = []
        self.synced_to: str | None = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]

    def is_repository(self) -> bool:
        self.calls.append("is_repository")
        return self._is_repository

    def is_clean(self) -> bool:
        self._record("is_clean")
        return self.clean

    def refresh(self, branch: str) -> None:
        self._record("refresh")

    def resolve_remote_tip(self, branch: str) -> str:
        self._record("resolve_remote_tip")
        return self.remote

    def resolve_local_tip(self) -> str:
        self._record("resolve_local_tip")
        return self.local

    def force_sync(self, branch: str, revision: str | None = None) -> None:
        self._record("force_sync")
        self.synced_to = revision
        self.local = revision or self.remote


class FakeRebuilder:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    def apply(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class RecordingChannel:
    """Notification channel that keeps every message it was asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[str] = []

    def send(self, message: str) -> None:
        self.messages.append(message)
        if self.fail:
            raise NotificationError("webhook unreachable")


class MemoryStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: list[RunConfig] = []

    def save(self, config: RunConfig) -> None:
        if self.fail:
            raise PersistenceError("read-only file system")
        self.saved.append(config)


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture()
def run_config() -> RunConfig:
    return RunConfig(
        repo_path="/etc/nixos",
        branch="main",
        discord_webhook="https://discord.example.com/api/webhooks/1/abc",
        repo_url="git@example.com:infra/nixos.git",
    )


@pytest.fixture()
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture()
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture()
def rebuilder() -> FakeRebuilder:
    return FakeRebuilder()
