"""Configuration management for nix-config-manager.

Two layers:

* ``Settings``: agent behaviour (remote name, timeouts, rebuild command,
  logging), read from ``NIX_CONFIG_MANAGER_*`` environment variables.
* ``RunConfig``: the per-host JSON file naming the repository, branch and
  webhook. It is read once per run and written back once after a successful
  rebuild with the newly applied revision.
"""

from __future__ import annotations

import json
import os
import stat
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nix_config_manager.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_GIT_REMOTE,
    DEFAULT_GIT_TIMEOUT_SECONDS,
    DEFAULT_REBUILD_COMMAND,
    DEFAULT_WEBHOOK_TIMEOUT_SECONDS,
    ENV_PREFIX,
    RUN_CONFIG_FILE_MODE,
)
from nix_config_manager.errors import ConfigurationError, PersistenceError


class Settings(BaseSettings):
    """Agent settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Run configuration file
    config_path: Path = Field(
        default=Path(DEFAULT_CONFIG_PATH), description="Path of the JSON run configuration"
    )

    # Git
    git_remote: str = Field(default=DEFAULT_GIT_REMOTE, description="Remote to track")
    git_timeout: float | None = Field(
        default=DEFAULT_GIT_TIMEOUT_SECONDS, description="Deadline for each git call (seconds)"
    )

    # Rebuild
    rebuild_command: list[str] = Field(
        default_factory=lambda: list(DEFAULT_REBUILD_COMMAND),
        description="Command that rebuilds and activates the system",
    )
    rebuild_timeout: float | None = Field(
        default=None, description="Deadline for the rebuild (seconds)"
    )

    # Notifications
    webhook_timeout: float = Field(
        default=DEFAULT_WEBHOOK_TIMEOUT_SECONDS, description="Webhook request timeout (seconds)"
    )
    host_name: str | None = Field(
        default=None, description="Host name used in notifications (defaults to the system's)"
    )

    # Locking
    lock_file: Path | None = Field(
        default=None, description="Run lock file (derived from the repository path if unset)"
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("rebuild_command")
    @classmethod
    def _rebuild_command_not_empty(cls, value: list[str]) -> list[str]:
        if not value or not value[0].strip():
            raise ValueError("rebuild_command must name an executable")
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


class RunConfig(BaseModel):
    """Per-host run configuration, immutable for the duration of a run.

    Keys the model does not declare are kept so that writing the file back
    only changes ``last_commit_hash``.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    repo_path: str
    branch: str
    discord_webhook: str = ""
    last_commit_hash: str = ""
    repo_url: str = ""

    @field_validator("repo_path", "branch")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    def with_applied_revision(self, revision: str) -> RunConfig:
        """Return a copy recording *revision* as the last applied commit."""
        return self.model_copy(update={"last_commit_hash": revision})


class RunConfigStore:
    """Loads and saves ``RunConfig`` as a JSON file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> RunConfig:
        """Read and validate the configuration file.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"failed to open {self._path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"failed to decode {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"failed to decode {self._path}: expected a JSON object")

        try:
            return RunConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigurationError(f"invalid configuration in {self._path}: {exc}") from exc

    def save(self, config: RunConfig) -> None:
        """Atomically write *config* back to the configuration file.

        The replacement keeps the permission bits of the existing file, or
        ``RUN_CONFIG_FILE_MODE`` for a new one, since it holds the webhook URL.

        Raises:
            PersistenceError: If the file could not be written.
        """
        payload = json.dumps(config.model_dump(mode="json"), indent=2, sort_keys=True) + "\n"
        tmp_path = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            mode = self._file_mode()
            tmp_path.unlink(missing_ok=True)
            fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                os.fchmod(fh.fileno(), mode)
                fh.write(payload)
            tmp_path.replace(self._path)
        except OSError as exc:
            raise PersistenceError(f"failed to write {self._path}: {exc}") from exc

    def _file_mode(self) -> int:
        try:
            return stat.S_IMODE(self._path.stat().st_mode)
        except FileNotFoundError:
            return RUN_CONFIG_FILE_MODE
