"""Centralized constants for nix-config-manager."""

# Configuration
DEFAULT_CONFIG_PATH = "/etc/nix-config-manager.json"
RUN_CONFIG_FILE_MODE = 0o600
ENV_PREFIX = "NIX_CONFIG_MANAGER_"

# Git
DEFAULT_GIT_REMOTE = "origin"
DEFAULT_GIT_TIMEOUT_SECONDS = 120.0
GIT_METADATA_DIR = ".git"

# Rebuild
DEFAULT_REBUILD_COMMAND = ("nixos-rebuild", "switch")

# Notifications
MAX_DISCORD_MESSAGE_LENGTH = 2000
DEFAULT_WEBHOOK_TIMEOUT_SECONDS = 10.0
UNKNOWN_HOST = "unknown-host"

# Locking
DEFAULT_LOCK_DIR = "/run/nix-config-manager"
LOCK_DIR_MODE = 0o700

# Subprocess output kept in error messages
MAX_STDERR_CHARS = 500

# Exit codes
EXIT_OK = 0
EXIT_FATAL = 1
EXIT_BUSY = 75
