"""Unit tests for the constants module."""

from nix_config_manager.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_GIT_REMOTE,
    DEFAULT_REBUILD_COMMAND,
    EXIT_BUSY,
    EXIT_FATAL,
    EXIT_OK,
    MAX_DISCORD_MESSAGE_LENGTH,
    UNKNOWN_HOST,
)


class TestConstants:
    """Tests for centralized application constants."""

    def test_max_discord_message_length_value(self) -> None:
        """MAX_DISCORD_MESSAGE_LENGTH should be 2000."""
        assert MAX_DISCORD_MESSAGE_LENGTH == 2000

    def test_default_config_path(self) -> None:
        assert DEFAULT_CONFIG_PATH == "/etc/nix-config-manager.json"

    def test_default_remote_and_rebuild(self) -> None:
        assert DEFAULT_GIT_REMOTE == "origin"
        assert DEFAULT_REBUILD_COMMAND == ("nixos-rebuild", "switch")

    def test_unknown_host_fallback(self) -> None:
        assert UNKNOWN_HOST == "unknown-host"

    def test_exit_codes_are_distinct(self) -> None:
        """EXIT_OK, EXIT_FATAL and EXIT_BUSY should not collide."""
        assert len({EXIT_OK, EXIT_FATAL, EXIT_BUSY}) == 3
        assert EXIT_OK == 0
