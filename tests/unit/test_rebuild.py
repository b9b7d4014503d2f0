"""Tests for nix_config_manager.rebuild with subprocess mocked out."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from nix_config_manager.errors import RebuildError
from nix_config_manager.rebuild import SystemRebuilder


class TestSystemRebuilder:
    def test_default_command(self) -> None:
        assert SystemRebuilder().command == ["nixos-rebuild", "switch"]

    def test_empty_command_rejected(self) -> None:
        with pytest.raises(ValueError, match="must not be empty"):
            SystemRebuilder(command=[])

    def test_success(self) -> None:
        rebuilder = SystemRebuilder(cwd="/etc/nixos", timeout=900)
        with patch(
            "nix_config_manager.rebuild.subprocess.run", return_value=MagicMock(returncode=0)
        ) as run:
            rebuilder.apply()

        run.assert_called_once_with(
            ["nixos-rebuild", "switch"], cwd="/etc/nixos", timeout=900, check=False
        )

    def test_non_zero_exit(self) -> None:
        with patch(
            "nix_config_manager.rebuild.subprocess.run", return_value=MagicMock(returncode=1)
        ):
            with pytest.raises(RebuildError, match="nixos-rebuild switch exited with status 1"):
                SystemRebuilder().apply()

    def test_missing_binary(self) -> None:
        with patch(
            "nix_config_manager.rebuild.subprocess.run",
            side_effect=FileNotFoundError("nixos-rebuild"),
        ):
            with pytest.raises(RebuildError, match="could not be started"):
                SystemRebuilder().apply()

    def test_timeout(self) -> None:
        with patch(
            "nix_config_manager.rebuild.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="nixos-rebuild", timeout=60),
        ):
            with pytest.raises(RebuildError, match="timed out after 60s"):
                SystemRebuilder(timeout=60).apply()

    def test_custom_flake_command(self) -> None:
        command = ["nixos-rebuild", "switch", "--flake", "/etc/nixos#nixbox"]
        with patch(
            "nix_config_manager.rebuild.subprocess.run", return_value=MagicMock(returncode=0)
        ) as run:
            SystemRebuilder(command=command).apply()

        assert run.call_args.args[0] == command
