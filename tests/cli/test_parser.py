"""
Tests for CLI argument parser.
"""

from unittest.mock import patch

import pytest

from elankit.cli.parser import CLI, main
from elankit.core.exceptions import NoDefaultToolchainError, RemoteFetchError


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_creation(self):
        """Test CLI can be created."""
        cli = CLI()
        assert cli.parser is not None

    def test_no_command_shows_help(self, capsys):
        """Test that running without command shows help."""
        result = CLI().run([])

        assert result == 1
        assert "usage:" in capsys.readouterr().out.lower()

    def test_version_flag(self, capsys):
        """Test --version flag."""
        with pytest.raises(SystemExit) as exc_info:
            CLI().run(["--version"])

        assert exc_info.value.code == 0
        assert "elankit" in capsys.readouterr().out

    def test_main_exits_with_code(self):
        """Test main() exits with the command's exit code."""
        with patch.object(CLI, "run", return_value=3):
            with pytest.raises(SystemExit) as exc_info:
                main(["show"])
        assert exc_info.value.code == 3


class TestCommandParsing:
    """Test subcommand argument parsing."""

    def test_default(self):
        args = CLI().parse_args(["default", "stable"])
        assert args.command == "default"
        assert args.toolchain == "stable"

    def test_default_without_name(self):
        assert CLI().parse_args(["default"]).toolchain is None

    def test_toolchain_install_many(self):
        args = CLI().parse_args(["toolchain", "install", "stable", "4.9.0"])
        assert args.toolchain_command == "install"
        assert args.toolchains == ["stable", "4.9.0"]

    def test_toolchain_link(self):
        args = CLI().parse_args(["toolchain", "link", "master", "/src/lean4/build"])
        assert args.toolchain == "master"
        assert args.path == "/src/lean4/build"

    def test_override_unset(self):
        args = CLI().parse_args(["override", "unset", "--nonexistent"])
        assert args.override_command == "unset"
        assert args.nonexistent is True
        assert args.path is None

    def test_run_keeps_command_arguments(self):
        """Test everything after the command name is passed through."""
        args = CLI().parse_args(["run", "--install", "stable", "lake", "build", "Main"])
        assert args.install is True
        assert args.toolchain == "stable"
        assert args.run_command == "lake"
        assert args.run_args == ["build", "Main"]

    def test_global_flags(self):
        args = CLI().parse_args(["--offline", "-v", "gc", "--delete"])
        assert args.offline is True
        assert args.verbose is True
        assert args.delete is True

    def test_dump_state(self):
        assert CLI().parse_args(["dump-state", "--no-net"]).no_net is True

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            CLI().parse_args(["frobnicate"])


class TestErrorHandling:
    """Test error reporting and exit codes."""

    def test_elan_error_reported(self, cfg, capsys):
        """Test ElanError is printed and mapped to exit code 1."""
        with patch(
            "elankit.cli.commands.which.toolchain_for_dir",
            side_effect=NoDefaultToolchainError(),
        ):
            result = CLI().run(["which", "lean"], cfg=cfg)

        assert result == 1
        assert "error: no default toolchain configured" in capsys.readouterr().err

    def test_cause_chain_reported(self, cfg, capsys):
        def fail(*args, **kwargs):
            try:
                raise RemoteFetchError("connection refused")
            except RemoteFetchError as e:
                raise NoDefaultToolchainError() from e

        with patch("elankit.cli.commands.which.toolchain_for_dir", side_effect=fail):
            result = CLI().run(["which", "lean"], cfg=cfg)

        assert result == 1
        assert "caused by: connection refused" in capsys.readouterr().err

    def test_keyboard_interrupt(self, cfg):
        with patch(
            "elankit.cli.commands.show.list_toolchains", side_effect=KeyboardInterrupt
        ):
            assert CLI().run(["show"], cfg=cfg) == 130

    def test_offline_flag_sets_config(self, cfg):
        CLI().run(["--offline", "default"], cfg=cfg)
        assert cfg.allow_network is False

    def test_cfg_built_from_environment(self, monkeypatch, tmp_path, capsys):
        """Test the CLI creates the elan home from ELAN_HOME."""
        monkeypatch.setenv("ELAN_HOME", str(tmp_path / "home"))

        assert CLI().run(["default"]) == 0

        assert (tmp_path / "home" / "toolchains").is_dir()
        assert "no default toolchain configured" in capsys.readouterr().out
