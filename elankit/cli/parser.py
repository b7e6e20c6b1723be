"""
elankit CLI argument parser.

This module implements the command-line interface for elankit using argparse.
"""

import argparse
import importlib
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional

from elankit.core.config import Cfg
from elankit.core.directory import ensure_home_structure
from elankit.core.exceptions import ElanError

try:
    __version__ = version("elankit")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


def report_error(error: BaseException) -> None:
    """Log an error followed by the chain of its causes."""
    logger.error(f"error: {error}")
    cause = error.__cause__
    while cause is not None:
        logger.error(f"caused by: {cause}")
        cause = cause.__cause__


class CLI:
    """elankit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="elankit",
            description="elankit - Lean toolchain manager",
            epilog='Use "elankit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"elankit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--offline",
            action="store_true",
            help="Never access the network; fall back to installed toolchains",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_show_command(subparsers)
        self._add_default_command(subparsers)
        self._add_toolchain_command(subparsers)
        self._add_override_command(subparsers)
        self._add_run_command(subparsers)
        self._add_which_command(subparsers)
        self._add_gc_command(subparsers)
        self._add_dump_state_command(subparsers)

        return parser

    def _add_show_command(self, subparsers):
        """Add 'show' subcommand."""
        subparsers.add_parser(
            "show",
            help="Show the active and installed toolchains",
            description="Show the installed toolchains and the one active here",
        )

    def _add_default_command(self, subparsers):
        """Add 'default' subcommand."""
        parser = subparsers.add_parser(
            "default",
            help="Set the default toolchain",
            description="Show or set the default toolchain ('none' unsets it)",
        )
        parser.add_argument(
            "toolchain",
            nargs="?",
            metavar="TOOLCHAIN",
            help="Toolchain name, such as 'stable', 'nightly' or '4.9.0'",
        )

    def _add_toolchain_command(self, subparsers):
        """Add 'toolchain' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "toolchain",
            help="Modify or query the installed toolchains",
            description="Install, uninstall, link or list toolchains",
        )
        toolchain_subparsers = parser.add_subparsers(
            dest="toolchain_command", help="Toolchain commands", metavar="COMMAND"
        )

        toolchain_subparsers.add_parser("list", help="List installed toolchains")

        install_parser = toolchain_subparsers.add_parser(
            "install", help="Install given toolchains"
        )
        install_parser.add_argument("toolchains", nargs="+", metavar="TOOLCHAIN")

        uninstall_parser = toolchain_subparsers.add_parser(
            "uninstall", help="Uninstall given toolchains"
        )
        uninstall_parser.add_argument("toolchains", nargs="+", metavar="TOOLCHAIN")

        link_parser = toolchain_subparsers.add_parser(
            "link",
            help="Create a custom toolchain by symlinking to a directory",
        )
        link_parser.add_argument("toolchain", metavar="TOOLCHAIN")
        link_parser.add_argument("path", metavar="PATH")

    def _add_override_command(self, subparsers):
        """Add 'override' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "override",
            help="Modify directory toolchain overrides",
            description="List, set or unset directory toolchain overrides",
        )
        override_subparsers = parser.add_subparsers(
            dest="override_command", help="Override commands", metavar="COMMAND"
        )

        override_subparsers.add_parser("list", help="List directory toolchain overrides")

        set_parser = override_subparsers.add_parser(
            "set", help="Set the override toolchain for a directory"
        )
        set_parser.add_argument("toolchain", metavar="TOOLCHAIN")
        set_parser.add_argument(
            "--path", metavar="PATH", help="Directory to override (default: current)"
        )

        unset_parser = override_subparsers.add_parser(
            "unset", help="Remove the override toolchain for a directory"
        )
        unset_parser.add_argument(
            "--path", metavar="PATH", help="Directory to unset (default: current)"
        )
        unset_parser.add_argument(
            "--nonexistent",
            action="store_true",
            help="Remove override toolchains for all nonexistent directories",
        )

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a command with an environment configured for a toolchain",
        )
        parser.add_argument(
            "--install",
            action="store_true",
            help="Install the requested toolchain if needed",
        )
        parser.add_argument("toolchain", metavar="TOOLCHAIN")
        parser.add_argument("run_command", metavar="COMMAND")
        parser.add_argument("run_args", nargs=argparse.REMAINDER, metavar="ARGS")

    def _add_which_command(self, subparsers):
        """Add 'which' subcommand."""
        parser = subparsers.add_parser(
            "which", help="Display which binary will be run for a given command"
        )
        parser.add_argument("binary", metavar="COMMAND")

    def _add_gc_command(self, subparsers):
        """Add 'gc' subcommand."""
        parser = subparsers.add_parser(
            "gc",
            help="Garbage-collect toolchains not used by any known project",
        )
        parser.add_argument(
            "--delete",
            action="store_true",
            help="Delete the unused toolchains instead of listing them",
        )

    def _add_dump_state_command(self, subparsers):
        """Add 'dump-state' subcommand."""
        parser = subparsers.add_parser(
            "dump-state", help="Print the toolchain state as JSON"
        )
        parser.add_argument(
            "--no-net",
            action="store_true",
            help="Make network operations for resolving channels fail immediately",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None, cfg: Optional[Cfg] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)
            cfg: Session context (built from the environment if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        owns_cfg = cfg is None
        try:
            if cfg is None:
                cfg = Cfg.from_env()
                ensure_home_structure(cfg.elan_home)
            if parsed_args.offline:
                cfg.tool_config.offline = True
            return self._dispatch_command(parsed_args, cfg)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except ElanError as e:
            report_error(e)
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1
        finally:
            if owns_cfg and cfg is not None:
                cfg.close()

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stderr,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args, cfg: Cfg) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field
            cfg: Session context

        Returns:
            Exit code from command handler
        """
        command_map = {
            "show": "elankit.cli.commands.show",
            "default": "elankit.cli.commands.default",
            "toolchain": "elankit.cli.commands.toolchain",
            "override": "elankit.cli.commands.override",
            "run": "elankit.cli.commands.run",
            "which": "elankit.cli.commands.which",
            "gc": "elankit.cli.commands.gc",
            "dump-state": "elankit.cli.commands.dump_state",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args, cfg)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    cli = CLI()
    sys.exit(cli.run(args))


if __name__ == "__main__":
    main()
