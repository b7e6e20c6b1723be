"""
Run command implementation.

Runs a command with the environment of a given toolchain.
"""

import logging
import subprocess

from elankit.core.config import Cfg
from elankit.core.exceptions import ToolchainNotInstalledError
from elankit.toolchain.resolver import lookup_toolchain
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def run(args, cfg: Cfg) -> int:
    """
    Run the run command.

    Returns:
        Exit code of the child process
    """
    toolchain = Toolchain(cfg, lookup_toolchain(cfg, args.toolchain))
    if not toolchain.exists():
        if not args.install or toolchain.is_local():
            raise ToolchainNotInstalledError(toolchain.name)
        toolchain.install_from_dist()

    argv, env = toolchain.create_command(args.run_command, args.run_args)
    logger.debug(f"Running {argv}")
    try:
        return subprocess.run(argv, env=env, check=False).returncode
    except FileNotFoundError:
        logger.error(f"error: command '{args.run_command}' not found")
        return 127
