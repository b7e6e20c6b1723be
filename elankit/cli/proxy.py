"""
Proxy mode: run 'lean', 'lake' and the other toolchain binaries through
whichever toolchain governs the current directory.

Console scripts named after the proxied binaries all point at main(); the
binary to run is taken from the name the script was invoked under. A first
argument of the form '+<toolchain>' selects a toolchain explicitly:

    lake build                  # toolchain from overrides or the default
    lean +leanprover/lean4:v4.9.0 --version
"""

import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from elankit.cli.parser import report_error
from elankit.core.config import RECURSION_COUNT_MAX, Cfg
from elankit.core.directory import ensure_home_structure
from elankit.core.exceptions import (
    ElanError,
    InfiniteRecursionError,
    ToolchainNotInstalledError,
)
from elankit.toolchain.overrides import OverrideDatabase, toolchain_for_dir
from elankit.toolchain.resolver import lookup_toolchain
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)

# Binaries a toolchain ships that get a proxy script
PROXIED_BINARIES = ("lean", "lake", "leanc", "leanmake", "leanpkg", "leanchecker")

NO_OVERRIDE_NOTICE_ENV = "ELAN_NO_OVERRIDE_NOTICE"


def split_toolchain_arg(args: Sequence[str]) -> Tuple[Optional[str], List[str]]:
    """
    Split a leading '+<toolchain>' argument off the proxied arguments.

    Example:
        >>> split_toolchain_arg(["+stable", "--version"])
        ('stable', ['--version'])
        >>> split_toolchain_arg(["--version"])
        (None, ['--version'])
    """
    if args and args[0].startswith("+"):
        return args[0][1:], list(args[1:])
    return None, list(args)


def proxy_command(
    cfg: Cfg,
    binary: str,
    args: Sequence[str],
    cwd: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> Tuple[List[str], Dict[str, str]]:
    """
    Build the command a proxy runs for binary.

    Without a '+toolchain' argument the toolchain comes from the overrides
    of cwd (or the default) and is installed on demand. An explicit
    remote toolchain is installed if missing; a local one must exist.

    Raises:
        InfiniteRecursionError: If LEAN_RECURSION_COUNT exceeds its limit
        NoDefaultToolchainError: If nothing selects a toolchain for cwd
    """
    if cfg.recursion_count > RECURSION_COUNT_MAX:
        raise InfiniteRecursionError()

    environ = os.environ if environ is None else environ
    name, proxied_args = split_toolchain_arg(args)

    if name is None:
        toolchain, reason = toolchain_for_dir(cfg, cwd)
        if isinstance(reason, OverrideDatabase) and NO_OVERRIDE_NOTICE_ENV not in environ:
            logger.info(
                f"using toolchain '{toolchain.name}' from override set on '{reason.path}'"
            )
            logger.info(
                f"to remove: elankit override unset --path '{reason.path}'"
                f" | to suppress: {NO_OVERRIDE_NOTICE_ENV}=1"
            )
    else:
        toolchain = Toolchain(cfg, lookup_toolchain(cfg, name))
        if not toolchain.exists():
            if toolchain.is_local():
                raise ToolchainNotInstalledError(toolchain.name)
            toolchain.install_from_dist()

    return toolchain.create_command(binary, proxied_args, environ)


def run_proxy(binary: str, args: Sequence[str], cfg: Optional[Cfg] = None) -> int:
    """
    Run binary through the selected toolchain.

    Args:
        binary: Proxied binary name, e.g. 'lake'
        args: Arguments after the binary name
        cfg: Session context (built from the environment if None)

    Returns:
        Exit code of the child, 1 on elankit errors, 127 if the program is
        missing
    """
    logging.basicConfig(level=logging.INFO, format="%(message)s", stream=sys.stderr)

    owns_cfg = cfg is None
    try:
        if cfg is None:
            cfg = Cfg.from_env()
            ensure_home_structure(cfg.elan_home)
        argv, env = proxy_command(cfg, binary, args, Path.cwd())
        logger.debug(f"Proxying {binary} to {argv}")
        return subprocess.run(argv, env=env, check=False).returncode
    except FileNotFoundError:
        logger.error(f"error: command '{binary}' not found")
        return 127
    except KeyboardInterrupt:
        return 130
    except ElanError as e:
        report_error(e)
        return 1
    finally:
        if owns_cfg and cfg is not None:
            cfg.close()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of every proxy script.

    Args:
        argv: Full argument vector including the program name (sys.argv if None)
    """
    argv = sys.argv if argv is None else argv
    binary = Path(argv[0]).stem if argv and argv[0] else ""
    if not binary:
        logging.basicConfig(format="%(message)s", stream=sys.stderr)
        logger.error("error: couldn't determine self executable name")
        sys.exit(1)

    sys.exit(run_proxy(binary, argv[1:]))


__all__ = [
    "PROXIED_BINARIES",
    "split_toolchain_arg",
    "proxy_command",
    "run_proxy",
    "main",
]
