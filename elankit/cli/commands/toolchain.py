"""
Toolchain command implementation.

Lists, installs, uninstalls and links toolchains.
"""

import logging
from pathlib import Path

from elankit.core.config import Cfg
from elankit.core.exceptions import ElanError, InvalidToolchainNameError
from elankit.toolchain.descriptor import TOOLCHAIN_NAME_PATTERN, LocalToolchain
from elankit.toolchain.resolver import (
    list_toolchains,
    lookup_toolchain,
    lookup_unresolved_toolchain,
    resolve_default,
    resolve_toolchain,
)
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def run(args, cfg: Cfg) -> int:
    """
    Run the toolchain command.

    Args:
        args: Parsed command-line arguments with toolchain_command
        cfg: Session context

    Returns:
        Exit code (0 for success)
    """
    handlers = {
        "list": _list,
        "install": _install,
        "uninstall": _uninstall,
        "link": _link,
    }
    handler = handlers.get(getattr(args, "toolchain_command", None))
    if handler is None:
        logger.error("No toolchain sub-command specified (list, install, uninstall, link)")
        return 1
    return handler(args, cfg)


def _list(args, cfg: Cfg) -> int:
    installed = list_toolchains(cfg)
    if not installed:
        print("no installed toolchains")
        return 0

    try:
        default = resolve_default(cfg, allow_cache_fallback=True)
    except ElanError as e:
        logger.debug(f"Could not resolve default toolchain: {e}")
        default = None
    for desc in installed:
        print(f"{desc} (default)" if desc == default else str(desc))
    return 0


def _install(args, cfg: Cfg) -> int:
    for name in args.toolchains:
        toolchain = Toolchain(cfg, lookup_toolchain(cfg, name))
        toolchain.install_from_dist_if_not_installed()
    return 0


def _uninstall(args, cfg: Cfg) -> int:
    for name in args.toolchains:
        unresolved = lookup_unresolved_toolchain(cfg, name)
        desc = resolve_toolchain(cfg, unresolved, allow_cache_fallback=True)
        Toolchain(cfg, desc).remove()
    return 0


def _link(args, cfg: Cfg) -> int:
    name = args.toolchain
    match = TOOLCHAIN_NAME_PATTERN.match(name)
    if not match or match.group(1):
        raise InvalidToolchainNameError(name)

    Toolchain(cfg, LocalToolchain(name)).install_from_dir(Path(args.path), link=True)
    return 0
