"""
Override command implementation.

Lists, sets and unsets directory toolchain overrides.
"""

import logging
from pathlib import Path

from elankit.core.config import Cfg
from elankit.toolchain.resolver import lookup_toolchain
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def run(args, cfg: Cfg) -> int:
    """
    Run the override command.

    Args:
        args: Parsed command-line arguments with override_command
        cfg: Session context

    Returns:
        Exit code (0 for success)
    """
    handlers = {
        "list": _list,
        "set": _set,
        "unset": _unset,
    }
    handler = handlers.get(getattr(args, "override_command", None))
    if handler is None:
        logger.error("No override sub-command specified (list, set, unset)")
        return 1
    return handler(args, cfg)


def _list(args, cfg: Cfg) -> int:
    overrides = cfg.settings_file.load().overrides
    if not overrides:
        print("no overrides")
        return 0

    for path, toolchain in sorted(overrides.items()):
        suffix = "" if Path(path).is_dir() else " (not a directory)"
        print(f"{path:<40}\t{toolchain}{suffix}")
    return 0


def _set(args, cfg: Cfg) -> int:
    path = Path(args.path) if args.path else Path.cwd()
    toolchain = Toolchain(cfg, lookup_toolchain(cfg, args.toolchain))
    if not toolchain.is_local():
        toolchain.install_from_dist_if_not_installed()
    toolchain.make_override(path)
    return 0


def _unset(args, cfg: Cfg) -> int:
    with cfg.settings_file.edit() as settings:
        if args.nonexistent:
            paths = [p for p in settings.overrides if not Path(p).is_dir()]
            if not paths:
                logger.info("no nonexistent paths detected")
        else:
            paths = [settings.path_to_key(Path(args.path) if args.path else Path.cwd())]

        for path in paths:
            if settings.remove_override(path):
                logger.info(f"override toolchain for '{path}' removed")
            else:
                logger.info(f"no override toolchain for '{path}'")
    return 0
