"""
Default command implementation.

Shows or sets the default toolchain.
"""

import logging

from elankit.core.config import Cfg
from elankit.core.exceptions import ToolchainNotInstalledError
from elankit.core.notifications import Event
from elankit.toolchain.resolver import lookup_unresolved_toolchain, resolve_toolchain
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def run(args, cfg: Cfg) -> int:
    """
    Run the default command.

    Without a name, prints the configured default. 'none' unsets it. Any
    other name is validated and installed before it becomes the default;
    channel names are stored as typed so they keep tracking the channel.

    Returns:
        Exit code (0 for success)
    """
    if args.toolchain is None:
        name = cfg.settings_file.load().default_toolchain
        print(name if name else "no default toolchain configured")
        return 0

    if args.toolchain == "none":
        with cfg.settings_file.edit() as settings:
            settings.default_toolchain = None
        logger.info("default toolchain unset")
        return 0

    unresolved = lookup_unresolved_toolchain(cfg, args.toolchain)
    toolchain = Toolchain(cfg, resolve_toolchain(cfg, unresolved))
    if toolchain.is_local():
        if not toolchain.exists():
            raise ToolchainNotInstalledError(toolchain.name)
    else:
        toolchain.install_from_dist_if_not_installed()

    with cfg.settings_file.edit() as settings:
        settings.default_toolchain = args.toolchain
    cfg.notify(Event.SET_DEFAULT_TOOLCHAIN, toolchain=args.toolchain)
    return 0
