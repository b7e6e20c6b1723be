"""
GC command implementation.

Reports, and with --delete removes, toolchains no known project uses.
"""

import logging

from elankit.core.config import Cfg
from elankit.toolchain.gc import analyze_toolchains
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def run(args, cfg: Cfg) -> int:
    """
    Run the gc command.

    Args:
        args: Parsed command-line arguments with delete flag
        cfg: Session context

    Returns:
        Exit code (0 for success)
    """
    unused, used = analyze_toolchains(cfg)

    for label, desc in used:
        logger.debug(f"{desc} is used by {label}")

    if not unused:
        print("No unused toolchains found.")
        return 0

    if args.delete:
        for desc in unused:
            Toolchain(cfg, desc).remove()
        return 0

    print("The following toolchains are not used by any known project:")
    for desc in unused:
        print(f"  {desc}")
    print("Run `elankit gc --delete` to remove them.")
    return 0
