"""
Show command implementation.

Lists installed toolchains and the toolchain active in the current directory.
"""

import logging
from pathlib import Path

from elankit.core.config import Cfg
from elankit.core.exceptions import ElanError
from elankit.toolchain.overrides import find_override
from elankit.toolchain.resolver import list_toolchains, resolve_default, resolve_toolchain

logger = logging.getLogger(__name__)


def _print_heading(title: str) -> None:
    print(title)
    print("-" * len(title))


def run(args, cfg: Cfg) -> int:
    """
    Run the show command.

    Args:
        args: Parsed command-line arguments
        cfg: Session context

    Returns:
        Exit code (0 for success)
    """
    installed = list_toolchains(cfg)
    try:
        default = resolve_default(cfg, allow_cache_fallback=True)
    except ElanError as e:
        logger.warning(f"could not resolve default toolchain: {e}")
        default = None

    _print_heading("installed toolchains")
    if not installed:
        print("no installed toolchains")
    for desc in installed:
        marker = " (default)" if default is not None and desc == default else ""
        print(f"{desc}{marker}")
    print()

    _print_heading("active toolchain")
    override = find_override(cfg, Path.cwd())
    if override is None:
        if default is None:
            print("no active toolchain")
        else:
            print(f"{default} (default)")
        return 0

    unresolved, reason = override
    try:
        desc = resolve_toolchain(cfg, unresolved, allow_cache_fallback=True)
    except ElanError as e:
        logger.warning(f"could not resolve '{unresolved}': {e}")
        desc = unresolved
    print(f"{desc} ({reason})")
    return 0
