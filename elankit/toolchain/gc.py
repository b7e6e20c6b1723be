"""
Garbage collection analysis for installed toolchains.

A toolchain is in use when any of these refers to it:
- the 'lean-toolchain' file of a known project root
- the default toolchain
- ELAN_TOOLCHAIN
- an entry of the override database

Everything else that is installed from a release host is unused. Linked
toolchains are never reported as unused since they cannot be reinstalled.
The analysis never deletes anything.
"""

import logging
from pathlib import Path
from typing import List, Tuple

from elankit.core.config import Cfg
from elankit.core.exceptions import ElanError
from elankit.toolchain.descriptor import (
    LocalToolchain,
    ToolchainDesc,
    from_resolved_str,
)
from elankit.toolchain.projects import TOOLCHAIN_FILE_NAME, get_roots, read_toolchain_file
from elankit.toolchain.resolver import (
    list_toolchains,
    lookup_unresolved_toolchain,
    resolve_default,
    resolve_toolchain,
)
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)

UsedToolchain = Tuple[str, ToolchainDesc]


def _used_by_roots(cfg: Cfg) -> List[UsedToolchain]:
    used = []
    for root in get_roots(cfg):
        try:
            unresolved = read_toolchain_file(cfg, Path(root) / TOOLCHAIN_FILE_NAME)
            if unresolved is None:
                continue
            used.append((root, resolve_toolchain(cfg, unresolved)))
        except ElanError as e:
            logger.debug(f"Skipping project root {root}: {e}")
    return used


def analyze_toolchains(cfg: Cfg) -> Tuple[List[ToolchainDesc], List[UsedToolchain]]:
    """
    Classify installed toolchains into unused and used.

    Returns:
        (unused descriptors, used (label, descriptor) pairs)

    Example:
        >>> unused, used = analyze_toolchains(cfg)
        >>> for label, desc in used:
        ...     print(f"{desc} is used by {label}")
    """
    used = _used_by_roots(cfg)

    try:
        default = resolve_default(cfg, allow_cache_fallback=True)
    except ElanError as e:
        logger.debug(f"Could not resolve default toolchain: {e}")
        default = None
    if default is not None:
        used.append(("default toolchain", default))

    if cfg.env_override:
        try:
            unresolved = lookup_unresolved_toolchain(cfg, cfg.env_override)
            used.append(
                ("ELAN_TOOLCHAIN", resolve_toolchain(cfg, unresolved, allow_cache_fallback=True))
            )
        except ElanError as e:
            logger.debug(f"Could not resolve ELAN_TOOLCHAIN: {e}")

    for path, name in cfg.settings_file.load().overrides.items():
        used.append((f"{path} (override)", from_resolved_str(name)))

    used_names = {str(desc) for _, desc in used}
    unused = []
    for desc in list_toolchains(cfg):
        if isinstance(desc, LocalToolchain) or Toolchain(cfg, desc).is_custom():
            continue
        if str(desc) not in used_names:
            unused.append(desc)

    return unused, used


__all__ = [
    "analyze_toolchains",
]
