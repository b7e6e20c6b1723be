"""
Dump-state command implementation.

Prints installed toolchains, the default toolchain and the active override
as a JSON document for editor integrations.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from elankit.cli.parser import __version__
from elankit.core.config import Cfg
from elankit.core.exceptions import ElanError
from elankit.toolchain.descriptor import UnresolvedToolchain
from elankit.toolchain.overrides import find_override
from elankit.toolchain.resolver import (
    list_toolchains,
    lookup_unresolved_toolchain,
    resolve_toolchain,
)
from elankit.toolchain.toolchain import Toolchain


def _result(fn) -> Dict[str, str]:
    try:
        return {"Ok": str(fn())}
    except ElanError as e:
        return {"Err": str(e)}


def toolchain_resolution(
    cfg: Cfg, unresolved: UnresolvedToolchain, no_net: bool
) -> Dict[str, Any]:
    """
    Resolve a toolchain live and from the local cache.

    'live' is an error on network failure even where commands would fall
    back; 'cached' is the newest matching local toolchain, if any.
    """
    live = _result(lambda: resolve_toolchain(cfg, unresolved, allow_network=not no_net))
    try:
        cached: Optional[str] = str(
            resolve_toolchain(cfg, unresolved, allow_network=False, allow_cache_fallback=True)
        )
    except ElanError:
        cached = None
    return {"live": live, "cached": cached}


def build_state(cfg: Cfg, cwd: Path, no_net: bool) -> Dict[str, Any]:
    """Assemble the state document for directory cwd."""
    active_override = find_override(cfg, cwd)

    default_name = cfg.settings_file.load().default_toolchain
    default = lookup_unresolved_toolchain(cfg, default_name) if default_name else None

    active = active_override[0] if active_override else default

    return {
        "elan_version": {"current": __version__},
        "toolchains": {
            "installed": [
                {"resolved_name": str(desc), "path": str(Toolchain(cfg, desc).path)}
                for desc in list_toolchains(cfg)
            ],
            "default": None
            if default is None
            else {
                "unresolved": str(default),
                "resolved": toolchain_resolution(cfg, default, no_net),
            },
            "active_override": None
            if active_override is None
            else {
                "unresolved": str(active_override[0]),
                "reason": active_override[1].to_dict(),
            },
            "resolved_active": None
            if active is None
            else toolchain_resolution(cfg, active, no_net),
        },
    }


def run(args, cfg: Cfg) -> int:
    state = build_state(cfg, Path.cwd(), args.no_net)
    print(json.dumps(state, indent=2))
    return 0
