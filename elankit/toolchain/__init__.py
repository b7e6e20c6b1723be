"""
Toolchain management for elankit.

This package provides:
- Toolchain descriptors and name parsing
- Channel resolution against the release host
- Directory override lookup
- Installation (manifestation) and removal
- Garbage collection analysis
"""

from elankit.toolchain.descriptor import (
    LocalToolchain,
    RemoteToolchain,
    UnresolvedToolchain,
    parse_toolchain_name,
    to_dir_name,
    from_dir_name,
    toolchain_sort,
)
from elankit.toolchain.gc import analyze_toolchains
from elankit.toolchain.manifestation import InstallPrefix, Manifestation, uninstall
from elankit.toolchain.overrides import (
    OverrideReason,
    find_override,
    find_override_toolchain_or_default,
    toolchain_for_dir,
)
from elankit.toolchain.resolver import (
    lookup_unresolved_toolchain,
    resolve_toolchain,
    lookup_toolchain,
    resolve_default,
    list_toolchains,
)
from elankit.toolchain.toolchain import Toolchain

__all__ = [
    "LocalToolchain",
    "RemoteToolchain",
    "UnresolvedToolchain",
    "parse_toolchain_name",
    "to_dir_name",
    "from_dir_name",
    "toolchain_sort",
    "analyze_toolchains",
    "InstallPrefix",
    "Manifestation",
    "uninstall",
    "OverrideReason",
    "find_override",
    "find_override_toolchain_or_default",
    "toolchain_for_dir",
    "lookup_unresolved_toolchain",
    "resolve_toolchain",
    "lookup_toolchain",
    "resolve_default",
    "list_toolchains",
    "Toolchain",
]
