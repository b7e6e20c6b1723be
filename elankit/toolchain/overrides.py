"""
Which toolchain governs a directory.

Precedence, first match wins:

1. ELAN_TOOLCHAIN
2. Walking from the directory up to the filesystem root, per directory:
   a. an entry in the override database (settings.toml)
   b. a 'lean-toolchain' pin file (the directory becomes a project root)
   c. a 'leanpkg.toml' with package.lean_version
   d. the directory being an installed toolchain itself
3. The default toolchain (find_override_toolchain_or_default only)

A pin file in a nearer directory therefore beats an override database entry
for a farther ancestor.
"""

import logging
import tomllib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from elankit.core.config import Cfg
from elankit.core.exceptions import (
    ElanError,
    InvalidConfigFileError,
    NoDefaultToolchainError,
    OverrideToolchainNotInstalledError,
)
from elankit.core.filesystem import canonicalize_path
from elankit.toolchain.descriptor import (
    UnresolvedToolchain,
    from_dir_name,
    from_resolved_str,
)
from elankit.toolchain.projects import TOOLCHAIN_FILE_NAME, add_root, read_toolchain_file
from elankit.toolchain.resolver import (
    lookup_unresolved_toolchain,
    resolve_default,
    resolve_toolchain,
)
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST_FILE_NAME = "leanpkg.toml"


# ============================================================================
# Override Reasons
# ============================================================================


class OverrideReason(ABC):
    """Why a toolchain was selected for a directory."""

    kind = ""

    @abstractmethod
    def uninstalled_message(self) -> str:
        """Error text for when the selected toolchain is not installed."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind}


@dataclass(frozen=True)
class Environment(OverrideReason):
    kind = "Environment"

    def __str__(self) -> str:
        return "environment override by ELAN_TOOLCHAIN"

    def uninstalled_message(self) -> str:
        return "the ELAN_TOOLCHAIN environment variable specifies an uninstalled toolchain"


@dataclass(frozen=True)
class OverrideDatabase(OverrideReason):
    path: Path
    kind = "OverrideDB"

    def __str__(self) -> str:
        return f"directory override for '{self.path}'"

    def uninstalled_message(self) -> str:
        return f"the directory override for '{self.path}' specifies an uninstalled toolchain"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


@dataclass(frozen=True)
class ToolchainFile(OverrideReason):
    path: Path
    kind = "ToolchainFile"

    def __str__(self) -> str:
        return f"overridden by '{self.path}'"

    def uninstalled_message(self) -> str:
        return f"the toolchain file at '{self.path}' specifies an uninstalled toolchain"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


@dataclass(frozen=True)
class PackageManifestFile(OverrideReason):
    path: Path
    kind = "LeanpkgFile"

    def __str__(self) -> str:
        return f"overridden by '{self.path}'"

    def uninstalled_message(self) -> str:
        return f"the leanpkg.toml file at '{self.path}' specifies an uninstalled toolchain"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


@dataclass(frozen=True)
class InsideToolchainDirectory(OverrideReason):
    path: Path
    kind = "InToolchainDirectory"

    def __str__(self) -> str:
        return f"override because inside toolchain directory '{self.path}'"

    def uninstalled_message(self) -> str:
        return f"could not parse toolchain directory at '{self.path}'"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "path": str(self.path)}


# ============================================================================
# Lookup
# ============================================================================


def _read_package_manifest(cfg: Cfg, path: Path) -> Optional[UnresolvedToolchain]:
    if not path.is_file():
        return None

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise InvalidConfigFileError(path, str(e)) from e
    except OSError as e:
        raise InvalidConfigFileError(path, f"cannot read file: {e}") from e

    package = data.get("package")
    if package is None:
        return None
    if not isinstance(package, dict):
        raise InvalidConfigFileError(
            path, f"expected 'package' to be a table, found {type(package).__name__}"
        )

    lean_version = package.get("lean_version")
    if lean_version is None:
        return None
    if not isinstance(lean_version, str):
        raise InvalidConfigFileError(
            path,
            f"expected 'lean_version' to be a string, found {type(lean_version).__name__}",
        )

    return lookup_unresolved_toolchain(cfg, lean_version)


def find_override(
    cfg: Cfg, start_dir: Path
) -> Optional[Tuple[UnresolvedToolchain, OverrideReason]]:
    """
    Find the toolchain override governing start_dir.

    Nothing is resolved or installed here.

    Args:
        cfg: Session context
        start_dir: Directory to start the walk from

    Returns:
        (unresolved toolchain, reason), or None if nothing applies

    Raises:
        InvalidConfigFileError: For malformed pin files or package manifests
        InvalidToolchainNameError: For an invalid ELAN_TOOLCHAIN
    """
    if cfg.env_override:
        return lookup_unresolved_toolchain(cfg, cfg.env_override), Environment()

    settings = cfg.settings_file.load()
    toolchains_dir = canonicalize_path(cfg.toolchains_dir)
    directory = canonicalize_path(start_dir)

    while True:
        name = settings.dir_override(directory)
        if name:
            return (
                UnresolvedToolchain(from_resolved_str(name)),
                OverrideDatabase(directory),
            )

        toolchain_file = directory / TOOLCHAIN_FILE_NAME
        unresolved = read_toolchain_file(cfg, toolchain_file)
        if unresolved is not None:
            add_root(cfg, directory)
            return unresolved, ToolchainFile(toolchain_file)

        manifest = directory / PACKAGE_MANIFEST_FILE_NAME
        unresolved = _read_package_manifest(cfg, manifest)
        if unresolved is not None:
            return unresolved, PackageManifestFile(manifest)

        parent = directory.parent
        if parent == toolchains_dir:
            return (
                UnresolvedToolchain(from_dir_name(directory.name)),
                InsideToolchainDirectory(directory),
            )
        if parent == directory:
            return None
        directory = parent


def find_override_toolchain_or_default(
    cfg: Cfg, path: Path
) -> Optional[Tuple[Toolchain, Optional[OverrideReason]]]:
    """
    Resolve and, if needed, install the toolchain governing path.

    Overrides are installed on demand; the default toolchain is only
    resolved.

    Returns:
        (toolchain, reason), reason being None for the default toolchain;
        None if neither an override nor a default exists

    Raises:
        OverrideToolchainNotInstalledError: If an override's toolchain cannot
            be installed
    """
    override = find_override(cfg, path)
    if override is None:
        desc = resolve_default(cfg)
        if desc is None:
            return None
        return Toolchain(cfg, desc), None

    unresolved, reason = override
    desc = resolve_toolchain(cfg, unresolved, allow_cache_fallback=True)
    toolchain = Toolchain(cfg, desc)
    try:
        toolchain.install_from_dist_if_not_installed()
    except ElanError as e:
        raise OverrideToolchainNotInstalledError(
            toolchain.name, reason.uninstalled_message()
        ) from e
    return toolchain, reason


def toolchain_for_dir(cfg: Cfg, path: Path) -> Tuple[Toolchain, Optional[OverrideReason]]:
    """
    Like find_override_toolchain_or_default, but a missing default is an error.

    Raises:
        NoDefaultToolchainError: If no override applies and no default is set
    """
    result = find_override_toolchain_or_default(cfg, path)
    if result is None:
        raise NoDefaultToolchainError()
    return result


__all__ = [
    "OverrideReason",
    "Environment",
    "OverrideDatabase",
    "ToolchainFile",
    "PackageManifestFile",
    "InsideToolchainDirectory",
    "find_override",
    "find_override_toolchain_or_default",
    "toolchain_for_dir",
]
