"""
Directory structure management for elankit.

Directory Structure (ELAN_HOME, default ~/.elan/ or %USERPROFILE%\\.elan\\):
    - toolchains/      : Installed toolchains, one directory per descriptor
        - <name>.lock  : Install lock next to the toolchain it protects
        - <name>.tmp   : Staging directory used during extraction
    - tmp/             : Downloaded archives
    - bin/             : Proxy binaries (prepended to PATH of child commands)
    - settings.toml    : Default toolchain and directory overrides
    - known-projects   : Project roots seen with a lean-toolchain file
    - config.yaml      : Optional tool configuration
"""

import os
from pathlib import Path

from elankit.core.exceptions import ElanError


class DirectoryError(ElanError):
    """Base exception for directory-related errors."""

    pass


class DirectoryCreationError(DirectoryError):
    """Raised when directory creation fails."""

    pass


def get_elan_home() -> Path:
    """
    Get the elan home directory.

    ELAN_HOME wins when set and non-empty; otherwise the platform default
    below the user's home directory is used.

    Returns:
        Path: Absolute path of the elan home directory.

    Example:
        >>> get_elan_home()
        PosixPath('/home/user/.elan')
    """
    env_home = os.environ.get("ELAN_HOME")
    if env_home:
        return Path(env_home).absolute()

    if os.name == "nt":  # Windows
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise DirectoryError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine elan home directory."
            )
        return Path(user_profile) / ".elan"
    else:  # Linux/macOS
        return Path.home() / ".elan"


def ensure_home_structure(home: Path) -> Path:
    """
    Create the elan home directory and its fixed subdirectories.

    Args:
        home: elan home directory

    Returns:
        Path: The home directory.

    Raises:
        DirectoryCreationError: If a directory cannot be created.
    """
    for directory in (home, home / "toolchains", home / "tmp"):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DirectoryCreationError(
                f"Failed to create directory {directory}: {e}"
            ) from e

    return home

