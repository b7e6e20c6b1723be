"""
Project roots and their 'lean-toolchain' pin files.

Every directory found to contain a 'lean-toolchain' file is recorded in
'<home>/known-projects', one path per line. The garbage collector reads the
list back to find toolchains that projects still use. Entries are only
appended; duplicates are suppressed.
"""

import logging
from pathlib import Path
from typing import List, Optional

from elankit.core.config import Cfg
from elankit.core.exceptions import InvalidConfigFileError, InvalidToolchainNameError
from elankit.core.filesystem import atomic_write
from elankit.core.notifications import Event
from elankit.toolchain.descriptor import UnresolvedToolchain
from elankit.toolchain.resolver import lookup_unresolved_toolchain

logger = logging.getLogger(__name__)

TOOLCHAIN_FILE_NAME = "lean-toolchain"


def get_roots(cfg: Cfg) -> List[str]:
    """Return the recorded project roots."""
    path = cfg.known_projects_file
    if not path.exists():
        return []
    return [line for line in path.read_text(encoding="utf-8").split("\n") if line]


def add_root(cfg: Cfg, root: Path) -> bool:
    """
    Record a project root.

    Returns:
        True if root was not recorded before
    """
    roots = get_roots(cfg)
    root_str = str(root)
    if root_str in roots:
        return False

    roots.append(root_str)
    atomic_write(cfg.known_projects_file, "\n".join(roots))
    cfg.notify(Event.ADDED_PROJECT_ROOT, path=root_str)
    return True


def read_toolchain_file(cfg: Cfg, path: Path) -> Optional[UnresolvedToolchain]:
    """
    Parse the first line of a 'lean-toolchain' file.

    Args:
        cfg: Session context
        path: Path of the pin file

    Returns:
        The pinned toolchain, or None if the file is missing or empty

    Raises:
        InvalidConfigFileError: If the file cannot be read or names an
            invalid toolchain
    """
    if not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InvalidConfigFileError(path, f"cannot read file: {e}") from e

    lines = content.splitlines()
    name = lines[0].strip() if lines else ""
    if not name:
        logger.debug(f"Ignoring empty toolchain file {path}")
        return None

    try:
        return lookup_unresolved_toolchain(cfg, name)
    except InvalidToolchainNameError as e:
        raise InvalidConfigFileError(path, str(e)) from e


__all__ = [
    "TOOLCHAIN_FILE_NAME",
    "get_roots",
    "add_root",
    "read_toolchain_file",
]
