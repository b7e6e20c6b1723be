"""
Which command implementation.

Prints the binary that would run for a command in the current directory.
"""

from pathlib import Path

from elankit.core.config import Cfg
from elankit.core.exceptions import BinaryNotFoundError
from elankit.toolchain.overrides import toolchain_for_dir


def run(args, cfg: Cfg) -> int:
    toolchain, _ = toolchain_for_dir(cfg, Path.cwd())
    binary = toolchain.binary_file(args.binary)
    if not binary.is_file():
        raise BinaryNotFoundError(toolchain.name, args.binary)
    print(binary)
    return 0
