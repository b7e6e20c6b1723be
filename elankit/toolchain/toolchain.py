"""
A descriptor bound to its installation directory.

Toolchain is the handle commands work with: it knows where the toolchain
lives, whether it is installed, how to install or remove it, and how to run
one of its binaries.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from elankit.core.config import (
    ELAN_HOME_ENV,
    ELAN_TOOLCHAIN_ENV,
    RECURSION_COUNT_ENV,
    RECURSION_COUNT_MAX,
    Cfg,
)
from elankit.core.exceptions import (
    BinaryNotFoundError,
    ElanError,
    FilesystemError,
    ToolchainAlreadyInstalledError,
    ToolchainNotInstalledError,
)
from elankit.core.filesystem import recursive_copy, rename_dir, safe_rmtree, symlink_dir
from elankit.core.notifications import Event
from elankit.toolchain.descriptor import (
    LocalToolchain,
    RemoteToolchain,
    ToolchainDesc,
    to_dir_name,
)
from elankit.toolchain.manifestation import InstallPrefix, Manifestation, uninstall

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"
EXE_SUFFIX = ".exe" if IS_WINDOWS else ""


class Toolchain:
    """
    A toolchain that may or may not be installed.

    Args:
        cfg: Session context
        desc: Resolved descriptor

    Example:
        >>> tc = Toolchain(cfg, RemoteToolchain("leanprover/lean4", "v4.9.0"))
        >>> tc.path
        PosixPath('/home/user/.elan/toolchains/leanprover--lean4---v4.9.0')
        >>> tc.install_from_dist_if_not_installed()
    """

    def __init__(self, cfg: Cfg, desc: ToolchainDesc):
        self.cfg = cfg
        self.desc = desc
        self.path = cfg.toolchains_dir / to_dir_name(desc)

    @property
    def name(self) -> str:
        return str(self.desc)

    def exists(self) -> bool:
        # Linked toolchains may be dangling symlinks
        return self.path.is_dir() or self.path.is_symlink()

    def is_custom(self) -> bool:
        """True for toolchains installed with `toolchain link`."""
        return self.path.is_symlink()

    def is_local(self) -> bool:
        return isinstance(self.desc, LocalToolchain)

    def verify(self) -> None:
        if not self.path.is_dir():
            raise ToolchainNotInstalledError(self.name)

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def _begin_install(self) -> None:
        if self.exists():
            raise ToolchainAlreadyInstalledError(self.name)
        self.cfg.notify(Event.INSTALLING_TOOLCHAIN, toolchain=self.name)
        self.cfg.notify(Event.TOOLCHAIN_DIRECTORY, path=self.path)

    def install_from_dist(self) -> None:
        """
        Download and install this toolchain from its release host.

        Raises:
            ToolchainAlreadyInstalledError: If the directory already exists
            ElanError: For local toolchains, which have no release host
        """
        if not isinstance(self.desc, RemoteToolchain):
            raise ElanError(f"'{self.name}' is a local toolchain and cannot be downloaded")

        self._begin_install()
        Manifestation(self.cfg, InstallPrefix(self.path)).install(self.desc)
        self.cfg.notify(Event.INSTALLED_TOOLCHAIN, toolchain=self.name)

    def install_from_dist_if_not_installed(self) -> bool:
        """
        Install this toolchain unless it is already present.

        Returns:
            True if an installation took place
        """
        self.cfg.notify(Event.LOOKING_FOR_TOOLCHAIN, toolchain=self.name)
        if self.exists():
            self.cfg.notify(Event.USING_EXISTING_TOOLCHAIN, toolchain=self.name)
            return False
        self.install_from_dist()
        return True

    def install_from_dir(self, src: Path, link: bool) -> None:
        """
        Install a locally built toolchain by linking or copying it.

        Args:
            src: Toolchain directory containing bin/lean
            link: Symlink src instead of copying it

        Raises:
            FilesystemError: If src does not look like a toolchain
            ToolchainAlreadyInstalledError: If the directory already exists
        """
        src = Path(src)
        bin_dir = src / "bin"
        if not bin_dir.is_dir():
            raise FilesystemError(f"'{bin_dir}' is not a directory")
        lean = bin_dir / f"lean{EXE_SUFFIX}"
        if not lean.is_file():
            raise FilesystemError(f"'{lean}' is not a file")

        self._begin_install()
        if link:
            symlink_dir(src.absolute(), self.path)
        else:
            staging = InstallPrefix(self.path).staging_path
            if staging.exists():
                safe_rmtree(staging)
            try:
                recursive_copy(src, staging)
                rename_dir(staging, self.path)
            finally:
                if staging.exists():
                    safe_rmtree(staging)
        self.cfg.notify(Event.INSTALLED_TOOLCHAIN, toolchain=self.name)

    def remove(self) -> None:
        """Uninstall this toolchain; an absent toolchain is only reported."""
        if not self.exists():
            self.cfg.notify(Event.TOOLCHAIN_NOT_INSTALLED, toolchain=self.name)
            return

        self.cfg.notify(Event.UNINSTALLING_TOOLCHAIN, toolchain=self.name)
        uninstall(self.path)
        if not self.exists():
            self.cfg.notify(Event.UNINSTALLED_TOOLCHAIN, toolchain=self.name)

    # ------------------------------------------------------------------
    # Running binaries
    # ------------------------------------------------------------------

    def binary_file(self, binary: str) -> Path:
        """
        Path of a binary inside this toolchain's bin directory.

        On Windows '.exe' is appended to names without an extension, and
        '.bat' wrappers or extensionless shell scripts are accepted.
        """
        name = binary if Path(binary).suffix else f"{binary}{EXE_SUFFIX}"
        path = self.path / "bin" / name

        if IS_WINDOWS and not path.exists():
            if path.with_suffix(".bat").exists():
                return path.with_suffix(".bat")
            if path.with_suffix("").exists():
                return path.with_suffix("")
        return path

    def command_env(self, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        """
        Environment for processes run through this toolchain.

        Sets ELAN_TOOLCHAIN and ELAN_HOME, increments LEAN_RECURSION_COUNT and
        prepends '<home>/bin' (plus the toolchain's bin on Windows) to PATH.
        """
        env = dict(os.environ if environ is None else environ)

        path_entries = [str(self.cfg.bin_dir)]
        if IS_WINDOWS:
            path_entries.append(str(self.path / "bin"))
        if env.get("PATH"):
            path_entries.append(env["PATH"])
        env["PATH"] = os.pathsep.join(path_entries)

        env[RECURSION_COUNT_ENV] = str(self.cfg.recursion_count + 1)
        env[ELAN_TOOLCHAIN_ENV] = self.name
        env[ELAN_HOME_ENV] = str(self.cfg.elan_home)
        return env

    def create_command(
        self,
        binary: str,
        args: Sequence[str] = (),
        environ: Optional[Mapping[str, str]] = None,
    ) -> Tuple[List[str], Dict[str, str]]:
        """
        Build the argv and environment to run a binary of this toolchain.

        A binary missing from the toolchain is looked up on PATH instead,
        unless the recursion guard is exhausted.

        Args:
            binary: Binary name, e.g. 'lean' or 'lake'
            args: Arguments for the binary
            environ: Base environment (defaults to os.environ)

        Returns:
            (argv, env) suitable for subprocess.run

        Raises:
            ToolchainNotInstalledError: If the toolchain is not installed
            BinaryNotFoundError: If the binary is missing and PATH lookup
                would recurse too deeply
        """
        if not self.exists():
            raise ToolchainNotInstalledError(self.name)

        bin_path = self.binary_file(binary)
        if bin_path.is_file():
            program = str(bin_path)
        else:
            if self.cfg.recursion_count > RECURSION_COUNT_MAX - 1:
                raise BinaryNotFoundError(self.name, str(bin_path))
            program = binary

        if IS_WINDOWS and not Path(program).suffix:
            argv = ["sh", program]
        else:
            argv = [program]
        argv.extend(args)

        return argv, self.command_env(environ)

    def make_override(self, path: Path) -> None:
        """Record this toolchain as the override for directory path."""
        with self.cfg.settings_file.edit() as settings:
            settings.add_override(path, self.name)
        self.cfg.notify(Event.SET_OVERRIDE_TOOLCHAIN, path=path, toolchain=self.name)

    def __repr__(self) -> str:
        return f"Toolchain({self.name!r})"


__all__ = [
    "Toolchain",
]
