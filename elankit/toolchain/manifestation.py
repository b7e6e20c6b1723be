"""
Materializing toolchain directories from release archives.

Installation of one toolchain directory proceeds under its install lock:

1. Re-check whether the directory exists (another process may have won)
2. Find the release asset for this platform
3. Download it to '<home>/tmp'
4. Extract into the staging directory '<install_root>.tmp'
5. Rename the toolchain root onto '<install_root>'

The rename is the only step that makes a toolchain visible, so an
interrupted install never leaves a partial '<install_root>' behind.
"""

import logging
import time
from pathlib import Path
from typing import Optional

from elankit.core.config import Cfg
from elankit.core.download import DownloadProgress
from elankit.core.exceptions import FilesystemError, ToolchainNotInstalledError
from elankit.core.filesystem import (
    extract_archive,
    normalize_root_directory,
    remove_dir,
    rename_dir,
    safe_rmtree,
)
from elankit.core.locking import install_lock
from elankit.core.notifications import Event
from elankit.core.platform import detect_platform
from elankit.toolchain.descriptor import RemoteToolchain, from_dir_name
from elankit.toolchain.releases import find_asset_url

logger = logging.getLogger(__name__)


class InstallPrefix:
    """
    The installation root of one toolchain and its sibling paths.

    Existence is probed on every call; nothing is cached.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(self.path.name + ".lock")

    @property
    def staging_path(self) -> Path:
        return self.path.with_name(self.path.name + ".tmp")

    def exists(self) -> bool:
        return self.path.is_dir()

    def __repr__(self) -> str:
        return f"InstallPrefix({str(self.path)!r})"


class Manifestation:
    """
    Installer for one installation prefix.

    Args:
        cfg: Session context
        prefix: Where the toolchain is materialized
        target: Platform substring of release assets (detected if omitted)

    Example:
        >>> prefix = InstallPrefix(cfg.toolchains_dir / "leanprover--lean4---v4.9.0")
        >>> Manifestation(cfg, prefix).install(RemoteToolchain("leanprover/lean4", "v4.9.0"))
    """

    def __init__(self, cfg: Cfg, prefix: InstallPrefix, target: Optional[str] = None):
        self.cfg = cfg
        self.prefix = prefix
        self.target = target or detect_platform().asset_target()

    def install(self, desc: RemoteToolchain) -> None:
        """
        Install desc into the prefix. Returns immediately if already present.

        Raises:
            AssetNotFoundError: If the release has no asset for this platform
            RemoteFetchError: If the asset cannot be located or downloaded
            ArchiveExtractionError: If the archive cannot be extracted
            FilesystemError: If the staging directory cannot be promoted
        """
        if self.prefix.exists():
            logger.debug(f"{self.prefix.path} already exists, nothing to install")
            return

        def on_wait(holder: Optional[int]) -> None:
            self.cfg.notify(
                Event.WAITING_FOR_LOCK,
                holder=f"PID {holder}" if holder is not None else "unknown process",
            )

        with install_lock(
            self.prefix.lock_path,
            poll_interval=self.cfg.tool_config.lock_poll_interval,
            on_wait=on_wait,
        ):
            if self.prefix.exists():
                logger.debug(f"{self.prefix.path} was installed by another process")
                return
            self._install_locked(desc)

    def _install_locked(self, desc: RemoteToolchain) -> None:
        url = find_asset_url(self.cfg, desc, self.target)
        archive_path = self.cfg.temp_dir / url.rsplit("/", 1)[-1]
        staging = self.prefix.staging_path

        try:
            self._download(url, archive_path)

            if staging.exists():
                self.cfg.notify(Event.REMOVING_STALE_STAGING, path=staging)
                safe_rmtree(staging)

            self.cfg.notify(Event.INSTALLING_COMPONENT, component="lean")
            self.cfg.notify(Event.EXTRACTING_ARCHIVE, archive=archive_path.name, path=staging)
            extraction_start = time.time()
            extract_archive(archive_path, staging)

            root = normalize_root_directory(staging)
            rename_dir(root, self.prefix.path)
            logger.info(
                f"Extracted {archive_path.name} in {time.time() - extraction_start:.2f}s"
            )
        finally:
            self._cleanup(archive_path, staging)

    def _download(self, url: str, archive_path: Path) -> None:
        self.cfg.notify(Event.DOWNLOADING_COMPONENT, component="lean")
        self.cfg.notify(Event.DOWNLOADING_FILE, url=url)

        def on_progress(progress: DownloadProgress) -> None:
            self.cfg.notify(Event.DOWNLOAD_PROGRESS, progress=progress)

        self.cfg.download(url, archive_path, progress_callback=on_progress)
        self.cfg.notify(Event.DOWNLOAD_FINISHED, path=archive_path)

    def _cleanup(self, archive_path: Path, staging: Path) -> None:
        try:
            archive_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove archive {archive_path}: {e}")

        if staging.exists():
            try:
                safe_rmtree(staging)
            except FilesystemError as e:
                logger.warning(f"Failed to remove staging directory {staging}: {e}")


def uninstall(path: Path) -> None:
    """
    Remove an installed toolchain directory (or unlink a linked one).

    Not lock-protected.

    Raises:
        ToolchainNotInstalledError: If nothing is installed at path
    """
    path = Path(path)
    if not path.exists() and not path.is_symlink():
        raise ToolchainNotInstalledError(str(from_dir_name(path.name)))
    remove_dir(path)


__all__ = [
    "InstallPrefix",
    "Manifestation",
    "uninstall",
]
