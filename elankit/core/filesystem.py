"""
Cross-platform file system utilities for elankit.

This module provides the file operations the installer depends on:
- Archive extraction (tar.gz, tar.zst, zip) with traversal checks
- Safe file operations (atomic writes, safe deletion, directory promotion)
- Directory links and copies for locally built toolchains
- Path canonicalization used by the override database
"""

import logging
import os
import shutil
import subprocess
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Union

import zstandard

from elankit.core.exceptions import (
    ArchiveExtractionError,
    FilesystemError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

# Suffixes extract_archive understands, longest first.
SUPPORTED_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar.zst", ".zip")


# ============================================================================
# Path Utilities
# ============================================================================


def canonicalize_path(path: Union[str, Path]) -> Path:
    """
    Resolve symlinks and make a path absolute.

    Falls back to the absolute, unresolved path when resolution fails, so
    callers can always use the result as a lookup key.

    Args:
        path: Path to canonicalize

    Returns:
        Canonical absolute path

    Example:
        >>> canonicalize_path("./foo/../bar")
        PosixPath('/absolute/path/to/bar')
    """
    path = Path(path)
    try:
        return path.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        logger.debug(f"Could not canonicalize '{path}': {e}")
        return path.absolute()


# ============================================================================
# Archive Extraction
# ============================================================================


def _check_member(name: str, destination: Path) -> None:
    """Reject archive members that would land outside destination."""
    root = destination.resolve()
    if not (root / name).resolve().is_relative_to(root):
        raise InsecureArchiveError(
            f"archive member '{name}' would be extracted outside '{destination}'"
        )


def archive_format(archive_name: str) -> Optional[str]:
    """
    Return the supported suffix of an archive file name, or None.

    Args:
        archive_name: File name (or URL) of the archive
    """
    name = archive_name.lower()
    for suffix in SUPPORTED_ARCHIVE_SUFFIXES:
        if name.endswith(suffix):
            return suffix
    return None


def extract_archive(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Unpack a release archive into destination.

    The format is chosen from the file name suffix: .tar.gz/.tgz,
    .tar.zst or .zip. Every member is checked before it is written, and
    .tar.zst archives are decompressed as a stream without a temporary tar.

    Raises:
        UnsupportedArchiveFormat: If the suffix is not recognized
        InsecureArchiveError: If a member escapes destination
        ArchiveExtractionError: If the archive is missing or corrupt

    Example:
        >>> extract_archive('lean-4.9.0-linux.tar.zst', '/tmp/staging')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    suffix = archive_format(archive_path.name)
    if suffix is None:
        raise UnsupportedArchiveFormat(
            f"unsupported archive format: '{archive_path.name}' "
            f"(expected one of {', '.join(SUPPORTED_ARCHIVE_SUFFIXES)})"
        )
    if not archive_path.is_file():
        raise ArchiveExtractionError(f"archive not found: {archive_path}")

    destination.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Extracting {archive_path} into {destination}")

    try:
        if suffix == ".zip":
            _unpack_zip(archive_path, destination)
        elif suffix == ".tar.zst":
            with open(archive_path, "rb") as fh:
                reader = zstandard.ZstdDecompressor().stream_reader(fh)
                with tarfile.open(fileobj=reader, mode="r|") as tar:
                    _unpack_tar(tar, destination)
        else:
            with tarfile.open(archive_path, mode="r:gz") as tar:
                _unpack_tar(tar, destination)
    except InsecureArchiveError:
        raise
    except (OSError, EOFError, tarfile.TarError, zipfile.BadZipFile, zstandard.ZstdError) as e:
        raise ArchiveExtractionError(f"failed to extract '{archive_path}': {e}") from e


def _unpack_tar(tar: tarfile.TarFile, destination: Path) -> None:
    # Iterating works for both seekable and streamed archives
    for member in tar:
        _check_member(member.name, destination)
        tar.extract(member, destination, filter="tar")


def _unpack_zip(archive_path: Path, destination: Path) -> None:
    with zipfile.ZipFile(archive_path) as zf:
        for info in zf.infolist():
            _check_member(info.filename, destination)
            target = zf.extract(info, destination)
            # Unix permission bits live in the high word of external_attr
            mode = (info.external_attr >> 16) & 0o777
            if mode and not IS_WINDOWS:
                os.chmod(target, mode)


def normalize_root_directory(extract_dir: Path) -> Path:
    """
    Return the toolchain root inside an extraction directory.

    Release archives wrap everything in a single top-level folder
    (e.g. lean-4.9.0-linux/); in that case the folder is the root.
    """
    entries = list(extract_dir.iterdir())
    if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
        return entries[0]
    return extract_dir


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    This ensures the file is never in a partially-written state.
    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('/home/user/.elan/toolchains/x.tmp', require_prefix='/home/user/.elan')
    """
    path = Path(path).absolute()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).absolute()
        if not path.is_relative_to(require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists() and not path.is_symlink():
        return

    if path.is_symlink() or not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, failed_path, exc):
                """Error handler for Windows read-only files."""
                if os.access(failed_path, os.W_OK):
                    raise exc
                os.chmod(failed_path, 0o777)
                func(failed_path)

            shutil.rmtree(path, onexc=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def remove_dir(path: Union[str, Path]) -> None:
    """
    Remove an installed toolchain directory or the symlink of a linked one.

    Args:
        path: Toolchain directory or symlink

    Raises:
        FilesystemError: If the path does not exist or cannot be removed
    """
    path = Path(path)

    if path.is_symlink():
        try:
            # Directory junctions on Windows need rmdir, symlinks need unlink
            if IS_WINDOWS and path.is_dir():
                os.rmdir(path)
            else:
                path.unlink()
        except OSError as e:
            raise FilesystemError(f"Failed to remove link '{path}': {e}") from e
        return

    if not path.exists():
        raise FilesystemError(f"Directory does not exist: {path}")

    safe_rmtree(path)


def rename_dir(source: Path, destination: Path) -> None:
    """
    Move a directory onto a path that must not exist yet.

    Args:
        source: Directory to move
        destination: Target path

    Raises:
        FilesystemError: If the rename fails
    """
    try:
        os.rename(source, destination)
    except OSError as e:
        raise FilesystemError(
            f"Failed to rename directory '{source}' to '{destination}': {e}"
        ) from e


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Copy a toolchain build into destination, keeping symlinks as links.

    Raises:
        FilesystemError: If source is not a directory or the copy fails
    """
    source = Path(source)
    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    try:
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to copy '{source}' to '{destination}': {e}") from e


def symlink_dir(source: Union[str, Path], target: Union[str, Path]) -> None:
    """
    Create a directory link at target pointing to source.

    On Windows a junction is created when symlinks are not permitted, since
    junctions do not require administrator privileges.

    Args:
        source: Existing directory
        target: Link location (must not exist)

    Raises:
        FilesystemError: If the link cannot be created
    """
    source = Path(source).absolute()
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)

    try:
        os.symlink(source, target, target_is_directory=True)
        return
    except OSError as e:
        if not IS_WINDOWS:
            raise FilesystemError(
                f"Failed to link '{target}' to '{source}': {e}"
            ) from e
        logger.debug(f"Symlink failed ({e}), trying junction")

    result = subprocess.run(
        ["cmd", "/c", "mklink", "/J", str(target), str(source)],
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise FilesystemError(
            f"Failed to create junction from {target} to {source}: {result.stderr}"
        )


__all__ = [
    "SUPPORTED_ARCHIVE_SUFFIXES",
    "canonicalize_path",
    "archive_format",
    "extract_archive",
    "normalize_root_directory",
    "atomic_write",
    "safe_rmtree",
    "remove_dir",
    "rename_dir",
    "recursive_copy",
    "symlink_dir",
]
