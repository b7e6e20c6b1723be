"""
Inter-process locking for toolchain installation.

Two elankit processes (e.g. two terminals opening the same project) may try
to install the same toolchain at once. The installer therefore holds an
exclusive file lock on '<toolchain-dir>.lock' while it works.

Acquisition never times out: the lock is tried without blocking, and on
failure the caller is told once which process holds it, then the lock is
polled at a fixed interval until it is free. The holder records its PID in
a '<toolchain-dir>.lock.pid' sidecar for that diagnostic.

Usage:
    from elankit.core.locking import install_lock

    with install_lock(toolchain_dir.with_name(toolchain_dir.name + ".lock")):
        # Only one process gets here at a time for this toolchain
        ...
"""

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)

# Seconds between acquisition attempts while another process holds the lock
LOCK_POLL_INTERVAL = 1.0


def pid_file_for(lock_path: Path) -> Path:
    """Return the sidecar file holding the lock owner's PID."""
    return lock_path.with_name(lock_path.name + ".pid")


def read_lock_holder(lock_path: Path) -> Optional[int]:
    """
    Read the PID of the process currently holding a lock.

    Args:
        lock_path: Path of the lock file

    Returns:
        PID, or None if unknown
    """
    try:
        return int(pid_file_for(lock_path).read_text().strip())
    except (OSError, ValueError):
        return None


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        # Lock may be in use by the next holder
        logger.debug(f"Could not remove {path}: {e}")


@contextmanager
def install_lock(
    lock_path: Path,
    poll_interval: float = LOCK_POLL_INTERVAL,
    on_wait: Optional[Callable[[Optional[int]], None]] = None,
):
    """
    Hold the exclusive install lock for one toolchain directory.

    Args:
        lock_path: Lock file path ('<toolchain-dir>.lock')
        poll_interval: Seconds between attempts while the lock is busy
        on_wait: Called once with the holder's PID (or None) if we have to wait

    Yields:
        None

    Example:
        >>> with install_lock(Path('/home/u/.elan/toolchains/x.lock')):
        ...     install_toolchain()
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(lock_path)

    waited = False
    while True:
        try:
            lock.acquire(timeout=0)
            break
        except LockTimeout:
            if not waited:
                holder = read_lock_holder(lock_path)
                logger.debug(f"Lock {lock_path} is held by PID {holder}, waiting")
                if on_wait:
                    on_wait(holder)
                waited = True
            time.sleep(poll_interval)

    pid_path = pid_file_for(lock_path)
    try:
        pid_path.write_text(str(os.getpid()))
    except OSError as e:
        logger.debug(f"Could not record lock owner in {pid_path}: {e}")

    logger.debug(f"Acquired install lock: {lock_path}")
    try:
        yield
    finally:
        # Unlink while still holding the lock. A waiter that flocks the old
        # inode afterwards sees st_nlink == 0 and retries on a fresh file.
        _remove_quietly(pid_path)
        _remove_quietly(lock_path)
        lock.release()
        logger.debug(f"Released install lock: {lock_path}")


__all__ = [
    "LOCK_POLL_INTERVAL",
    "install_lock",
    "pid_file_for",
    "read_lock_holder",
    "LockTimeout",
]
