"""
HTTP access for elankit: page/feed fetching and file downloads.

This module provides:
- fetch_url: GET a URL and return the body text (pin files, release feeds,
  release HTML pages)
- download_file: stream a release archive to disk, retrying transient
  failures with exponential backoff

Downloads are written to '<destination>.partial' and renamed into place once
complete, so an interrupted download never looks like a finished archive.
"""

import logging
import os
import time
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Optional

import requests
from requests.exceptions import RequestException

from elankit.core.exceptions import RemoteFetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
PROGRESS_INTERVAL = 0.5  # seconds between progress callbacks

_UNITS = ("B", "KiB", "MiB", "GiB")


@dataclass
class DownloadProgress:
    """
    Snapshot of a running download.

    Attributes:
        received: Bytes written so far
        total: Size announced by the server, if any
        elapsed: Seconds since the response started
    """

    received: int
    total: Optional[int] = None
    elapsed: float = 0.0

    @property
    def rate(self) -> float:
        """Average bytes per second."""
        return self.received / self.elapsed if self.elapsed > 0 else 0.0

    @property
    def fraction(self) -> Optional[float]:
        if not self.total:
            return None
        return min(self.received / self.total, 1.0)

    @property
    def eta(self) -> Optional[float]:
        if not self.total or self.rate <= 0:
            return None
        return max(self.total - self.received, 0) / self.rate

    def __str__(self) -> str:
        return format_progress(self)


def format_size(num_bytes: float) -> str:
    """Render a byte count with binary units, e.g. '1.5 MiB'."""
    size = float(num_bytes)
    for unit in _UNITS[:-1]:
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} {_UNITS[-1]}"


def format_progress(progress: DownloadProgress) -> str:
    """
    Format a progress line for the terminal.

    Example:
        >>> format_progress(DownloadProgress(1048576, 4194304, elapsed=1.0))
        '1.0 MiB / 4.0 MiB (25 %) 1.0 MiB/s ETA: 3 s'
    """
    rate = f"{format_size(progress.rate)}/s"
    if progress.fraction is None:
        return f"{format_size(progress.received)} {rate}"

    line = (
        f"{format_size(progress.received)} / {format_size(progress.total)} "
        f"({progress.fraction * 100:.0f} %) {rate}"
    )
    if progress.eta is not None:
        line += f" ETA: {progress.eta:.0f} s"
    return line


def fetch_url(
    url: str, session: Optional[requests.Session] = None, timeout: int = 30
) -> str:
    """
    Fetch a URL and return its body as text.

    Redirects are followed; the body of the final response is returned.

    Raises:
        RemoteFetchError: On connection errors or non-2xx responses
    """
    http = session or requests
    logger.debug(f"Fetching {url}")

    try:
        response = http.get(url, timeout=timeout, allow_redirects=True)
        response.raise_for_status()
    except RequestException as e:
        raise RemoteFetchError(f"failed to fetch '{url}': {e}", url=url) from e

    return response.text


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download url to destination.

    Failed attempts are retried after 1, 2, 4... seconds.

    Args:
        url: URL to download from
        destination: File to create; parent directories are created
        progress_callback: Called with a DownloadProgress at most every
            PROGRESS_INTERVAL seconds and once at the end
        session: Optional requests session
        timeout: Request timeout in seconds
        max_retries: Total number of attempts

    Returns:
        destination

    Raises:
        RemoteFetchError: If every attempt fails
        ValueError: If url is empty
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".partial")

    attempt = 1
    while True:
        try:
            _stream_to_file(url, partial, progress_callback, session, timeout)
            break
        except RequestException as e:
            if attempt >= max_retries:
                raise RemoteFetchError(
                    f"failed to download '{url}' after {attempt} attempts: {e}",
                    url=url,
                ) from e
            delay = 2 ** (attempt - 1)
            logger.warning(f"Download of {url} failed ({e}), retrying in {delay}s")
            time.sleep(delay)
            attempt += 1

    os.replace(partial, destination)
    logger.debug(f"Downloaded {url} to {destination}")
    return destination


def _stream_to_file(
    url: str,
    path: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    session: Optional[requests.Session],
    timeout: int,
) -> None:
    http = session or requests
    logger.info(f"Downloading {url}")

    with http.get(url, stream=True, timeout=timeout, allow_redirects=True) as response:
        response.raise_for_status()
        length = response.headers.get("content-length")
        progress = DownloadProgress(received=0, total=int(length) if length else None)

        started = time.monotonic()
        reported = started
        try:
            with open(path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    progress.received += len(chunk)

                    now = time.monotonic()
                    if progress_callback and now - reported >= PROGRESS_INTERVAL:
                        progress.elapsed = now - started
                        progress_callback(replace(progress))
                        reported = now
        except Exception:
            path.unlink(missing_ok=True)
            raise

        if progress_callback:
            progress.elapsed = time.monotonic() - started
            progress_callback(replace(progress))


__all__ = [
    "DownloadProgress",
    "format_size",
    "format_progress",
    "fetch_url",
    "download_file",
]
