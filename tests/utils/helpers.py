"""
Test helper utilities for elankit testing.

Release hosts in tests live under the reserved '.test' TLD and are served
by the responses library.
"""

import io
import tarfile
from typing import Iterable, Tuple

FEED_URL = "https://release.example.test/"
GITHUB_URL = "https://github.example.test"
RAW_URL = "https://raw.example.test"


def build_tarball(members: Iterable[Tuple[str, bytes]], mode: str = "w:gz") -> bytes:
    """
    Build a tar archive in memory.

    Args:
        members: (member path, content) pairs
        mode: tarfile write mode ('w:gz' or 'w' for an uncompressed tar)

    Returns:
        Archive bytes

    Example:
        >>> data = build_tarball([("lean-4.9.0-linux/bin/lean", b"lean")])
    """
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as tar:
        for name, content in members:
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(content))
    return buffer.getvalue()
