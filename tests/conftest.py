"""
Pytest configuration and shared fixtures for elankit tests.
"""

import logging
from pathlib import Path

import pytest

from elankit.core.config import Cfg, ToolConfig
from elankit.core.notifications import RecordingObserver
from elankit.core.platform import clear_platform_cache
from elankit.toolchain.descriptor import to_dir_name
from tests.utils.helpers import FEED_URL, GITHUB_URL, RAW_URL, build_tarball


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's elan environment out of tests."""
    for var in ("ELAN_HOME", "ELAN_TOOLCHAIN", "LEAN_RECURSION_COUNT", "ELAN_NO_OVERRIDE_NOTICE"):
        monkeypatch.delenv(var, raising=False)
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo the root handlers the CLI installs with logging.basicConfig."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def elan_home(tmp_path: Path) -> Path:
    """An empty elan home with the fixed subdirectories."""
    home = tmp_path.resolve() / "elan"
    (home / "toolchains").mkdir(parents=True)
    (home / "tmp").mkdir()
    return home


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def tool_config() -> ToolConfig:
    return ToolConfig(
        release_feed_url=FEED_URL,
        github_url=GITHUB_URL,
        raw_url=RAW_URL,
        lock_poll_interval=0.05,
        request_timeout=5,
    )


@pytest.fixture
def cfg(elan_home, observer, tool_config):
    """Session context rooted at a temporary elan home."""
    session_cfg = Cfg(elan_home, observer=observer, tool_config=tool_config)
    yield session_cfg
    session_cfg.close()


@pytest.fixture
def make_toolchain(cfg):
    """Create a fake installed toolchain directory for a descriptor."""

    def _make(desc) -> Path:
        path = cfg.toolchains_dir / to_dir_name(desc)
        (path / "bin").mkdir(parents=True)
        (path / "bin" / "lean").write_text("#!/bin/sh\necho lean\n")
        return path

    return _make


@pytest.fixture
def toolchain_tarball(tmp_path: Path):
    """Build a .tar.gz release archive with a single top-level directory."""

    def _build(name: str = "lean-4.9.0-linux") -> bytes:
        return build_tarball(
            [
                (f"{name}/bin/lean", b"#!/bin/sh\necho lean\n"),
                (f"{name}/lib/libleanshared.so", b"\x7fELF"),
            ]
        )

    return _build
