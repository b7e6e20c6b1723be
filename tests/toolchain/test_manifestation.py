"""
Unit tests for toolchain installation into a prefix.

Tests cover:
- Full download/extract/promote flow against a mocked release host
- Idempotence and stale staging directories
- No partial install directory on failure
- Mutual exclusion of concurrent installers
- Uninstallation
"""

import threading
import time

import pytest
import responses

from elankit.core.exceptions import (
    ArchiveExtractionError,
    AssetNotFoundError,
    ToolchainNotInstalledError,
    UnsupportedArchiveFormat,
)
from elankit.core.locking import install_lock
from elankit.core.notifications import Event
from elankit.toolchain.descriptor import RemoteToolchain, to_dir_name
from elankit.toolchain.manifestation import InstallPrefix, Manifestation, uninstall
from tests.utils.helpers import FEED_URL, build_tarball

DOWNLOADS = "https://downloads.example.test"
DESC = RemoteToolchain("leanprover/lean4", "v4.9.0")


def add_release(asset_name="lean-4.9.0-linux.tar.gz", body=b""):
    responses.add(
        responses.GET,
        FEED_URL,
        json={
            "stable": [
                {
                    "name": "v4.9.0",
                    "assets": [
                        {
                            "name": asset_name,
                            "browser_download_url": f"{DOWNLOADS}/{asset_name}",
                        }
                    ],
                }
            ]
        },
    )
    responses.add(responses.GET, f"{DOWNLOADS}/{asset_name}", body=body)


@pytest.fixture
def prefix(cfg):
    return InstallPrefix(cfg.toolchains_dir / to_dir_name(DESC))


class TestInstallPrefix:
    """Tests for InstallPrefix sibling paths."""

    def test_sibling_paths(self, tmp_path):
        prefix = InstallPrefix(tmp_path / "leanprover--lean4---v4.9.0")
        assert prefix.lock_path == tmp_path / "leanprover--lean4---v4.9.0.lock"
        assert prefix.staging_path == tmp_path / "leanprover--lean4---v4.9.0.tmp"
        assert not prefix.exists()


class TestManifestationInstall:
    """Tests for Manifestation.install()."""

    @pytest.mark.integration
    @responses.activate
    def test_install(self, cfg, observer, prefix, toolchain_tarball):
        """Test a release archive is materialized as the prefix."""
        add_release(body=toolchain_tarball())

        Manifestation(cfg, prefix, target="linux").install(DESC)

        assert (prefix.path / "bin" / "lean").is_file()
        assert (prefix.path / "lib" / "libleanshared.so").is_file()
        assert not prefix.staging_path.exists()
        assert not prefix.lock_path.exists()
        assert list(cfg.temp_dir.iterdir()) == []
        assert Event.DOWNLOAD_FINISHED in observer.events()
        assert Event.EXTRACTING_ARCHIVE in observer.events()

    @responses.activate
    def test_flat_archive(self, cfg, prefix):
        """Test archives without a single top-level folder."""
        add_release(
            body=build_tarball([("bin/lean", b"lean"), ("lib/libleanshared.so", b"")])
        )

        Manifestation(cfg, prefix, target="linux").install(DESC)

        assert (prefix.path / "bin" / "lean").is_file()

    def test_already_installed_is_noop(self, cfg, prefix):
        """Test nothing is fetched when the prefix already exists."""
        prefix.path.mkdir()

        # No responses registered: any request would fail
        Manifestation(cfg, prefix, target="linux").install(DESC)

        assert prefix.path.is_dir()

    @responses.activate
    def test_stale_staging_removed(self, cfg, observer, prefix, toolchain_tarball):
        """Test leftovers of an interrupted install are cleared first."""
        add_release(body=toolchain_tarball())
        (prefix.staging_path / "junk").mkdir(parents=True)

        Manifestation(cfg, prefix, target="linux").install(DESC)

        assert not (prefix.path / "junk").exists()
        assert not prefix.staging_path.exists()
        assert Event.REMOVING_STALE_STAGING in observer.events()

    @responses.activate
    def test_no_asset_for_platform(self, cfg, prefix):
        add_release(asset_name="lean-4.9.0-darwin.tar.gz")

        with pytest.raises(AssetNotFoundError):
            Manifestation(cfg, prefix, target="linux").install(DESC)

        assert not prefix.path.exists()
        assert not prefix.lock_path.exists()

    @responses.activate
    def test_unsupported_archive_leaves_nothing_behind(self, cfg, prefix):
        """Test a failed extraction leaves no partial install."""
        add_release(asset_name="lean-4.9.0-linux.tar.xz", body=b"xz data")

        with pytest.raises(UnsupportedArchiveFormat):
            Manifestation(cfg, prefix, target="linux").install(DESC)

        assert not prefix.path.exists()
        assert not prefix.staging_path.exists()
        assert list(cfg.temp_dir.iterdir()) == []

    @responses.activate
    def test_corrupt_archive_leaves_nothing_behind(self, cfg, prefix):
        add_release(body=b"definitely not gzip")

        with pytest.raises(ArchiveExtractionError):
            Manifestation(cfg, prefix, target="linux").install(DESC)

        assert not prefix.path.exists()
        assert not prefix.staging_path.exists()

    @pytest.mark.integration
    @responses.activate
    def test_waits_for_concurrent_installer(self, cfg, observer, prefix, toolchain_tarball):
        """Test a second installer waits, then sees the finished install."""
        add_release(body=toolchain_tarball())
        holding = threading.Event()
        release = threading.Event()

        def other_process():
            with install_lock(prefix.lock_path):
                holding.set()
                release.wait(5)
                # Simulate the other installer finishing first
                (prefix.path / "bin").mkdir(parents=True)

        holder = threading.Thread(target=other_process)
        holder.start()
        assert holding.wait(5)

        timer = threading.Timer(0.2, release.set)
        timer.start()
        try:
            Manifestation(cfg, prefix, target="linux").install(DESC)
        finally:
            timer.cancel()
            holder.join(5)

        assert Event.WAITING_FOR_LOCK in observer.events()
        # The winner's install is kept and nothing was downloaded
        assert Event.DOWNLOADING_COMPONENT not in observer.events()
        assert not (prefix.path / "lib").exists()

    @pytest.mark.integration
    @responses.activate
    def test_concurrent_installs_download_once(self, cfg, observer, prefix, toolchain_tarball):
        """Test two installers racing for one toolchain produce a single install."""
        archive_url = f"{DOWNLOADS}/lean-4.9.0-linux.tar.gz"
        body = toolchain_tarball()
        add_release()

        def slow_archive(request):
            # Keep the lock held long enough for the other installer to queue up
            time.sleep(0.3)
            return 200, {}, body

        responses.replace(
            responses.CallbackResponse(responses.GET, archive_url, callback=slow_archive)
        )

        start = threading.Barrier(2)
        errors = []

        def installer():
            start.wait(5)
            try:
                Manifestation(cfg, prefix, target="linux").install(DESC)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=installer) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(30)

        assert errors == []
        assert observer.events().count(Event.DOWNLOAD_FINISHED) == 1
        assert [c.request.url for c in responses.calls].count(archive_url) == 1
        assert (prefix.path / "bin" / "lean").is_file()
        assert sorted(p.name for p in cfg.toolchains_dir.iterdir()) == [prefix.path.name]
        assert not prefix.staging_path.exists()
        assert not prefix.lock_path.exists()


class TestUninstall:
    """Tests for uninstall()."""

    def test_removes_directory(self, prefix):
        (prefix.path / "bin").mkdir(parents=True)
        uninstall(prefix.path)
        assert not prefix.path.exists()

    def test_missing(self, prefix):
        with pytest.raises(ToolchainNotInstalledError, match="leanprover/lean4:v4.9.0"):
            uninstall(prefix.path)
