"""
Unit tests for directory override lookup.

Tests cover:
- ELAN_TOOLCHAIN precedence
- Per-directory precedence of override database, pin file and leanpkg.toml
- Nearest directory winning over farther ancestors
- Directories inside the toolchains directory
- Resolution, installation and default fallback
"""

from unittest.mock import patch

import pytest

from elankit.core.config import Cfg
from elankit.core.exceptions import (
    InvalidConfigFileError,
    NoDefaultToolchainError,
    OverrideToolchainNotInstalledError,
    RemoteFetchError,
)
from elankit.toolchain.descriptor import LocalToolchain, RemoteToolchain
from elankit.toolchain.overrides import (
    Environment,
    InsideToolchainDirectory,
    OverrideDatabase,
    OverrideReason,
    PackageManifestFile,
    ToolchainFile,
    find_override,
    find_override_toolchain_or_default,
    toolchain_for_dir,
)
from elankit.toolchain.projects import get_roots

ORIGIN = "leanprover/lean4"


@pytest.fixture
def project(tmp_path):
    path = tmp_path.resolve() / "work" / "project"
    path.mkdir(parents=True)
    return path


def set_db_override(cfg, path, toolchain):
    with cfg.settings_file.edit() as settings:
        settings.add_override(path, toolchain)


class TestOverrideReason:
    """Tests for the override reason types."""

    def test_base_is_abstract(self):
        with pytest.raises(TypeError):
            OverrideReason()

    def test_every_reason_explains_missing_toolchain(self, project):
        reasons = [
            Environment(),
            OverrideDatabase(project),
            ToolchainFile(project / "lean-toolchain"),
            PackageManifestFile(project / "leanpkg.toml"),
            InsideToolchainDirectory(project),
        ]

        for reason in reasons:
            assert "uninstalled toolchain" in reason.uninstalled_message() or (
                "could not parse" in reason.uninstalled_message()
            )


class TestFindOverride:
    """Tests for find_override()."""

    def test_nothing_applies(self, cfg, project):
        assert find_override(cfg, project) is None

    def test_pin_file(self, cfg, project):
        """Test a lean-toolchain file pins its directory and is recorded."""
        (project / "lean-toolchain").write_text("leanprover/lean4:v4.9.0\n")
        sub = project / "src" / "deep"
        sub.mkdir(parents=True)

        unresolved, reason = find_override(cfg, sub)

        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.9.0")
        assert reason == ToolchainFile(project / "lean-toolchain")
        assert str(reason) == f"overridden by '{project / 'lean-toolchain'}'"
        assert get_roots(cfg) == [str(project)]

    def test_channel_pin_file(self, cfg, project):
        """Test a pinned channel stays floating and still records the root."""
        (project / "lean-toolchain").write_text("leanprover/lean4:stable\n")

        unresolved, reason = find_override(cfg, project)

        assert unresolved.desc.from_channel == "stable"
        assert unresolved.is_floating()
        assert reason == ToolchainFile(project / "lean-toolchain")
        assert get_roots(cfg) == [str(project)]

    def test_empty_pin_file_skipped(self, cfg, project):
        (project / "lean-toolchain").write_text("\n")
        (project.parent / "lean-toolchain").write_text("stable\n")

        unresolved, reason = find_override(cfg, project)

        assert reason == ToolchainFile(project.parent / "lean-toolchain")

    def test_invalid_pin_file(self, cfg, project):
        (project / "lean-toolchain").write_text("what is this\n")
        with pytest.raises(InvalidConfigFileError):
            find_override(cfg, project)

    def test_environment_wins(self, cfg, project):
        (project / "lean-toolchain").write_text("leanprover/lean4:v4.9.0\n")
        cfg.env_override = "nightly"

        unresolved, reason = find_override(cfg, project)

        assert reason == Environment()
        assert unresolved.desc.release == "nightly"

    def test_database_beats_pin_file_in_same_directory(self, cfg, project):
        (project / "lean-toolchain").write_text("leanprover/lean4:v4.9.0\n")
        set_db_override(cfg, project, "leanprover/lean4:v4.8.0")

        unresolved, reason = find_override(cfg, project)

        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.8.0")
        assert reason == OverrideDatabase(project)

        with cfg.settings_file.edit() as settings:
            settings.remove_override(project)

        unresolved, reason = find_override(cfg, project)

        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.9.0")
        assert reason == ToolchainFile(project / "lean-toolchain")

    def test_pin_file_beats_manifest_in_same_directory(self, cfg, project):
        (project / "lean-toolchain").write_text("leanprover/lean4:v4.9.0\n")
        (project / "leanpkg.toml").write_text('[package]\nlean_version = "3.4.2"\n')

        _, reason = find_override(cfg, project)

        assert isinstance(reason, ToolchainFile)

    def test_nearest_directory_wins(self, cfg, tmp_path):
        """Test three nested levels each carrying a different kind of override."""
        outer = tmp_path.resolve() / "outer"
        middle = outer / "middle"
        inner = middle / "inner"
        inner.mkdir(parents=True)
        set_db_override(cfg, outer, "leanprover/lean4:v4.7.0")
        (middle / "leanpkg.toml").write_text('[package]\nlean_version = "4.8.0"\n')
        (inner / "lean-toolchain").write_text("leanprover/lean4:v4.9.0\n")

        assert find_override(cfg, inner)[0].desc == RemoteToolchain(ORIGIN, "v4.9.0")

        unresolved, reason = find_override(cfg, middle)
        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.8.0")
        assert reason == PackageManifestFile(middle / "leanpkg.toml")

        unresolved, reason = find_override(cfg, outer)
        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.7.0")
        assert reason == OverrideDatabase(outer)

    def test_database_local_value(self, cfg, project):
        set_db_override(cfg, project, "my-build")
        unresolved, _ = find_override(cfg, project)
        assert unresolved.desc == LocalToolchain("my-build")

    @pytest.mark.parametrize(
        "content,message",
        [
            ("package = 3\n", "'package' to be a table"),
            ("[package]\nlean_version = 3\n", "'lean_version' to be a string"),
            ("[package\n", ""),
        ],
    )
    def test_malformed_manifest(self, cfg, project, content, message):
        (project / "leanpkg.toml").write_text(content)
        with pytest.raises(InvalidConfigFileError, match=message):
            find_override(cfg, project)

    def test_manifest_without_version_skipped(self, cfg, project):
        (project / "leanpkg.toml").write_text('[package]\nname = "x"\n')
        assert find_override(cfg, project) is None

    def test_inside_toolchain_directory(self, cfg, make_toolchain):
        path = make_toolchain(RemoteToolchain(ORIGIN, "v4.9.0"))

        unresolved, reason = find_override(cfg, path / "bin")

        assert unresolved.desc == RemoteToolchain(ORIGIN, "v4.9.0")
        assert reason == InsideToolchainDirectory(path)
        assert reason.to_dict() == {"kind": "InToolchainDirectory", "path": str(path)}


class TestFindOverrideToolchainOrDefault:
    """Tests for find_override_toolchain_or_default() and toolchain_for_dir()."""

    def test_installed_override(self, cfg, project, make_toolchain):
        make_toolchain(RemoteToolchain(ORIGIN, "v4.9.0"))
        (project / "lean-toolchain").write_text("4.9.0\n")

        toolchain, reason = find_override_toolchain_or_default(cfg, project)

        assert toolchain.desc == RemoteToolchain(ORIGIN, "v4.9.0")
        assert isinstance(reason, ToolchainFile)

    def test_override_installed_on_demand(self, cfg, project):
        (project / "lean-toolchain").write_text("4.9.0\n")

        with patch(
            "elankit.toolchain.toolchain.Toolchain.install_from_dist"
        ) as mock_install:
            toolchain, _ = find_override_toolchain_or_default(cfg, project)

        mock_install.assert_called_once_with()
        assert toolchain.name == "leanprover/lean4:v4.9.0"

    def test_install_failure_is_wrapped(self, cfg, project):
        (project / "lean-toolchain").write_text("4.9.0\n")

        with patch(
            "elankit.toolchain.toolchain.Toolchain.install_from_dist",
            side_effect=RemoteFetchError("boom"),
        ):
            with pytest.raises(OverrideToolchainNotInstalledError) as exc_info:
                find_override_toolchain_or_default(cfg, project)

        assert "toolchain file at" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RemoteFetchError)

    def test_default_toolchain(self, cfg, project):
        with cfg.settings_file.edit() as settings:
            settings.default_toolchain = "v4.9.0"

        toolchain, reason = find_override_toolchain_or_default(cfg, project)

        assert toolchain.desc == RemoteToolchain(ORIGIN, "v4.9.0")
        assert reason is None
        assert not toolchain.exists()

    def test_nothing_configured(self, cfg, project):
        assert find_override_toolchain_or_default(cfg, project) is None
        with pytest.raises(NoDefaultToolchainError):
            toolchain_for_dir(cfg, project)

    def test_env_override_from_environment(self, elan_home, tool_config, project):
        cfg = Cfg(elan_home, tool_config=tool_config, env_override="4.9.0")
        (elan_home / "toolchains" / "leanprover--lean4---v4.9.0").mkdir()

        toolchain, reason = toolchain_for_dir(cfg, project)

        assert toolchain.name == "leanprover/lean4:v4.9.0"
        assert str(reason) == "environment override by ELAN_TOOLCHAIN"
