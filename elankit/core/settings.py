"""
Persistent user settings: the default toolchain and directory overrides.

Settings live in '<home>/settings.toml':

    version = "12"
    default_toolchain = "stable"

    [overrides]
    "/home/user/project" = "leanprover/lean4:v4.9.0"

The default toolchain is stored as typed by the user (it may be a channel);
override values are fully resolved descriptor strings. Keys of the override
table are canonical directory paths.

Example:
    >>> settings_file = SettingsFile(home / "settings.toml")
    >>> settings_file.load().default_toolchain
    'stable'
    >>> with settings_file.edit() as settings:
    ...     settings.default_toolchain = "nightly"
"""

import logging
import tomllib
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

import tomli_w

from elankit.core.exceptions import InvalidConfigFileError, UnknownMetadataVersionError
from elankit.core.filesystem import atomic_write, canonicalize_path

logger = logging.getLogger(__name__)

SUPPORTED_METADATA_VERSIONS = ("2", "12")
DEFAULT_METADATA_VERSION = "12"


@dataclass
class Settings:
    """
    In-memory form of settings.toml.

    Attributes:
        version: Settings format version
        default_toolchain: Unresolved default toolchain name, if any
        overrides: Canonical directory path -> resolved descriptor string
    """

    version: str = DEFAULT_METADATA_VERSION
    default_toolchain: Optional[str] = None
    overrides: Dict[str, str] = field(default_factory=dict)

    @staticmethod
    def path_to_key(path: Union[str, Path]) -> str:
        """Canonical override-table key for a directory."""
        path = Path(path)
        if path.exists():
            return str(canonicalize_path(path))
        return str(path)

    def add_override(self, path: Union[str, Path], toolchain: str) -> None:
        self.overrides[self.path_to_key(path)] = toolchain

    def remove_override(self, path: Union[str, Path]) -> bool:
        """Remove the override for path; returns whether one existed."""
        return self.overrides.pop(self.path_to_key(path), None) is not None

    def dir_override(self, path: Union[str, Path]) -> Optional[str]:
        return self.overrides.get(self.path_to_key(path))

    @classmethod
    def from_dict(cls, data: dict, source: Path) -> "Settings":
        """
        Build settings from parsed TOML.

        Args:
            data: Parsed TOML table
            source: File the table came from (for error messages)

        Raises:
            UnknownMetadataVersionError: For unsupported versions
            InvalidConfigFileError: For values of the wrong type
        """
        version = data.get("version", DEFAULT_METADATA_VERSION)
        if not isinstance(version, str):
            raise InvalidConfigFileError(source, "'version' must be a string")
        if version not in SUPPORTED_METADATA_VERSIONS:
            raise UnknownMetadataVersionError(version)

        default_toolchain = data.get("default_toolchain")
        if default_toolchain is not None and not isinstance(default_toolchain, str):
            raise InvalidConfigFileError(source, "'default_toolchain' must be a string")

        overrides_table = data.get("overrides", {})
        if not isinstance(overrides_table, dict):
            raise InvalidConfigFileError(source, "'overrides' must be a table")

        overrides = {}
        for key, value in overrides_table.items():
            if isinstance(value, str):
                overrides[key] = value
            else:
                logger.warning(f"Ignoring non-string override for '{key}' in {source}")

        return cls(
            version=version,
            default_toolchain=default_toolchain,
            overrides=overrides,
        )

    def to_dict(self) -> dict:
        result: dict = {"version": self.version}
        if self.default_toolchain is not None:
            result["default_toolchain"] = self.default_toolchain
        result["overrides"] = dict(sorted(self.overrides.items()))
        return result


class SettingsFile:
    """
    Scoped read/write access to settings.toml.

    The file is parsed lazily and cached for the lifetime of the object.
    Writes go through edit(), which persists atomically on a clean exit.
    Concurrent writers from different processes are not serialized; the
    last write wins.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._cache: Optional[Settings] = None

    def load(self) -> Settings:
        """
        Return the current settings, reading the file on first use.

        Raises:
            InvalidConfigFileError: If the file is not valid TOML
        """
        if self._cache is None:
            self._cache = self._read()
        return self._cache

    def _read(self) -> Settings:
        if not self.path.exists():
            logger.debug(f"Settings file not found, using defaults: {self.path}")
            return Settings()

        try:
            with open(self.path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise InvalidConfigFileError(self.path, str(e)) from e
        except OSError as e:
            raise InvalidConfigFileError(self.path, f"cannot read file: {e}") from e

        return Settings.from_dict(data, self.path)

    def save(self, settings: Settings) -> None:
        atomic_write(self.path, tomli_w.dumps(settings.to_dict()))
        self._cache = settings
        logger.debug(f"Wrote settings to {self.path}")

    @contextmanager
    def edit(self) -> Iterator[Settings]:
        """
        Modify settings and write them back.

        Nothing is written if the body raises.

        Yields:
            Settings: The mutable settings object
        """
        settings = self.load()
        yield settings
        self.save(settings)


__all__ = [
    "SUPPORTED_METADATA_VERSIONS",
    "Settings",
    "SettingsFile",
]
