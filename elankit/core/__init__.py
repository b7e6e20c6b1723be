"""
Core functionality for elankit.

This package contains the foundational modules that the toolchain layer
depends on: configuration, settings, notifications, locking, downloads and
filesystem helpers.
"""

from .config import (
    Cfg,
    ToolConfig,
    load_tool_config,
    RECURSION_COUNT_MAX,
)

from .exceptions import (
    ElanError,
    InvalidToolchainNameError,
    RemoteFetchError,
    NetworkDisabledError,
    UnsupportedChannelError,
    NoDefaultToolchainError,
    AssetNotFoundError,
    ToolchainAlreadyInstalledError,
    ToolchainNotInstalledError,
    OverrideToolchainNotInstalledError,
    BinaryNotFoundError,
    InvalidConfigFileError,
    UnknownMetadataVersionError,
    FilesystemError,
    ArchiveExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
)

from .locking import (
    install_lock,
    LockTimeout,
)

from .notifications import (
    Event,
    Notification,
    Observer,
    LoggingObserver,
    RecordingObserver,
)

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
)

from .settings import (
    Settings,
    SettingsFile,
)

__all__ = [
    # Config
    "Cfg",
    "ToolConfig",
    "load_tool_config",
    "RECURSION_COUNT_MAX",
    # Exceptions
    "ElanError",
    "InvalidToolchainNameError",
    "RemoteFetchError",
    "NetworkDisabledError",
    "UnsupportedChannelError",
    "NoDefaultToolchainError",
    "AssetNotFoundError",
    "ToolchainAlreadyInstalledError",
    "ToolchainNotInstalledError",
    "OverrideToolchainNotInstalledError",
    "BinaryNotFoundError",
    "InvalidConfigFileError",
    "UnknownMetadataVersionError",
    "FilesystemError",
    "ArchiveExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    # Locking
    "install_lock",
    "LockTimeout",
    # Notifications
    "Event",
    "Notification",
    "Observer",
    "LoggingObserver",
    "RecordingObserver",
    # Platform
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    # Settings
    "Settings",
    "SettingsFile",
]
