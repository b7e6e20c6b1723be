"""
Centralized exception hierarchy for elankit.

Every error raised by elankit derives from ElanError so the command layer
can print a clean error chain and exit non-zero.
"""

from pathlib import Path
from typing import Optional


# ============================================================================
# Base Exceptions
# ============================================================================


class ElanError(Exception):
    """Base exception for all elankit errors."""

    pass


# ============================================================================
# Toolchain Name and Resolution Exceptions
# ============================================================================


class InvalidToolchainNameError(ElanError):
    """Raised when a toolchain name does not match the name grammar."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"invalid toolchain name: '{name}'")


class RemoteFetchError(ElanError):
    """Raised when a remote resource could not be fetched."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class NetworkDisabledError(RemoteFetchError):
    """Raised when a fetch is attempted while network access is disabled."""

    def __init__(self, url: str):
        super().__init__(f"network access disabled, cannot fetch '{url}'", url=url)


class UnsupportedChannelError(ElanError):
    """Raised for channels a non-default origin cannot serve (e.g. beta)."""

    def __init__(self, channel: str, origin: str):
        self.channel = channel
        self.origin = origin
        super().__init__(
            f"channel '{channel}' is not supported for custom origin '{origin}'"
        )


class NoDefaultToolchainError(ElanError):
    """Raised when no override applies and no default toolchain is configured."""

    def __init__(self):
        super().__init__(
            "no default toolchain configured. run `elankit default stable` "
            "to install & configure the latest Lean 4 stable release."
        )


# ============================================================================
# Installation Exceptions
# ============================================================================


class AssetNotFoundError(ElanError):
    """Raised when a release has no binary package for this platform."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"binary package was not provided for '{target}'")


class ToolchainAlreadyInstalledError(ElanError):
    """Raised when installing over an existing toolchain directory."""

    def __init__(self, toolchain: str):
        self.toolchain = toolchain
        super().__init__(f"'{toolchain}' is already installed")


class ToolchainNotInstalledError(ElanError):
    """Raised by operations that need an installed toolchain."""

    def __init__(self, toolchain: str):
        self.toolchain = toolchain
        super().__init__(f"toolchain '{toolchain}' is not installed")


class OverrideToolchainNotInstalledError(ElanError):
    """Raised when an override names a toolchain that cannot be installed."""

    def __init__(self, toolchain: str, reason: str):
        self.toolchain = toolchain
        self.reason = reason
        super().__init__(f"override toolchain '{toolchain}' is not installed: {reason}")


class BinaryNotFoundError(ElanError):
    """Raised when a toolchain does not ship the requested binary."""

    def __init__(self, toolchain: str, binary: str):
        self.toolchain = toolchain
        self.binary = binary
        super().__init__(f"toolchain '{toolchain}' does not have the binary `{binary}`")


class InfiniteRecursionError(ElanError):
    """Raised when proxies keep invoking each other through PATH."""

    def __init__(self):
        super().__init__("infinite recursion detected")


# ============================================================================
# Configuration Exceptions
# ============================================================================


class InvalidConfigFileError(ElanError):
    """Raised for malformed pin files, package manifests or settings."""

    def __init__(self, path: Path, message: str):
        self.path = path
        super().__init__(f"couldn't parse '{path}': {message}")


class UnknownMetadataVersionError(ElanError):
    """Raised when settings.toml carries an unsupported version."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"unknown metadata version: '{version}'")


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(ElanError):
    """Base exception for filesystem operations."""

    pass


class ArchiveExtractionError(FilesystemError):
    """Failed to extract an archive."""

    pass


class UnsupportedArchiveFormat(ArchiveExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass
