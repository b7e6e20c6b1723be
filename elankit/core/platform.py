"""
Platform detection for elankit.

Release assets are named after an informal target such as 'linux',
'darwin_aarch64' or 'windows'. This module detects the running OS and CPU
architecture and produces that target string.

Usage:
    from elankit.core.platform import detect_platform

    info = detect_platform()
    print(info.asset_target())   # e.g. 'linux' or 'darwin_aarch64'
"""

import functools
import platform
from dataclasses import dataclass

# platform.system().lower() -> normalized OS name
_OS_NAMES = {
    "linux": "linux",
    "darwin": "macos",
    "windows": "windows",
}

# platform.machine().lower() aliases; unknown machines pass through
_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

# OS part of asset names where it differs from the normalized name
_ASSET_OS = {"macos": "darwin"}


@dataclass(frozen=True)
class PlatformInfo:
    """
    Host platform as far as release assets care.

    Attributes:
        os: 'linux', 'macos' or 'windows'
        arch: 'x86_64', 'aarch64' or the raw machine name
    """

    os: str
    arch: str

    def asset_target(self) -> str:
        """
        Substring identifying this platform's release asset.

        x86_64 is the unsuffixed default; other architectures are appended
        after an underscore.

        Example:
            >>> PlatformInfo('macos', 'aarch64').asset_target()
            'darwin_aarch64'
        """
        target = _ASSET_OS.get(self.os, self.os)
        return target if self.arch == "x86_64" else f"{target}_{self.arch}"

    def __str__(self) -> str:
        return f"{self.os}-{self.arch}"


def _detect_os() -> str:
    system = platform.system().lower()
    try:
        return _OS_NAMES[system]
    except KeyError:
        raise RuntimeError(f"Unsupported operating system: {system}") from None


def _detect_architecture() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """Detect the host platform once per process."""
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def clear_platform_cache() -> None:
    """Forget the cached detect_platform() result (used by tests)."""
    detect_platform.cache_clear()


__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
]
