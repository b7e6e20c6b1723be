"""
Toolchain descriptors: the canonical identity of a toolchain.

A descriptor is either
- LocalToolchain(name): a linked or copied toolchain, never resolved remotely
- RemoteToolchain(origin, release): a release tag of an origin repository

The display form ('origin:release' or the bare local name) doubles as the
installation directory name after encoding '/' as '--' and ':' as '---'.

Example:
    >>> desc = RemoteToolchain("my-fork/lean4", "nightly-2023-09-06")
    >>> to_dir_name(desc)
    'my-fork--lean4---nightly-2023-09-06'
    >>> from_dir_name('my-fork--lean4---nightly-2023-09-06') == desc
    True
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from packaging.version import InvalidVersion, Version

from elankit.core.exceptions import InvalidToolchainNameError

DEFAULT_ORIGIN = "leanprover/lean4"
NIGHTLY_ORIGIN_SUFFIX = "-nightly"

CHANNELS = ("stable", "beta", "nightly")
LEAN_TOOLCHAIN_RELEASE = "lean-toolchain"

# Hyphens only between word characters, so "--" and "---" in a directory
# name can only come from the encoded separators.
_WORD = r"[a-zA-Z0-9_]+(?:-[a-zA-Z0-9_]+)*"
_RELEASE = r"[a-zA-Z0-9_.]+(?:-[a-zA-Z0-9_.]+)*"

TOOLCHAIN_NAME_PATTERN = re.compile(rf"^(?:({_WORD}/{_WORD}):)?({_RELEASE})$")


@dataclass(frozen=True)
class LocalToolchain:
    """A user-named toolchain installed by linking or copying a directory."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class RemoteToolchain:
    """
    A concrete release of an origin repository.

    Attributes:
        origin: Repository identifier ('org/repo')
        release: Release tag (e.g. 'v4.9.0', 'nightly-2023-09-06'), or a
            channel name while still unresolved
        from_channel: Channel this descriptor was resolved from, if any.
            Not part of equality, hashing or the display form.
    """

    origin: str
    release: str
    from_channel: Optional[str] = field(default=None, compare=False)

    def __str__(self) -> str:
        return f"{self.origin}:{self.release}"


ToolchainDesc = Union[LocalToolchain, RemoteToolchain]


@dataclass(frozen=True)
class UnresolvedToolchain:
    """A descriptor whose release may still be a channel or 'lean-toolchain'."""

    desc: ToolchainDesc

    def is_floating(self) -> bool:
        return isinstance(self.desc, RemoteToolchain) and (
            self.desc.release in CHANNELS or self.desc.release == LEAN_TOOLCHAIN_RELEASE
        )

    def __str__(self) -> str:
        return str(self.desc)


def parse_toolchain_name(name: str) -> UnresolvedToolchain:
    """
    Parse a raw toolchain name into an unresolved remote descriptor.

    The origin defaults to 'leanprover/lean4' and gets a '-nightly' suffix
    for nightly releases. Channel names and 'lean-toolchain' are recorded in
    from_channel; numeric tags get a 'v' prefix.

    Args:
        name: Raw name such as 'stable', '4.9.0' or 'org/repo:nightly'

    Returns:
        UnresolvedToolchain wrapping a RemoteToolchain

    Raises:
        InvalidToolchainNameError: If name does not match the name grammar

    Example:
        >>> parse_toolchain_name("4.9.0").desc
        RemoteToolchain(origin='leanprover/lean4', release='v4.9.0', from_channel=None)
    """
    match = TOOLCHAIN_NAME_PATTERN.match(name)
    if not match:
        raise InvalidToolchainNameError(name)

    origin = match.group(1) or DEFAULT_ORIGIN
    release = match.group(2)

    if release.startswith("nightly") and not origin.endswith(NIGHTLY_ORIGIN_SUFFIX):
        origin = origin + NIGHTLY_ORIGIN_SUFFIX

    from_channel = None
    if release in CHANNELS or release == LEAN_TOOLCHAIN_RELEASE:
        from_channel = release

    if release[0].isdigit():
        release = "v" + release

    return UnresolvedToolchain(RemoteToolchain(origin, release, from_channel))


def from_resolved_str(name: str) -> ToolchainDesc:
    """
    Parse a display string back into a descriptor.

    'origin:release' gives a RemoteToolchain, anything else a LocalToolchain.
    Used for override database values and decoded directory names.
    """
    origin, sep, release = name.rpartition(":")
    if sep and origin:
        return RemoteToolchain(origin, release)
    return LocalToolchain(name)


def to_dir_name(desc: ToolchainDesc) -> str:
    """Encode a descriptor as its installation directory name."""
    return str(desc).replace("/", "--").replace(":", "---")


def from_dir_name(dir_name: str) -> ToolchainDesc:
    """Decode an installation directory name into a descriptor."""
    return from_resolved_str(dir_name.replace("---", ":").replace("--", "/"))


def _sort_key(desc: ToolchainDesc) -> Tuple:
    label = desc.release if isinstance(desc, RemoteToolchain) else desc.name
    for rank, prefix in enumerate(CHANNELS):
        if label.startswith(prefix):
            return (rank, label, str(desc))

    try:
        version = Version(label)
    except InvalidVersion:
        return (4, label, str(desc))
    return (3, version, str(desc))


def toolchain_sort(descs: Iterable[ToolchainDesc]) -> List[ToolchainDesc]:
    """
    Sort descriptors: stable*, beta*, nightly*, versions ascending, the rest.

    Example:
        >>> [d.release for d in toolchain_sort([RemoteToolchain("o/r", "v4.10.0"),
        ...                                       RemoteToolchain("o/r", "v4.9.0")])]
        ['v4.9.0', 'v4.10.0']
    """
    return sorted(descs, key=_sort_key)


__all__ = [
    "DEFAULT_ORIGIN",
    "CHANNELS",
    "LEAN_TOOLCHAIN_RELEASE",
    "LocalToolchain",
    "RemoteToolchain",
    "ToolchainDesc",
    "UnresolvedToolchain",
    "parse_toolchain_name",
    "from_resolved_str",
    "to_dir_name",
    "from_dir_name",
    "toolchain_sort",
]
