"""
Resolution of toolchain names to concrete descriptors.

Parsing turns a raw name into an UnresolvedToolchain; resolution then
replaces a floating release ('stable', 'beta', 'nightly') with the latest
tag from the release host and follows 'lean-toolchain' pins of the origin
repository. Concrete tags resolve without any network access.

When the release host cannot be reached, resolution may fall back to the
newest installed toolchain of the same channel (allow_cache_fallback).
"""

import logging
from typing import List, Optional

from packaging.version import InvalidVersion, Version

from elankit.core.config import RECURSION_COUNT_MAX, Cfg
from elankit.core.exceptions import ElanError, RemoteFetchError
from elankit.core.notifications import Event
from elankit.toolchain.descriptor import (
    CHANNELS,
    LEAN_TOOLCHAIN_RELEASE,
    LocalToolchain,
    RemoteToolchain,
    ToolchainDesc,
    UnresolvedToolchain,
    from_dir_name,
    parse_toolchain_name,
    toolchain_sort,
)
from elankit.toolchain.releases import fetch_latest_release_tag, fetch_pin_file
from elankit.toolchain.toolchain import Toolchain

logger = logging.getLogger(__name__)


def lookup_unresolved_toolchain(cfg: Cfg, name: str) -> UnresolvedToolchain:
    """
    Parse a raw toolchain name.

    A linked toolchain named exactly `name` takes precedence over any remote
    interpretation, so users can link a toolchain under a channel name.

    Raises:
        InvalidToolchainNameError: If name does not match the name grammar
    """
    parsed = parse_toolchain_name(name)

    local = Toolchain(cfg, LocalToolchain(name))
    if local.exists() and local.is_custom():
        logger.debug(f"'{name}' refers to linked toolchain {local.path}")
        return UnresolvedToolchain(LocalToolchain(name))

    return parsed


def resolve_toolchain(
    cfg: Cfg,
    unresolved: UnresolvedToolchain,
    allow_network: bool = True,
    allow_cache_fallback: bool = False,
    depth: int = 0,
) -> ToolchainDesc:
    """
    Resolve channels and 'lean-toolchain' pins to a concrete descriptor.

    Args:
        cfg: Session context
        unresolved: Parsed descriptor
        allow_network: False makes every remote query fail
        allow_cache_fallback: Substitute the newest matching installed
            toolchain when a channel cannot be queried
        depth: Current 'lean-toolchain' recursion depth

    Returns:
        Concrete descriptor

    Raises:
        RemoteFetchError: If a remote query fails and no fallback applies
        UnsupportedChannelError: For 'beta' on a non-default origin
        ElanError: If 'lean-toolchain' pins recurse too deeply
    """
    desc = unresolved.desc
    if not isinstance(desc, RemoteToolchain):
        return desc

    if desc.release == LEAN_TOOLCHAIN_RELEASE:
        if depth >= RECURSION_COUNT_MAX:
            raise ElanError(
                f"'lean-toolchain' pins of '{desc.origin}' nested more than "
                f"{RECURSION_COUNT_MAX} levels deep"
            )
        text = fetch_pin_file(cfg, desc.origin, allow_network=allow_network)
        name = text.strip().splitlines()[0].strip() if text.strip() else ""
        logger.debug(f"'{desc.origin}' pins toolchain '{name}'")
        return resolve_toolchain(
            cfg,
            lookup_unresolved_toolchain(cfg, name),
            allow_network=allow_network,
            allow_cache_fallback=allow_cache_fallback,
            depth=depth + 1,
        )

    if desc.release not in CHANNELS:
        return desc

    channel = desc.release
    cfg.notify(Event.RESOLVING_CHANNEL, channel=channel, origin=desc.origin)
    try:
        release = fetch_latest_release_tag(
            cfg, desc.origin, channel, allow_network=allow_network
        )
    except RemoteFetchError:
        if allow_cache_fallback:
            fallback = find_latest_local_toolchain(cfg, desc.origin, channel)
            if fallback is not None:
                cfg.notify(Event.USING_EXISTING_RELEASE, toolchain=fallback)
                return fallback
        raise

    cfg.notify(Event.RESOLVED_CHANNEL, channel=channel, release=release)
    return RemoteToolchain(desc.origin, release, from_channel=channel)


def lookup_toolchain(cfg: Cfg, name: str) -> ToolchainDesc:
    """Parse and resolve a raw name, querying the network without fallback."""
    return resolve_toolchain(cfg, lookup_unresolved_toolchain(cfg, name))


def resolve_default(
    cfg: Cfg, allow_network: bool = True, allow_cache_fallback: bool = False
) -> Optional[ToolchainDesc]:
    """Resolve the configured default toolchain, if one is set."""
    name = cfg.settings_file.load().default_toolchain
    if not name:
        return None
    return resolve_toolchain(
        cfg,
        lookup_unresolved_toolchain(cfg, name),
        allow_network=allow_network,
        allow_cache_fallback=allow_cache_fallback,
    )


def list_toolchains(cfg: Cfg) -> List[ToolchainDesc]:
    """Installed toolchains decoded from directory names, sorted."""
    if not cfg.toolchains_dir.is_dir():
        return []

    descs = []
    for entry in cfg.toolchains_dir.iterdir():
        if entry.name.endswith((".lock", ".tmp", ".pid")):
            continue
        if entry.is_dir() or entry.is_symlink():
            descs.append(from_dir_name(entry.name))
    return toolchain_sort(descs)


def _matches_channel(release: str, channel: str) -> bool:
    if channel == "nightly":
        return release.startswith("nightly")

    if not release.startswith("v"):
        return False
    try:
        version = Version(release[1:])
    except InvalidVersion:
        return False
    return version.is_prerelease == (channel == "beta")


def find_latest_local_toolchain(
    cfg: Cfg, origin: str, channel: str
) -> Optional[RemoteToolchain]:
    """
    Newest installed toolchain of origin that channel could have produced.

    Nightly releases are recognized by their 'nightly' prefix; stable and
    beta releases are 'v'-prefixed versions, beta being pre-releases.
    """
    candidates = [
        desc
        for desc in list_toolchains(cfg)
        if isinstance(desc, RemoteToolchain)
        and desc.origin == origin
        and _matches_channel(desc.release, channel)
    ]
    if not candidates:
        return None

    best = toolchain_sort(candidates)[-1]
    return RemoteToolchain(best.origin, best.release, from_channel=channel)


__all__ = [
    "lookup_unresolved_toolchain",
    "resolve_toolchain",
    "lookup_toolchain",
    "resolve_default",
    "list_toolchains",
    "find_latest_local_toolchain",
]
