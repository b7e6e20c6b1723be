"""
Release host queries.

Two strategies, split by origin:
- The default origins ('leanprover/lean4' and 'leanprover/lean4-nightly')
  use the JSON release feed, which lists releases per channel, newest first:

      {"stable": [{"name": "v4.9.0",
                   "assets": [{"name": "lean-4.9.0-linux.tar.zst",
                               "browser_download_url": "https://..."}]}],
       "beta": [...],
       "nightly": [...]}

- Any other origin is scraped from its GitHub release pages, which avoids
  the API rate limit. Only 'stable' and 'nightly' can be answered this way.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from elankit.core.config import Cfg
from elankit.core.exceptions import (
    AssetNotFoundError,
    RemoteFetchError,
    UnsupportedChannelError,
)
from elankit.toolchain.descriptor import (
    DEFAULT_ORIGIN,
    NIGHTLY_ORIGIN_SUFFIX,
    RemoteToolchain,
)

logger = logging.getLogger(__name__)

LATEST_TAG_PATTERN = re.compile(r"/tag/([-a-z0-9.]+)")


def is_default_origin(origin: str) -> bool:
    return origin in (DEFAULT_ORIGIN, DEFAULT_ORIGIN + NIGHTLY_ORIGIN_SUFFIX)


def asset_matches(asset_name: str, target: str) -> bool:
    """
    Check whether an asset file name is the build for target.

    A name containing '<target>_' belongs to another architecture of the
    same OS (e.g. 'linux_aarch64' when looking for 'linux').

    Example:
        >>> asset_matches("lean-4.9.0-linux.tar.zst", "linux")
        True
        >>> asset_matches("lean-4.9.0-linux_aarch64.tar.zst", "linux")
        False
    """
    return target in asset_name and f"{target}_" not in asset_name


def fetch_release_feed(cfg: Cfg, allow_network: bool = True) -> Dict[str, List[Dict[str, Any]]]:
    """
    Download and parse the JSON release feed.

    Raises:
        RemoteFetchError: If the feed cannot be fetched or is not valid JSON
    """
    url = cfg.tool_config.release_feed_url
    text = cfg.fetch(url, allow_network=allow_network)
    try:
        feed = json.loads(text)
    except json.JSONDecodeError as e:
        raise RemoteFetchError(f"invalid release feed at '{url}': {e}", url=url) from e

    if not isinstance(feed, dict):
        raise RemoteFetchError(f"invalid release feed at '{url}': not an object", url=url)
    return feed


def fetch_latest_release_tag(
    cfg: Cfg, origin: str, channel: str, allow_network: bool = True
) -> str:
    """
    Find the newest release tag of a channel.

    Args:
        cfg: Session context
        origin: Origin repository
        channel: 'stable', 'beta' or 'nightly'
        allow_network: False makes any fetch fail with NetworkDisabledError

    Returns:
        Release tag, e.g. 'v4.9.0'

    Raises:
        UnsupportedChannelError: For 'beta' on a non-default origin
        RemoteFetchError: If the release host cannot be queried
    """
    if is_default_origin(origin):
        feed = fetch_release_feed(cfg, allow_network=allow_network)
        releases = feed.get(channel) or []
        if not releases or not isinstance(releases[0], dict) or "name" not in releases[0]:
            raise RemoteFetchError(
                f"no releases found for channel '{channel}' in the release feed",
                url=cfg.tool_config.release_feed_url,
            )
        return releases[0]["name"]

    if channel == "beta":
        raise UnsupportedChannelError(channel, origin)

    url = f"{cfg.tool_config.github_url}/{origin}/releases/latest"
    page = cfg.fetch(url, allow_network=allow_network)
    match = LATEST_TAG_PATTERN.search(page)
    if not match:
        raise RemoteFetchError(f"failed to parse latest release tag from '{url}'", url=url)
    return match.group(1)


def fetch_pin_file(cfg: Cfg, origin: str, allow_network: bool = True) -> str:
    """Fetch the 'lean-toolchain' file from the default branch of origin."""
    url = f"{cfg.tool_config.raw_url}/{origin}/HEAD/lean-toolchain"
    return cfg.fetch(url, allow_network=allow_network)


def _feed_asset_url(feed: Dict[str, Any], release: str, target: str) -> Optional[str]:
    for entries in feed.values():
        if not isinstance(entries, list):
            continue
        for entry in entries:
            if not isinstance(entry, dict) or entry.get("name") != release:
                continue
            for asset in entry.get("assets", []):
                if asset_matches(asset.get("name", ""), target):
                    return asset["browser_download_url"]
            raise AssetNotFoundError(target)
    return None


def _scraped_asset_url(cfg: Cfg, desc: RemoteToolchain, target: str) -> str:
    github_url = cfg.tool_config.github_url
    url = f"{github_url}/{desc.origin}/releases/expanded_assets/{desc.release}"
    page = cfg.fetch(url)

    pattern = re.compile(rf'/{re.escape(desc.origin)}/releases/download/[^"]+')
    for link in pattern.findall(page):
        file_name = link.rsplit("/", 1)[-1]
        if asset_matches(file_name, target):
            return github_url + link

    raise AssetNotFoundError(target)


def find_asset_url(cfg: Cfg, desc: RemoteToolchain, target: str) -> str:
    """
    Find the download URL of the release asset for target.

    Default-origin releases missing from the feed (old tags) are looked up
    on the release pages instead.

    Args:
        cfg: Session context
        desc: Resolved remote descriptor
        target: Platform substring, e.g. 'linux' or 'darwin_aarch64'

    Returns:
        Absolute download URL

    Raises:
        AssetNotFoundError: If no asset matches target
        RemoteFetchError: If the release host cannot be queried
    """
    if is_default_origin(desc.origin):
        url = _feed_asset_url(fetch_release_feed(cfg), desc.release, target)
        if url is not None:
            return url
        logger.debug(f"Release {desc.release} not in feed, scraping release page")

    return _scraped_asset_url(cfg, desc, target)


__all__ = [
    "is_default_origin",
    "asset_matches",
    "fetch_release_feed",
    "fetch_latest_release_tag",
    "fetch_pin_file",
    "find_asset_url",
]
