"""
Session context threaded through every elankit operation.

A Cfg is built once per process (see Cfg.from_env) and passed by reference.
It owns:
- the elan home layout (toolchains, tmp, bin, settings, known-projects)
- the settings file handle
- the ELAN_TOOLCHAIN environment override
- the HTTP session used for every fetch and download
- the notification observer
- the tool configuration read from '<home>/config.yaml'

Example config.yaml:
    release_feed_url: https://release.lean-lang.org/
    github_url: https://github.com
    raw_url: https://raw.githubusercontent.com
    lock_poll_interval: 1.0
    request_timeout: 30
    offline: false
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

import requests
import yaml

from elankit.core.directory import get_elan_home
from elankit.core.download import DownloadProgress, download_file, fetch_url
from elankit.core.exceptions import InvalidConfigFileError, NetworkDisabledError
from elankit.core.locking import LOCK_POLL_INTERVAL
from elankit.core.notifications import Event, LoggingObserver, Notification, Observer
from elankit.core.settings import SettingsFile

logger = logging.getLogger(__name__)

# Shared bound for 'lean-toolchain' pin recursion and proxy self-invocation
RECURSION_COUNT_MAX = 20

ELAN_HOME_ENV = "ELAN_HOME"
ELAN_TOOLCHAIN_ENV = "ELAN_TOOLCHAIN"
RECURSION_COUNT_ENV = "LEAN_RECURSION_COUNT"

DEFAULT_RELEASE_FEED_URL = "https://release.lean-lang.org/"
DEFAULT_GITHUB_URL = "https://github.com"
DEFAULT_RAW_URL = "https://raw.githubusercontent.com"


@dataclass
class ToolConfig:
    """
    Tool configuration from config.yaml.

    Attributes:
        release_feed_url: JSON release feed for the default origin
        github_url: Release host for custom origins
        raw_url: Host serving raw repository files (lean-toolchain pins)
        lock_poll_interval: Seconds between install lock attempts
        request_timeout: HTTP timeout in seconds
        offline: Never touch the network when True
    """

    release_feed_url: str = DEFAULT_RELEASE_FEED_URL
    github_url: str = DEFAULT_GITHUB_URL
    raw_url: str = DEFAULT_RAW_URL
    lock_poll_interval: float = LOCK_POLL_INTERVAL
    request_timeout: int = 30
    offline: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Path) -> "ToolConfig":
        values = {}
        for key, value in data.items():
            if key not in _CONFIG_TYPES:
                logger.debug(f"Ignoring unknown key '{key}' in {source}")
                continue
            expected = _CONFIG_TYPES[key]
            # bool is an int subclass
            if (isinstance(value, bool) and expected is not bool) or not isinstance(
                value, expected
            ):
                raise InvalidConfigFileError(
                    source, f"'{key}' has the wrong type ({type(value).__name__})"
                )
            values[key] = value
        return cls(**values)


_CONFIG_TYPES = {
    "release_feed_url": str,
    "github_url": str,
    "raw_url": str,
    "lock_poll_interval": (int, float),
    "request_timeout": int,
    "offline": bool,
}


def load_tool_config(config_file: Path) -> ToolConfig:
    """
    Load config.yaml, returning defaults when it does not exist.

    Args:
        config_file: Path to config.yaml

    Returns:
        Parsed tool configuration

    Raises:
        InvalidConfigFileError: If the YAML is malformed or not a mapping
    """
    if not config_file.exists():
        logger.debug(f"Config file not found (optional): {config_file}")
        return ToolConfig()

    logger.debug(f"Loading configuration from {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidConfigFileError(config_file, f"invalid YAML: {e}") from e

    data = data or {}
    if not isinstance(data, dict):
        raise InvalidConfigFileError(config_file, "expected a mapping at top level")

    return ToolConfig.from_dict(data, config_file)


class Cfg:
    """
    Explicit per-process context for elankit operations.

    Args:
        elan_home: Root of the elan home directory
        observer: Receives notifications (defaults to LoggingObserver)
        env_override: Value of ELAN_TOOLCHAIN, if any
        tool_config: Tool configuration (defaults to config.yaml in elan_home)
        session: HTTP session to use (created lazily otherwise)
        recursion_count: Current proxy recursion depth
    """

    def __init__(
        self,
        elan_home: Path,
        observer: Optional[Observer] = None,
        env_override: Optional[str] = None,
        tool_config: Optional[ToolConfig] = None,
        session: Optional[requests.Session] = None,
        recursion_count: int = 0,
    ):
        self.elan_home = Path(elan_home)
        self.toolchains_dir = self.elan_home / "toolchains"
        self.temp_dir = self.elan_home / "tmp"
        self.bin_dir = self.elan_home / "bin"
        self.known_projects_file = self.elan_home / "known-projects"
        self.config_file = self.elan_home / "config.yaml"
        self.settings_file = SettingsFile(self.elan_home / "settings.toml")

        self.observer = observer or LoggingObserver()
        self.env_override = env_override or None
        self.tool_config = tool_config or load_tool_config(self.config_file)
        self.recursion_count = recursion_count
        self._session = session

    @classmethod
    def from_env(
        cls,
        observer: Optional[Observer] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Cfg":
        """
        Build a Cfg from ELAN_HOME, ELAN_TOOLCHAIN and LEAN_RECURSION_COUNT.

        Args:
            observer: Notification observer
            environ: Environment mapping (defaults to os.environ)
        """
        environ = os.environ if environ is None else environ

        home = environ.get(ELAN_HOME_ENV)
        elan_home = Path(home).absolute() if home else get_elan_home()

        try:
            recursion_count = int(environ.get(RECURSION_COUNT_ENV, "0"))
        except ValueError:
            logger.debug(f"Ignoring invalid {RECURSION_COUNT_ENV}")
            recursion_count = 0

        return cls(
            elan_home,
            observer=observer,
            env_override=environ.get(ELAN_TOOLCHAIN_ENV),
            recursion_count=recursion_count,
        )

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def allow_network(self) -> bool:
        return not self.tool_config.offline

    def notify(self, event: Event, **data: Any) -> None:
        """Emit a notification to the session observer."""
        self.observer.on_event(Notification(event, **data))

    def fetch(self, url: str, allow_network: bool = True) -> str:
        """
        Fetch a URL as text through the session.

        Raises:
            NetworkDisabledError: If network access is disabled
            RemoteFetchError: If the request fails
        """
        if not (allow_network and self.allow_network):
            raise NetworkDisabledError(url)
        return fetch_url(url, session=self.session, timeout=self.tool_config.request_timeout)

    def download(
        self,
        url: str,
        destination: Path,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> Path:
        """
        Download a file through the session.

        Raises:
            NetworkDisabledError: If network access is disabled
            RemoteFetchError: If the download fails
        """
        if not self.allow_network:
            raise NetworkDisabledError(url)
        return download_file(
            url,
            destination,
            progress_callback=progress_callback,
            session=self.session,
            timeout=self.tool_config.request_timeout,
        )

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None


__all__ = [
    "RECURSION_COUNT_MAX",
    "ELAN_HOME_ENV",
    "ELAN_TOOLCHAIN_ENV",
    "RECURSION_COUNT_ENV",
    "ToolConfig",
    "load_tool_config",
    "Cfg",
]
