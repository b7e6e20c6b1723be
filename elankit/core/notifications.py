"""
Typed notifications emitted while resolving and installing toolchains.

Components never print. They emit a Notification (an Event plus its data)
to the Observer held by the session; the presentation layer decides what to
do with it. LoggingObserver is the default and routes events through the
standard logging module at the level attached to each event.

Example:
    >>> observer = LoggingObserver()
    >>> observer.on_event(Notification(Event.INSTALLED_TOOLCHAIN, toolchain="x"))
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class NotificationLevel(IntEnum):
    """Severity of a notification, aligned with logging levels."""

    VERBOSE = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR


class Event(Enum):
    """Every kind of notification together with its message template."""

    SET_DEFAULT_TOOLCHAIN = ("default toolchain set to '{toolchain}'", NotificationLevel.INFO)
    SET_OVERRIDE_TOOLCHAIN = (
        "override toolchain for '{path}' set to '{toolchain}'",
        NotificationLevel.INFO,
    )
    LOOKING_FOR_TOOLCHAIN = ("looking for installed toolchain '{toolchain}'", NotificationLevel.VERBOSE)
    TOOLCHAIN_DIRECTORY = ("toolchain directory: '{path}'", NotificationLevel.VERBOSE)
    INSTALLING_TOOLCHAIN = ("installing toolchain '{toolchain}'", NotificationLevel.INFO)
    INSTALLED_TOOLCHAIN = ("toolchain '{toolchain}' installed", NotificationLevel.INFO)
    USING_EXISTING_TOOLCHAIN = ("using existing install for '{toolchain}'", NotificationLevel.INFO)
    USING_EXISTING_RELEASE = (
        "failed to query latest release, using existing version '{toolchain}'",
        NotificationLevel.WARN,
    )
    UNINSTALLING_TOOLCHAIN = ("uninstalling toolchain '{toolchain}'", NotificationLevel.INFO)
    UNINSTALLED_TOOLCHAIN = ("toolchain '{toolchain}' uninstalled", NotificationLevel.INFO)
    TOOLCHAIN_NOT_INSTALLED = ("no toolchain installed for '{toolchain}'", NotificationLevel.INFO)
    RESOLVING_CHANNEL = ("syncing channel updates for '{channel}' of '{origin}'", NotificationLevel.VERBOSE)
    RESOLVED_CHANNEL = ("latest update on {channel}, lean version {release}", NotificationLevel.VERBOSE)
    WAITING_FOR_LOCK = (
        "waiting for previous installation request to finish ({holder})",
        NotificationLevel.INFO,
    )
    DOWNLOADING_COMPONENT = ("downloading component '{component}'", NotificationLevel.INFO)
    DOWNLOADING_FILE = ("downloading file from: '{url}'", NotificationLevel.VERBOSE)
    DOWNLOAD_PROGRESS = ("{progress}", NotificationLevel.VERBOSE)
    DOWNLOAD_FINISHED = ("download finished: '{path}'", NotificationLevel.VERBOSE)
    INSTALLING_COMPONENT = ("installing component '{component}'", NotificationLevel.INFO)
    EXTRACTING_ARCHIVE = ("extracting '{archive}' to '{path}'", NotificationLevel.VERBOSE)
    REMOVING_STALE_STAGING = ("removing stale staging directory '{path}'", NotificationLevel.VERBOSE)
    ADDED_PROJECT_ROOT = ("recorded project root '{path}'", NotificationLevel.VERBOSE)
    NON_FATAL_ERROR = ("{error}", NotificationLevel.ERROR)

    def __init__(self, template: str, level: NotificationLevel):
        self.template = template
        self.level = level


class Notification:
    """One emitted event with the values its template refers to."""

    def __init__(self, event: Event, **data: Any):
        self.event = event
        self.data: Dict[str, Any] = data

    @property
    def level(self) -> NotificationLevel:
        return self.event.level

    @property
    def message(self) -> str:
        return self.event.template.format(**self.data)

    def __repr__(self) -> str:
        return f"Notification({self.event.name}, {self.data!r})"


class Observer(ABC):
    """Receives notifications from elankit components."""

    @abstractmethod
    def on_event(self, notification: Notification) -> None:
        """
        Handle a single notification.

        Args:
            notification: The emitted notification
        """
        pass


class LoggingObserver(Observer):
    """Forward notifications to a logger at the event's level."""

    def __init__(self, target: logging.Logger = logger):
        self.target = target

    def on_event(self, notification: Notification) -> None:
        self.target.log(int(notification.level), notification.message)


class RecordingObserver(Observer):
    """Keep every notification in memory (used by dump-state and tests)."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def on_event(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def events(self) -> List[Event]:
        return [n.event for n in self.notifications]


__all__ = [
    "NotificationLevel",
    "Event",
    "Notification",
    "Observer",
    "LoggingObserver",
    "RecordingObserver",
]
