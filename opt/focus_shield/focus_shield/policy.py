from __future__ import annotations

import logging
import shutil
import subprocess
from enum import Enum, IntEnum
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

GNOME_SCHEMA = "org.gnome.desktop.notifications"
GNOME_KEY = "show-banners"


class InterruptionMode(IntEnum):
    """Notification filter levels, numbered the way the host platform numbers them."""

    UNKNOWN = 0
    ALL = 1
    PRIORITY = 2
    NONE = 3
    ALARMS = 4


class SettingsScreen(str, Enum):
    NOTIFICATION_POLICY_ACCESS = "notification_policy_access"
    GENERAL = "general"


class PolicyError(Exception):
    pass


class NotificationPolicy(Protocol):
    def is_permission_granted(self) -> bool: ...
    def set_interruption_filter(self, mode: int) -> None: ...
    def resolve_settings(self, screen: SettingsScreen) -> bool: ...
    def launch_settings(self, screen: SettingsScreen, *, new_task: bool = False) -> None: ...


class MemoryNotificationPolicy:
    """
    In-process stand-in for the OS notification service.

    Keeps the permission flag and the current filter in memory and records
    every mutation and navigation so callers can inspect them afterwards.
    """

    def __init__(
        self,
        *,
        granted: bool = True,
        interruption_filter: int = InterruptionMode.ALL,
        resolvable: Optional[set[SettingsScreen]] = None,
        launch_error: Optional[Exception] = None,
    ) -> None:
        self.granted = granted
        self.interruption_filter = int(interruption_filter)
        self.resolvable: set[SettingsScreen] = (
            set(SettingsScreen) if resolvable is None else set(resolvable)
        )
        self.launch_error = launch_error
        self.filter_calls: list[int] = []
        self.launched: list[tuple[SettingsScreen, bool]] = []

    def is_permission_granted(self) -> bool:
        return self.granted

    def set_interruption_filter(self, mode: int) -> None:
        self.filter_calls.append(mode)
        self.interruption_filter = mode

    def resolve_settings(self, screen: SettingsScreen) -> bool:
        return screen in self.resolvable

    def launch_settings(self, screen: SettingsScreen, *, new_task: bool = False) -> None:
        if self.launch_error is not None:
            raise self.launch_error
        self.launched.append((screen, new_task))


DEFAULT_GNOME_SETTINGS: dict[SettingsScreen, list[str]] = {
    SettingsScreen.NOTIFICATION_POLICY_ACCESS: ["gnome-control-center", "notifications"],
    SettingsScreen.GENERAL: ["gnome-control-center"],
}


class GnomeNotificationPolicy:
    """
    GNOME desktop backend.

    DND maps onto the `show-banners` key: banners hidden means notifications
    are suppressed. Permission means the key exists and is writable for the
    current user.
    """

    def __init__(self, settings_commands: Optional[dict[SettingsScreen, list[str]]] = None) -> None:
        self._settings_commands = dict(DEFAULT_GNOME_SETTINGS)
        if settings_commands:
            self._settings_commands.update(settings_commands)

    def _gsettings(self, *args: str) -> str:
        cmd = ["gsettings", *args]
        try:
            proc = subprocess.run(cmd, check=True, capture_output=True, text=True, timeout=5)
        except (OSError, subprocess.SubprocessError) as e:
            raise PolicyError(f"gsettings {' '.join(args)} failed: {e}") from e
        return proc.stdout.strip()

    def is_permission_granted(self) -> bool:
        if shutil.which("gsettings") is None:
            return False
        try:
            return self._gsettings("writable", GNOME_SCHEMA, GNOME_KEY) == "true"
        except PolicyError as e:
            logger.debug("permission probe failed: %s", e)
            return False

    def set_interruption_filter(self, mode: int) -> None:
        if mode == InterruptionMode.ALL:
            value = "true"
        elif mode in (InterruptionMode.PRIORITY, InterruptionMode.NONE, InterruptionMode.ALARMS):
            value = "false"
        else:
            raise PolicyError(f"unsupported interruption filter: {mode}")
        self._gsettings("set", GNOME_SCHEMA, GNOME_KEY, value)
        logger.info("interruption filter set to %s (%s=%s)", mode, GNOME_KEY, value)

    def resolve_settings(self, screen: SettingsScreen) -> bool:
        cmd = self._settings_commands.get(screen) or []
        return bool(cmd) and shutil.which(cmd[0]) is not None

    def launch_settings(self, screen: SettingsScreen, *, new_task: bool = False) -> None:
        cmd = self._settings_commands[screen]
        subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=new_task,
        )
        logger.info("launched %s settings: %s", screen.value, " ".join(cmd))


def _settings_commands_from_config(raw: dict[str, Any]) -> dict[SettingsScreen, list[str]]:
    out: dict[SettingsScreen, list[str]] = {}
    for key, cmd in raw.items():
        try:
            screen = SettingsScreen(key)
        except ValueError as e:
            raise ValueError(f"unknown settings screen: {key}") from e
        if isinstance(cmd, str):
            cmd = cmd.split()
        if not isinstance(cmd, list) or not cmd:
            raise ValueError(f"settings command for {key} must be a non-empty list")
        out[screen] = [str(c) for c in cmd]
    return out


def create_policy(backend: str, *, granted: bool = True, settings: Optional[dict[str, Any]] = None) -> NotificationPolicy:
    if backend == "memory":
        return MemoryNotificationPolicy(granted=granted)
    if backend == "gnome":
        return GnomeNotificationPolicy(_settings_commands_from_config(settings or {}))
    raise ValueError(f"unknown policy backend: {backend}")
