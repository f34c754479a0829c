from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from focus_shield.policy import InterruptionMode, NotificationPolicy, SettingsScreen

logger = logging.getLogger(__name__)

CHANNEL = "focus_shield"

DENIED = "DENIED"
UNAVAILABLE = "UNAVAILABLE"
INTENT_ERROR = "INTENT_ERROR"
INVALID_ARGUMENT = "INVALID_ARGUMENT"


class Command(str, Enum):
    HAS_DND_PERMISSION = "hasDNDPermission"
    IS_GRANTED = "isGranted"
    OPEN_DNP_SETTINGS = "openDNPSettings"
    OPEN_SETTINGS = "openSettings"
    ENABLE_DND = "enableDND"
    DISABLE_DND = "disableDND"
    SET_DND = "setDnd"


@dataclass(frozen=True)
class CommandError:
    kind: str
    message: Optional[str] = None
    details: Any = None


@dataclass(frozen=True)
class CommandResult:
    value: Any = None
    error: Optional[CommandError] = None
    not_implemented: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.not_implemented

    @classmethod
    def success(cls, value: Any = True) -> "CommandResult":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: str, message: Optional[str] = None) -> "CommandResult":
        return cls(error=CommandError(kind=kind, message=message))

    @classmethod
    def unimplemented(cls) -> "CommandResult":
        return cls(not_implemented=True)

    def to_payload(self) -> dict[str, Any]:
        if self.not_implemented:
            return {"ok": False, "not_implemented": True}
        if self.error is not None:
            return {
                "ok": False,
                "error": {
                    "code": self.error.kind,
                    "message": self.error.message,
                    "details": self.error.details,
                },
            }
        return {"ok": True, "result": self.value}


Handler = Callable[[dict[str, Any]], CommandResult]


class DndBridge:
    """
    Dispatches channel commands onto the notification policy service.

    Every command is a single synchronous call into `policy`; the bridge keeps
    no state of its own, so permission is re-read on every gated request.
    """

    name = CHANNEL

    def __init__(self, policy: NotificationPolicy) -> None:
        self._policy = policy
        self._handlers: dict[Command, Handler] = {
            Command.HAS_DND_PERMISSION: self._has_permission,
            Command.IS_GRANTED: self._has_permission,
            Command.OPEN_DNP_SETTINGS: self._open_dnp_settings,
            Command.OPEN_SETTINGS: self._open_settings,
            Command.ENABLE_DND: self._enable,
            Command.DISABLE_DND: self._disable,
            Command.SET_DND: self._set_dnd,
        }

    @property
    def commands(self) -> list[str]:
        return [c.value for c in Command]

    def handle(self, method: str, arguments: Optional[dict[str, Any]] = None) -> CommandResult:
        try:
            command = Command(method)
        except ValueError:
            logger.debug("not implemented: %r", method)
            return CommandResult.unimplemented()

        logger.debug("%s %s", command.value, arguments or {})
        return self._handlers[command](arguments or {})

    def _has_permission(self, arguments: dict[str, Any]) -> CommandResult:
        return CommandResult.success(bool(self._policy.is_permission_granted()))

    def _open_dnp_settings(self, arguments: dict[str, Any]) -> CommandResult:
        try:
            # Dedicated screen first, general settings as fallback.
            for screen in (SettingsScreen.NOTIFICATION_POLICY_ACCESS, SettingsScreen.GENERAL):
                if self._policy.resolve_settings(screen):
                    self._policy.launch_settings(screen)
                    return CommandResult.success(True)
            logger.warning("no settings screen available")
            return CommandResult.failure(UNAVAILABLE, "No settings activity found")
        except Exception as e:  # noqa: BLE001
            logger.warning("settings navigation failed: %s", e)
            return CommandResult.failure(INTENT_ERROR, f"Failed to open DND settings: {e}")

    def _open_settings(self, arguments: dict[str, Any]) -> CommandResult:
        self._policy.launch_settings(SettingsScreen.NOTIFICATION_POLICY_ACCESS, new_task=True)
        return CommandResult.success(True)

    def _apply_filter(self, mode: int) -> CommandResult:
        if not self._policy.is_permission_granted():
            logger.warning("DND access not granted; filter %s not applied", mode)
            return CommandResult.failure(DENIED, "DND access not granted")
        self._policy.set_interruption_filter(mode)
        return CommandResult.success(True)

    def _enable(self, arguments: dict[str, Any]) -> CommandResult:
        return self._apply_filter(InterruptionMode.NONE)

    def _disable(self, arguments: dict[str, Any]) -> CommandResult:
        return self._apply_filter(InterruptionMode.ALL)

    def _set_dnd(self, arguments: dict[str, Any]) -> CommandResult:
        mode = arguments.get("mode")
        if mode is None:
            mode = InterruptionMode.ALL
        elif isinstance(mode, bool) or not isinstance(mode, int):
            return CommandResult.failure(INVALID_ARGUMENT, f"mode must be an integer, got {mode!r}")
        return self._apply_filter(mode)
