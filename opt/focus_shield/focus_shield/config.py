from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


def default_socket_path() -> str:
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR") or "/tmp"
    return os.path.join(runtime_dir, "focus_shield.sock")


@dataclass(frozen=True)
class EngineConfig:
    root: Path
    socket_path: str
    backend: str
    granted: bool
    log_level: str
    settings: dict[str, Any] = field(default_factory=dict)


def _section(raw: Any, name: str) -> dict[str, Any]:
    value = raw.get(name, {}) if isinstance(raw, dict) else {}
    return value if isinstance(value, dict) else {}


def load_config(root: Path) -> EngineConfig:
    cfg_path = root / "config.yaml"
    raw: dict[str, Any] = {}
    if cfg_path.exists():
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}

    channel = _section(raw, "channel")
    policy = _section(raw, "policy")
    logging_cfg = _section(raw, "logging")

    socket_path = str(channel.get("socket_path") or default_socket_path())
    backend = str(policy.get("backend", "gnome"))
    granted = policy.get("granted", True)
    if not isinstance(granted, bool):
        raise ValueError(f"policy.granted must be true or false, got {granted!r}")
    settings = policy.get("settings", {})
    log_level = str(logging_cfg.get("level", "INFO"))

    # Env overrides (dev-friendly)
    socket_path = os.environ.get("FOCUS_SHIELD_SOCKET", socket_path)
    backend = os.environ.get("FOCUS_SHIELD_BACKEND", backend)
    log_level = os.environ.get("FOCUS_SHIELD_LOG_LEVEL", log_level)

    return EngineConfig(
        root=root,
        socket_path=socket_path,
        backend=backend,
        granted=granted,
        log_level=log_level.upper(),
        settings=dict(settings) if isinstance(settings, dict) else {},
    )
