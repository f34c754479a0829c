from pathlib import Path

import pytest

from focus_shield.config import default_socket_path, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FOCUS_SHIELD_SOCKET", "FOCUS_SHIELD_BACKEND", "FOCUS_SHIELD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_RUNTIME_DIR", "/run/user/1000")


def test_defaults_without_file(tmp_path: Path):
    cfg = load_config(tmp_path)
    assert cfg.root == tmp_path
    assert cfg.socket_path == "/run/user/1000/focus_shield.sock"
    assert cfg.backend == "gnome"
    assert cfg.granted is True
    assert cfg.log_level == "INFO"
    assert cfg.settings == {}


def test_default_socket_without_runtime_dir(monkeypatch):
    monkeypatch.delenv("XDG_RUNTIME_DIR")
    assert default_socket_path() == "/tmp/focus_shield.sock"


def test_yaml_values(tmp_path: Path):
    (tmp_path / "config.yaml").write_text(
        """
channel:
  socket_path: /tmp/fs-test.sock
policy:
  backend: memory
  granted: false
  settings:
    general: [systemsettings]
logging:
  level: debug
""",
        encoding="utf-8",
    )
    cfg = load_config(tmp_path)
    assert cfg.socket_path == "/tmp/fs-test.sock"
    assert cfg.backend == "memory"
    assert cfg.granted is False
    assert cfg.log_level == "DEBUG"
    assert cfg.settings == {"general": ["systemsettings"]}


def test_null_socket_path_uses_default(tmp_path: Path):
    (tmp_path / "config.yaml").write_text("channel:\n  socket_path: null\n", encoding="utf-8")
    assert load_config(tmp_path).socket_path == "/run/user/1000/focus_shield.sock"


def test_empty_or_malformed_sections(tmp_path: Path):
    (tmp_path / "config.yaml").write_text("channel: 3\npolicy: [a, b]\n", encoding="utf-8")
    cfg = load_config(tmp_path)
    assert cfg.backend == "gnome"
    assert cfg.socket_path == "/run/user/1000/focus_shield.sock"


def test_env_overrides(tmp_path: Path, monkeypatch):
    (tmp_path / "config.yaml").write_text("policy:\n  backend: gnome\n", encoding="utf-8")
    monkeypatch.setenv("FOCUS_SHIELD_SOCKET", "/tmp/override.sock")
    monkeypatch.setenv("FOCUS_SHIELD_BACKEND", "memory")
    monkeypatch.setenv("FOCUS_SHIELD_LOG_LEVEL", "warning")
    cfg = load_config(tmp_path)
    assert cfg.socket_path == "/tmp/override.sock"
    assert cfg.backend == "memory"
    assert cfg.log_level == "WARNING"


@pytest.mark.parametrize("value", ['"false"', "0", "yes please"])
def test_granted_must_be_boolean(tmp_path: Path, value: str):
    (tmp_path / "config.yaml").write_text(f"policy:\n  backend: memory\n  granted: {value}\n", encoding="utf-8")
    with pytest.raises(ValueError, match="policy.granted"):
        load_config(tmp_path)
