from __future__ import annotations

from pathlib import Path

import pytest

from message_store.config import DEFAULTS, load_config


def test_missing_file_falls_back_to_defaults(tmp_path: Path, clean_env):
    cfg = load_config(str(tmp_path / "nope.yaml"))
    assert cfg == DEFAULTS
    # defaults must not be shared with callers
    cfg["store"]["path"] = "elsewhere"
    assert DEFAULTS["store"]["path"] == "data/sdb.yaml"


def test_file_values_merge_over_defaults(tmp_path: Path, clean_env):
    path = tmp_path / "cfg.yaml"
    path.write_text("store:\n  snapshot_interval: 10\ntable:\n  timezone: UTC\n", encoding="utf-8")
    cfg = load_config(str(path))
    assert cfg["store"] == {"path": "data/sdb.yaml", "snapshot_interval": 10}
    assert cfg["table"]["timezone"] == "UTC"
    assert cfg["table"]["namespace"] == "messages"


def test_env_path_and_overrides(tmp_path: Path, clean_env, monkeypatch: pytest.MonkeyPatch):
    path = tmp_path / "cfg.yaml"
    path.write_text("store:\n  path: from-file.yaml\n", encoding="utf-8")
    monkeypatch.setenv("MESSAGE_STORE_CONFIG", str(path))
    monkeypatch.setenv("MESSAGE_STORE__STORE__SNAPSHOT_INTERVAL", "2.5")
    monkeypatch.setenv("MESSAGE_STORE__TABLE__NAMESPACE", "chat")
    monkeypatch.setenv("MESSAGE_STORE__SERVER__DEBUG", "true")

    cfg = load_config()
    assert cfg["store"]["path"] == "from-file.yaml"
    assert cfg["store"]["snapshot_interval"] == 2.5
    assert cfg["table"]["namespace"] == "chat"
    assert cfg["server"]["debug"] is True


def test_bad_yaml_raises(tmp_path: Path, clean_env):
    path = tmp_path / "cfg.yaml"
    path.write_text("store: [oops\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_non_mapping_raises(tmp_path: Path, clean_env):
    path = tmp_path / "cfg.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(RuntimeError):
        load_config(str(path))


def test_shipped_default_config_loads(clean_env):
    root = Path(__file__).resolve().parent.parent
    cfg = load_config(str(root / "config" / "default.yaml"))
    assert cfg["store"]["snapshot_interval"] == 300
    assert cfg["table"]["timezone"] is None
