"""Tests for config file I/O helpers."""

from pathlib import Path

import pytest

from vcwatch.domain.entities import Preferences, RememberValue
from vcwatch.shared import config_io
from vcwatch.shared.config_io import (
    get_global_config_path,
    get_local_config_path,
    load_config_data,
    preferences_to_data,
    save_config_data,
)


class TestGlobalConfigPath:
    def test_uses_xdg_config_home(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr(config_io.platform, "system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert get_global_config_path() == tmp_path / "vcwatch" / "config.toml"

    def test_falls_back_to_home_config(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr(config_io.platform, "system", lambda: "Darwin")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)
        assert get_global_config_path() == tmp_path / ".config" / "vcwatch" / "config.toml"

    def test_windows_uses_appdata(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr(config_io.platform, "system", lambda: "Windows")
        monkeypatch.setenv("APPDATA", str(tmp_path))
        assert get_global_config_path() == tmp_path / "vcwatch" / "config.toml"


def test_local_config_path(tmp_path: Path) -> None:
    assert get_local_config_path(tmp_path) == tmp_path / ".vcwatch" / "config.toml"


class TestLoadAndSave:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config_data(tmp_path / "missing.toml")

    def test_malformed_file_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"
        path.write_text("[broken")
        with pytest.raises(ValueError, match="Invalid TOML"):
            load_config_data(path)

    def test_save_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "a" / "b" / "config.toml"
        save_config_data({"watcher": {"enabled": False}}, path)
        assert load_config_data(path) == {"watcher": {"enabled": False}}


def test_preferences_to_data() -> None:
    prefs = Preferences(should_delete=RememberValue.NO)
    assert preferences_to_data(prefs) == {"should_delete": "no", "commit_on_move": "ask"}
