"""Tests for configuration loading and settings resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from gitissue.config import (
    Settings,
    default_config,
    get_config_path,
    load_config,
    resolve_settings,
    save_config,
)

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GIT_ISSUE_STRICT", raising=False)
    monkeypatch.delenv("GIT_ISSUE_RELEASE", raising=False)


class TestConfigFile:
    """Test reading and writing config.toml."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """Test that saved config loads back."""
        save_config(tmp_path, {"strict_compatibility": True, "editor": "nano"})
        assert load_config(tmp_path) == {"strict_compatibility": True, "editor": "nano"}

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test that a missing config is empty."""
        assert load_config(tmp_path) == {}

    def test_unreadable_file_is_ignored(
        self,
        tmp_path: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Test that invalid TOML logs a warning and yields defaults."""
        get_config_path(tmp_path).write_text("not = [valid")
        assert load_config(tmp_path) == {}
        assert "Ignoring unreadable config" in caplog.text

    def test_default_config(self) -> None:
        """Test the keys written by init."""
        assert default_config() == {"strict_compatibility": False, "release": False}


class TestResolveSettings:
    """Test settings precedence."""

    def test_defaults(self) -> None:
        """Test that nothing configured means all defaults."""
        assert resolve_settings() == Settings()

    def test_config_file(self, tmp_path: Path) -> None:
        """Test that config values apply without overrides."""
        save_config(tmp_path, {"strict_compatibility": True, "editor": "nano"})
        settings = resolve_settings(tmp_path)
        assert settings.strict is True
        assert settings.editor == "nano"

    def test_env_beats_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that the environment overrides the config file."""
        save_config(tmp_path, {"strict_compatibility": True})
        monkeypatch.setenv("GIT_ISSUE_STRICT", "0")
        assert resolve_settings(tmp_path).strict is False

    def test_flag_beats_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that an explicit flag overrides the environment."""
        monkeypatch.setenv("GIT_ISSUE_RELEASE", "yes")
        assert resolve_settings(release=False).release is False
        assert resolve_settings().release is True

    def test_invalid_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a non-boolean environment value is rejected."""
        monkeypatch.setenv("GIT_ISSUE_STRICT", "maybe")
        with pytest.raises(ValueError, match="GIT_ISSUE_STRICT"):
            resolve_settings()

    def test_invalid_config_value(self, tmp_path: Path) -> None:
        """Test that a non-boolean config value is rejected."""
        save_config(tmp_path, {"release": "sometimes"})
        with pytest.raises(ValueError, match="release"):
            resolve_settings(tmp_path)
