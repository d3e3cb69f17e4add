"""
Unit tests for interpkit.core.directory module.

Tests cover:
- Home directory resolution and the INTERPKIT_HOME override
- HomeLayout paths and directory creation
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from interpkit.core.directory import HOME_ENV_VAR, HomeLayout, get_home_dir
from interpkit.core.exceptions import ConfigError


class TestGetHomeDir:
    """Tests for get_home_dir function."""

    def test_env_override(self, tmp_path, monkeypatch):
        """Test INTERPKIT_HOME wins over the platform default."""
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path / "custom"))

        assert get_home_dir() == tmp_path / "custom"

    def test_linux_path(self, monkeypatch):
        """Test default home directory on Linux/macOS."""
        if os.name == "nt":
            pytest.skip("Cannot test PosixPath on Windows")
        monkeypatch.delenv(HOME_ENV_VAR, raising=False)
        with patch("pathlib.Path.home", return_value=Path("/home/testuser")):
            assert get_home_dir() == Path("/home/testuser/.interpkit")

    def test_windows_missing_userprofile(self, monkeypatch):
        """Test missing USERPROFILE on Windows raises ConfigError."""
        monkeypatch.delenv(HOME_ENV_VAR, raising=False)
        monkeypatch.delenv("USERPROFILE", raising=False)
        with patch("interpkit.core.directory.os.name", "nt"):
            with pytest.raises(ConfigError, match="USERPROFILE"):
                get_home_dir()


class TestHomeLayout:
    """Tests for HomeLayout."""

    def test_paths(self, tmp_path):
        layout = HomeLayout(tmp_path)

        assert layout.store_dir == tmp_path / "py"
        assert layout.downloads_dir == tmp_path / "downloads"
        assert layout.lock_dir == tmp_path / "lock"
        assert layout.registry_file == tmp_path / "registry.json"
        assert layout.config_file == tmp_path / "config.yaml"

    def test_default_root_uses_env(self, isolated_home):
        assert HomeLayout().root == isolated_home

    def test_ensure_is_idempotent(self, tmp_path):
        layout = HomeLayout(tmp_path / "home")

        layout.ensure()
        layout.ensure()

        assert layout.store_dir.is_dir()
        assert layout.downloads_dir.is_dir()
        assert layout.lock_dir.is_dir()
        assert not layout.registry_file.exists()
