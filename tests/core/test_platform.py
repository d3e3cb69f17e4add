"""
Unit tests for the platform detection module.

Tests cover:
- OS detection with mocking
- Architecture detection and normalization
- Cache behavior
"""

import pytest
from unittest.mock import patch

from interpkit.core.platform import (
    UnsupportedPlatformError,
    clear_platform_cache,
    detect_platform,
    _detect_architecture,
    _detect_os,
)


@pytest.fixture(autouse=True)
def fresh_cache():
    clear_platform_cache()
    yield
    clear_platform_cache()


class TestDetectOS:
    """Tests for _detect_os."""

    @pytest.mark.parametrize(
        "system,expected",
        [("Linux", "linux"), ("Darwin", "macos"), ("Windows", "windows")],
    )
    def test_known_systems(self, system, expected):
        with patch("platform.system", return_value=system):
            assert _detect_os() == expected

    def test_unsupported_system(self):
        with patch("platform.system", return_value="SunOS"):
            with pytest.raises(UnsupportedPlatformError):
                _detect_os()


class TestDetectArchitecture:
    """Tests for _detect_architecture."""

    @pytest.mark.parametrize(
        "machine,expected",
        [
            ("x86_64", "x64"),
            ("AMD64", "x64"),
            ("aarch64", "arm64"),
            ("arm64", "arm64"),
            ("i686", "x86"),
            ("armv7l", "arm"),
            ("riscv64", "riscv64"),
        ],
    )
    def test_normalization(self, machine, expected):
        with patch("platform.machine", return_value=machine):
            assert _detect_architecture() == expected


def test_detect_platform_is_cached():
    """Test detection runs once until the cache is cleared."""
    with patch("platform.system", return_value="Linux"), patch(
        "platform.machine", return_value="x86_64"
    ) as machine:
        assert detect_platform() == "linux-x64"
        assert detect_platform() == "linux-x64"
        assert machine.call_count == 1
