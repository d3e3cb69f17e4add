"""
Platform detection for interpkit.

Catalog entries are published per platform; this module computes the
canonical platform key (e.g. 'linux-x64', 'macos-arm64') used to pick the
right build.
"""

import functools
import platform


class UnsupportedPlatformError(RuntimeError):
    """Raised when the current OS is not one interpreters are published for."""

    pass


@functools.lru_cache(maxsize=1)
def detect_platform() -> str:
    """
    Detect the canonical platform key of the running machine.

    This function is cached - it only runs detection once per process.

    Returns:
        Platform key in format 'os-arch'

    Example:
        >>> detect_platform()
        'linux-x64'
    """
    return f"{_detect_os()}-{_detect_architecture()}"


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS name: 'windows', 'linux', 'macos'

    Raises:
        UnsupportedPlatformError: If OS is not supported
    """
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    else:
        raise UnsupportedPlatformError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture: 'x64', 'arm64', 'x86', 'arm'
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64", "armv8l", "armv8b"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """Clear the platform detection cache (used by tests)."""
    detect_platform.cache_clear()


__all__ = ["detect_platform", "clear_platform_cache", "UnsupportedPlatformError"]
