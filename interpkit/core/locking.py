"""
Concurrent access control for interpkit.

File-based locks keep the registry consistent when several interpkit
processes run at once, and stop two processes from fetching the same
toolchain into the store simultaneously.

Usage:
    from interpkit.core.locking import LockManager

    lock_manager = LockManager(lock_dir)
    with lock_manager.registry_lock(timeout=30):
        # Safely modify registry
        pass
"""

import logging
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout as LockTimeout

from interpkit.core.exceptions import FetchError, RegistryLockTimeout

logger = logging.getLogger(__name__)


class LockManager:
    """
    Manages locks for interpkit resources.

    Uses file-based locking with the `filelock` library for cross-platform
    compatibility and automatic cleanup on process death. Every lock is
    acquired as a context manager, so it is released on all exit paths.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (usually <home>/lock)
        """
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def registry_lock(self, timeout: float = 30):
        """
        Acquire registry lock for safe modifications.

        Args:
            timeout: Maximum wait time in seconds (default: 30)

        Yields:
            None

        Raises:
            RegistryLockTimeout: If lock can't be acquired within timeout

        Example:
            >>> with lock_manager.registry_lock(timeout=30):
            ...     registry_data = load()
            ...     save(registry_data)
        """
        lock_path = self.lock_dir / "registry.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired registry lock: {lock_path}")
                yield
            logger.debug(f"Released registry lock: {lock_path}")
        except LockTimeout as e:
            logger.error(
                f"Could not acquire registry lock after {timeout}s. "
                "Another interpkit process may be running."
            )
            raise RegistryLockTimeout(
                f"Could not acquire registry lock after {timeout}s. "
                "Another interpkit process may be running."
            ) from e

    @contextmanager
    def toolchain_lock(self, toolchain_id: str, timeout: float = 300):
        """
        Acquire lock for a specific toolchain fetch.

        Args:
            toolchain_id: Rendered toolchain identifier (e.g., 'cpython@3.11.4')
            timeout: Maximum wait time in seconds (default: 300 for long downloads)

        Raises:
            FetchError: If lock can't be acquired within timeout
        """
        # Sanitize toolchain_id to create valid filename
        safe_id = (
            toolchain_id.replace("/", "-")
            .replace("\\", "-")
            .replace(":", "-")
            .replace("@", "-")
        )
        lock_path = self.lock_dir / f"toolchain-{safe_id}.lock"
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired toolchain lock: {lock_path}")
                yield
            logger.debug(f"Released toolchain lock: {lock_path}")
        except LockTimeout as e:
            raise FetchError(
                f"Could not acquire toolchain lock for {toolchain_id} after {timeout}s. "
                "Another process may be fetching this toolchain."
            ) from e


__all__ = ["LockManager", "LockTimeout"]
