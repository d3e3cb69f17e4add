"""
Registry of installed toolchains.

Maps each ToolchainId to where its interpreter lives, for both toolchains
fetched into the managed store and external interpreters registered by the
user. State is kept in ``<home>/registry.json``:

    {
      "version": 1,
      "toolchains": {
        "cpython@3.11.4": {
          "path": "/home/user/.interpkit/py/cpython@3.11.4",
          "executable": "/home/user/.interpkit/py/cpython@3.11.4/bin/python3",
          "origin": "fetched",
          "installed": "2024-01-01T12:00:00",
          "source_url": "https://...",
          "checksum": "sha256:..."
        }
      }
    }

The file is loaded when the registry is constructed and rewritten atomically,
under a file lock, on every add and remove.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from interpkit.core.exceptions import (
    RegistrationError,
    RegistryError,
    ToolchainExistsError,
    ToolchainNotFoundError,
    ToolchainParseError,
)
from interpkit.core.filesystem import FilesystemError, atomic_write, safe_rmtree
from interpkit.core.locking import LockManager
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.interpreter import is_executable

logger = logging.getLogger(__name__)

REGISTRY_FORMAT_VERSION = 1


class Origin(str, Enum):
    """How a toolchain came to be in the registry."""

    FETCHED = "fetched"
    REGISTERED = "registered"


@dataclass
class ToolchainEntry:
    """One installed toolchain."""

    id: ToolchainId
    install_path: Path
    origin: Origin
    executable: Path
    installed_at: str = ""
    source_url: Optional[str] = None
    checksum: Optional[str] = None

    def __post_init__(self):
        self.install_path = Path(self.install_path)
        self.executable = Path(self.executable)
        self.origin = Origin(self.origin)
        if not self.installed_at:
            self.installed_at = datetime.now().isoformat()

    def to_dict(self) -> dict:
        data = {
            "path": str(self.install_path),
            "executable": str(self.executable),
            "origin": self.origin.value,
            "installed": self.installed_at,
        }
        if self.source_url:
            data["source_url"] = self.source_url
        if self.checksum:
            data["checksum"] = self.checksum
        return data

    @classmethod
    def from_dict(cls, key: str, data: dict) -> "ToolchainEntry":
        return cls(
            id=ToolchainId.parse(key),
            install_path=Path(data["path"]),
            origin=Origin(data["origin"]),
            executable=Path(data.get("executable", data["path"])),
            installed_at=data.get("installed", ""),
            source_url=data.get("source_url"),
            checksum=data.get("checksum"),
        )


class ToolchainRegistry:
    """
    Persistent mapping of ToolchainId to ToolchainEntry.

    Example:
        >>> registry = ToolchainRegistry(home.registry_file, lock_manager, home.store_dir)
        >>> registry.add(entry)
        >>> registry.get(ToolchainId.parse("cpython@3.11.4"))
    """

    def __init__(
        self,
        registry_path: Path,
        lock_manager: LockManager,
        store_dir: Path,
        lock_timeout: float = 30,
    ):
        """
        Initialize and load the registry.

        Args:
            registry_path: Path to registry.json
            lock_manager: Lock manager guarding the registry file
            store_dir: Managed store root; only paths under it are ever deleted
            lock_timeout: Seconds to wait for the registry lock

        Raises:
            RegistryError: If an existing registry file cannot be read
        """
        self.registry_path = Path(registry_path)
        self.lock_manager = lock_manager
        self.store_dir = Path(store_dir)
        self.lock_timeout = lock_timeout
        self._entries: Dict[ToolchainId, ToolchainEntry] = self._read()

        logger.debug(
            f"Loaded registry {self.registry_path} with {len(self._entries)} toolchains"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read(self) -> Dict[ToolchainId, ToolchainEntry]:
        if not self.registry_path.exists():
            return {}

        try:
            with open(self.registry_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise RegistryError(
                f"Failed to load registry {self.registry_path}: {e}"
            ) from e

        if not isinstance(data, dict) or not isinstance(data.get("toolchains"), dict):
            raise RegistryError(
                f"Invalid registry format in {self.registry_path}: missing 'toolchains'"
            )
        if data.get("version") != REGISTRY_FORMAT_VERSION:
            raise RegistryError(
                f"Unsupported registry version {data.get('version')!r} "
                f"in {self.registry_path}"
            )

        entries = {}
        for key, value in data["toolchains"].items():
            try:
                entry = ToolchainEntry.from_dict(key, value)
            except (ToolchainParseError, KeyError, TypeError, ValueError) as e:
                raise RegistryError(f"Invalid registry entry '{key}': {e}") from e
            entries[entry.id] = entry
        return entries

    def _write(self, entries: Dict[ToolchainId, ToolchainEntry]):
        data = {
            "version": REGISTRY_FORMAT_VERSION,
            "toolchains": {
                str(tc_id): entries[tc_id].to_dict()
                for tc_id in sorted(entries, key=lambda t: t.sort_key())
            },
        }
        try:
            atomic_write(self.registry_path, json.dumps(data, indent=2) + "\n")
        except OSError as e:
            logger.error(f"Failed to save registry: {e}")
            raise RegistryError(f"Failed to save registry: {e}") from e

        self._entries = entries
        logger.debug(f"Saved registry with {len(entries)} toolchains")

    def reload(self):
        """Re-read the registry file, picking up other processes' changes."""
        self._entries = self._read()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, toolchain_id: ToolchainId) -> Optional[ToolchainEntry]:
        return self._entries.get(toolchain_id)

    def list(self) -> List[ToolchainEntry]:
        """All entries, implementation ascending then newest version first."""
        return sorted(self._entries.values(), key=lambda e: e.id.listing_key())

    def __contains__(self, toolchain_id: ToolchainId) -> bool:
        return toolchain_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _validate(self, entry: ToolchainEntry):
        if not is_executable(entry.executable):
            raise RegistrationError(
                f"No executable interpreter at {entry.executable} for {entry.id}"
            )

    def add(self, entry: ToolchainEntry):
        """
        Add a new toolchain.

        Raises:
            ToolchainExistsError: If the id is already registered
            RegistrationError: If the entry's interpreter is not executable
            RegistryLockTimeout: If the registry lock cannot be acquired
        """
        self._validate(entry)

        with self.lock_manager.registry_lock(timeout=self.lock_timeout):
            entries = self._read()
            if entry.id in entries:
                self._entries = entries
                raise ToolchainExistsError(entry.id)

            entries[entry.id] = entry
            self._write(entries)

        logger.info(f"Registered toolchain: {entry.id} ({entry.install_path})")

    def replace(self, entry: ToolchainEntry) -> Optional[ToolchainEntry]:
        """
        Insert or overwrite an entry, returning the previous one.

        Used when a fetched toolchain is re-installed; the caller is
        responsible for the old store directory.
        """
        self._validate(entry)

        with self.lock_manager.registry_lock(timeout=self.lock_timeout):
            entries = self._read()
            previous = entries.get(entry.id)
            entries[entry.id] = entry
            self._write(entries)

        logger.info(f"Updated toolchain: {entry.id} ({entry.install_path})")
        return previous

    def remove(self, toolchain_id: ToolchainId) -> ToolchainEntry:
        """
        Remove a toolchain.

        Registered toolchains only lose their record; the external
        interpreter is never touched. Fetched toolchains also have their
        store directory deleted. Pins referencing the id are not consulted.

        Returns:
            The removed entry

        Raises:
            ToolchainNotFoundError: If the id is not in the registry
            RegistryError: If the store directory cannot be deleted
        """
        with self.lock_manager.registry_lock(timeout=self.lock_timeout):
            entries = self._read()
            entry = entries.pop(toolchain_id, None)
            if entry is None:
                self._entries = entries
                raise ToolchainNotFoundError(toolchain_id)

            self._write(entries)

            if entry.origin == Origin.FETCHED:
                try:
                    safe_rmtree(entry.install_path, require_prefix=self.store_dir)
                except (FilesystemError, ValueError) as e:
                    raise RegistryError(
                        f"Removed {toolchain_id} from registry but could not delete "
                        f"{entry.install_path}: {e}"
                    ) from e

        logger.info(f"Removed toolchain: {toolchain_id}")
        return entry


__all__ = ["Origin", "ToolchainEntry", "ToolchainRegistry"]
