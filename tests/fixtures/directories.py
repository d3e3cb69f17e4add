"""Reusable directory fixtures for testing.

Provides isolated interpkit home directories, registries and helpers that
place fake installed toolchains into them.
"""

import json
from pathlib import Path
from typing import Optional

import pytest
import yaml

from interpkit.core.directory import HomeLayout
from interpkit.core.locking import LockManager
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.registry import Origin, ToolchainEntry, ToolchainRegistry
from tests.fixtures.toolchains import manifest_payload, write_fake_interpreter


def install_fake_toolchain(
    registry: ToolchainRegistry,
    toolchain_id: str,
    origin: Origin = Origin.FETCHED,
    installed_at: str = "",
    external_root: Optional[Path] = None,
) -> ToolchainEntry:
    """
    Put a fake toolchain on disk and add it to the registry.

    Fetched toolchains go into the store; registered ones go under
    external_root (required for that origin).
    """
    parsed = ToolchainId.parse(toolchain_id)
    if origin == Origin.FETCHED:
        install_path = registry.store_dir / str(parsed)
    else:
        install_path = external_root / str(parsed)

    executable = write_fake_interpreter(
        install_path / "bin" / "python3", parsed.implementation, parsed.version
    )
    entry = ToolchainEntry(
        id=parsed,
        install_path=install_path,
        origin=origin,
        executable=executable,
        installed_at=installed_at,
    )
    registry.add(entry)
    return entry


def write_local_catalog(home: HomeLayout, *toolchains, platform: str = "linux-x64") -> Path:
    """
    Configure a home to use a single manifest catalog on disk.

    Toolchains are manifest_payload() tuples. The platform is fixed so
    listings do not depend on the machine running the tests.

    Returns:
        Path to the manifest file
    """
    manifest = home.root / "manifest.json"
    manifest.write_text(json.dumps(manifest_payload(*toolchains)))
    config = {
        "version": 1,
        "catalogs": [{"kind": "manifest", "name": "local", "url": str(manifest)}],
        "fetch": {"max_retries": 1, "timeout": 5},
        "platform": platform,
    }
    home.config_file.write_text(yaml.safe_dump(config))
    return manifest


@pytest.fixture
def home(tmp_path) -> HomeLayout:
    """Create an empty interpkit home directory."""
    return HomeLayout(tmp_path / "interpkit-home").ensure()


@pytest.fixture
def lock_manager(home) -> LockManager:
    return LockManager(home.lock_dir)


@pytest.fixture
def registry(home, lock_manager) -> ToolchainRegistry:
    """Create an empty registry inside the test home."""
    return ToolchainRegistry(
        home.registry_file, lock_manager, home.store_dir, lock_timeout=5
    )


@pytest.fixture
def isolated_home(tmp_path, monkeypatch) -> Path:
    """Point INTERPKIT_HOME at a temporary directory."""
    fake_home = tmp_path / "env-home"
    fake_home.mkdir()
    monkeypatch.setenv("INTERPKIT_HOME", str(fake_home))
    return fake_home
