"""
Unit tests for the toolchain registry.
"""

import json
from contextlib import contextmanager

import pytest

from interpkit.core.exceptions import (
    RegistrationError,
    RegistryError,
    RegistryLockTimeout,
    ToolchainExistsError,
    ToolchainNotFoundError,
)
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.registry import Origin, ToolchainEntry, ToolchainRegistry
from tests.fixtures.directories import install_fake_toolchain
from tests.fixtures.toolchains import posix_only

pytestmark = posix_only


def reopen(registry: ToolchainRegistry) -> ToolchainRegistry:
    return ToolchainRegistry(
        registry.registry_path, registry.lock_manager, registry.store_dir
    )


class TestAdd:
    """Tests for ToolchainRegistry.add."""

    def test_add_is_durable(self, registry):
        entry = install_fake_toolchain(registry, "cpython@3.11.4")

        reloaded = reopen(registry)

        assert reloaded.get(entry.id).install_path == entry.install_path
        assert reloaded.get(entry.id).origin == Origin.FETCHED
        data = json.loads(registry.registry_path.read_text())
        assert data["version"] == 1
        assert "cpython@3.11.4" in data["toolchains"]

    def test_duplicate_add_fails(self, registry):
        entry = install_fake_toolchain(registry, "cpython@3.11.4")

        with pytest.raises(ToolchainExistsError):
            registry.add(entry)

    def test_rejects_missing_interpreter(self, registry, tmp_path):
        entry = ToolchainEntry(
            id=ToolchainId.parse("cpython@3.11.4"),
            install_path=tmp_path / "nowhere",
            origin=Origin.REGISTERED,
            executable=tmp_path / "nowhere" / "bin" / "python3",
        )

        with pytest.raises(RegistrationError):
            registry.add(entry)

        assert len(registry) == 0

    def test_sees_writes_from_other_instances(self, registry, tmp_path):
        """Test add re-reads the file so concurrent writers are not lost."""
        other = reopen(registry)
        install_fake_toolchain(other, "pypy@3.10.14")

        install_fake_toolchain(registry, "cpython@3.11.4")

        ids = {str(e.id) for e in reopen(registry).list()}
        assert ids == {"pypy@3.10.14", "cpython@3.11.4"}

    def test_lock_timeout(self, registry, monkeypatch):
        @contextmanager
        def busy(timeout=30):
            raise RegistryLockTimeout("Could not acquire registry lock")
            yield

        monkeypatch.setattr(registry.lock_manager, "registry_lock", busy)

        with pytest.raises(RegistryLockTimeout):
            install_fake_toolchain(registry, "cpython@3.11.4")


class TestList:
    def test_ordering(self, registry):
        for tc in ["cpython@3.9.18", "pypy@3.10.14", "cpython@3.11.4", "cpython@3.11.4+debug"]:
            install_fake_toolchain(registry, tc)

        assert [str(e.id) for e in registry.list()] == [
            "cpython@3.11.4",
            "cpython@3.11.4+debug",
            "cpython@3.9.18",
            "pypy@3.10.14",
        ]


class TestRemove:
    """Tests for ToolchainRegistry.remove."""

    def test_remove_fetched_deletes_store_directory(self, registry):
        entry = install_fake_toolchain(registry, "cpython@3.11.4")

        removed = registry.remove(entry.id)

        assert removed.id == entry.id
        assert not entry.install_path.exists()
        assert entry.id not in reopen(registry)

    def test_remove_registered_keeps_external_path(self, registry, tmp_path):
        entry = install_fake_toolchain(
            registry,
            "cpython@3.11.4",
            origin=Origin.REGISTERED,
            external_root=tmp_path / "opt",
        )

        registry.remove(entry.id)

        assert entry.executable.exists()
        assert entry.id not in registry

    def test_remove_missing(self, registry):
        with pytest.raises(ToolchainNotFoundError):
            registry.remove(ToolchainId.parse("cpython@3.11.4"))

    def test_fetched_entry_outside_store_is_not_deleted(self, registry, tmp_path):
        """Test a tampered path outside the store is never removed."""
        outside = tmp_path / "precious"
        exe = outside / "bin" / "python3"
        exe.parent.mkdir(parents=True)
        exe.write_text("#!/bin/sh\n")
        exe.chmod(0o755)
        registry.add(
            ToolchainEntry(
                id=ToolchainId.parse("cpython@3.11.4"),
                install_path=outside,
                origin=Origin.FETCHED,
                executable=exe,
            )
        )

        with pytest.raises(RegistryError, match="could not delete"):
            registry.remove(ToolchainId.parse("cpython@3.11.4"))

        assert outside.exists()


class TestReplace:
    def test_replace_returns_previous(self, registry):
        first = install_fake_toolchain(registry, "cpython@3.11.4", installed_at="2024-01-01T00:00:00")
        newer = ToolchainEntry(
            id=first.id,
            install_path=first.install_path,
            origin=Origin.FETCHED,
            executable=first.executable,
            installed_at="2024-06-01T00:00:00",
        )

        previous = registry.replace(newer)

        assert previous.installed_at == "2024-01-01T00:00:00"
        assert reopen(registry).get(first.id).installed_at == "2024-06-01T00:00:00"


class TestLoad:
    """Tests for reading registry.json."""

    def test_missing_file_is_empty(self, registry):
        assert registry.list() == []

    @pytest.mark.parametrize(
        "content",
        [
            "{not json",
            json.dumps({"version": 1}),
            json.dumps({"version": 99, "toolchains": {}}),
            json.dumps({"version": 1, "toolchains": {"nonsense": {"path": "/x", "origin": "fetched"}}}),
            json.dumps({"version": 1, "toolchains": {"cpython@3.11.4": {"path": "/x", "origin": "stolen"}}}),
        ],
    )
    def test_corrupt_file(self, registry, content):
        registry.registry_path.write_text(content)

        with pytest.raises(RegistryError):
            reopen(registry)

    def test_entry_round_trip(self, tmp_path):
        entry = ToolchainEntry(
            id=ToolchainId.parse("pypy@3.10.14"),
            install_path=tmp_path / "py" / "pypy@3.10.14",
            origin=Origin.FETCHED,
            executable=tmp_path / "py" / "pypy@3.10.14" / "bin" / "pypy3",
            installed_at="2024-01-01T12:00:00",
            source_url="https://downloads.python.org/pypy/pypy3.10-v7.3.17-linux64.tar.bz2",
        )

        restored = ToolchainEntry.from_dict(str(entry.id), entry.to_dict())

        assert restored == entry
