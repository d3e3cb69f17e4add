"""
Unit tests for the catalog index.
"""

import responses

from interpkit.core.config import PYPY_VERSIONS_URL
from interpkit.toolchain.catalog import CatalogIndex, ToolchainStatus
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.sources import PyPyCatalog
from tests.fixtures.directories import install_fake_toolchain
from tests.fixtures.toolchains import StaticSource, posix_only

pytestmark = posix_only


class TestList:
    """Tests for CatalogIndex.list."""

    def test_installed_only_by_default(self, registry):
        install_fake_toolchain(registry, "cpython@3.11.4")
        source = StaticSource("mirror", ["cpython@3.12.1"])
        index = CatalogIndex(registry, [source])

        items = index.list()

        assert [str(i.id) for i in items] == ["cpython@3.11.4"]
        assert items[0].status == ToolchainStatus.INSTALLED
        assert items[0].install_path == registry.store_dir / "cpython@3.11.4"
        assert source.calls == 0

    def test_include_downloadable(self, registry):
        install_fake_toolchain(registry, "cpython@3.11.4")
        index = CatalogIndex(
            registry,
            [StaticSource("mirror", ["cpython@3.11.4", "cpython@3.12.1", "pypy@3.10.14"])],
        )

        items = index.list(include_downloadable=True)

        assert [(str(i.id), i.status.value) for i in items] == [
            ("cpython@3.12.1", "downloadable"),
            ("cpython@3.11.4", "installed"),
            ("pypy@3.10.14", "downloadable"),
        ]
        # Installed entries still carry the catalog entry when one exists
        assert items[1].catalog_entry is not None
        assert items[1].installed

    def test_first_catalog_wins(self, registry):
        index = CatalogIndex(
            registry,
            [StaticSource("primary", ["cpython@3.12.1"]), StaticSource("secondary", ["cpython@3.12.1"])],
        )

        (item,) = index.list(include_downloadable=True)

        assert item.catalog_entry.source == "primary"

    def test_failing_catalog_becomes_warning(self, registry):
        index = CatalogIndex(
            registry,
            [StaticSource("down", fail=True), StaticSource("up", ["pypy@3.10.14"])],
        )

        items = index.list(include_downloadable=True)

        assert [str(i.id) for i in items] == ["pypy@3.10.14"]
        assert len(index.warnings) == 1
        assert "down" in index.warnings[0]

    @responses.activate
    def test_malformed_listing_becomes_warning(self, registry):
        install_fake_toolchain(registry, "cpython@3.11.4")
        responses.add(
            responses.GET,
            PYPY_VERSIONS_URL,
            json=[{"stable": True, "python_version": "3.10.14", "files": ["oops"]}],
        )
        index = CatalogIndex(
            registry,
            [
                PyPyCatalog("pypy", "linux-x64", PYPY_VERSIONS_URL),
                StaticSource("up", ["cpython@3.12.1"]),
            ],
        )

        items = index.list(include_downloadable=True)

        assert [str(i.id) for i in items] == ["cpython@3.12.1", "cpython@3.11.4"]
        assert len(index.warnings) == 1
        assert "Skipping catalog 'pypy'" in index.warnings[0]

    def test_catalogs_enumerated_once(self, registry):
        source = StaticSource("mirror", ["cpython@3.12.1"])
        index = CatalogIndex(registry, [source])

        index.list(include_downloadable=True)
        index.find(ToolchainId.parse("cpython@3.12.1"))

        assert source.calls == 1

        index.refresh()
        index.list(include_downloadable=True)

        assert source.calls == 2

    def test_reflects_registry_changes(self, registry):
        index = CatalogIndex(registry, [])
        assert index.list() == []

        install_fake_toolchain(registry, "pypy@3.10.14")

        assert [str(i.id) for i in index.list()] == ["pypy@3.10.14"]


class TestFind:
    def test_find_downloadable(self, registry):
        index = CatalogIndex(registry, [StaticSource("mirror", ["cpython@3.12.1"])])

        entry = index.find(ToolchainId.parse("cpython@3.12.1"))

        assert entry.download_url.endswith("cpython@3.12.1.tar.gz")
        assert index.find(ToolchainId.parse("cpython@3.12.2")) is None
