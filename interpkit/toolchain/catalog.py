"""
Catalog index: one view over installed and downloadable toolchains.

Combines the registry (installed) with the configured remote catalogs
(downloadable). Remote catalogs are only queried when downloadable entries
are requested, and each is enumerated at most once per index.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from requests.exceptions import RequestException

from interpkit.core.exceptions import CatalogError
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.registry import ToolchainEntry, ToolchainRegistry
from interpkit.toolchain.sources import CatalogEntry, LocalRegistrationSource, SourceProvider

logger = logging.getLogger(__name__)


class ToolchainStatus(str, Enum):
    INSTALLED = "installed"
    DOWNLOADABLE = "downloadable"


@dataclass
class ListedToolchain:
    """A row of ``toolchain list``."""

    id: ToolchainId
    status: ToolchainStatus
    install_path: Optional[Path] = None
    catalog_entry: Optional[CatalogEntry] = None
    entry: Optional[ToolchainEntry] = None

    @property
    def installed(self) -> bool:
        return self.status == ToolchainStatus.INSTALLED


class CatalogIndex:
    """
    Merged, ordered listing of every known toolchain.

    Example:
        >>> index = CatalogIndex(registry, [ManifestCatalog("cpython", "linux-x64")])
        >>> for item in index.list(include_downloadable=True):
        ...     print(item.id, item.status.value)
    """

    def __init__(self, registry: ToolchainRegistry, providers: Sequence[SourceProvider]):
        self.registry = registry
        self.providers = list(providers)
        self.local = LocalRegistrationSource(registry)
        self.warnings: List[str] = []
        self._remote: Optional[Dict[ToolchainId, CatalogEntry]] = None

    def _remote_entries(self) -> Dict[ToolchainId, CatalogEntry]:
        if self._remote is not None:
            return self._remote

        merged: Dict[ToolchainId, CatalogEntry] = {}
        for provider in self.providers:
            try:
                entries = provider.enumerate()
            except (CatalogError, RequestException, ValueError) as e:
                message = f"Skipping catalog '{provider.name}': {e}"
                logger.warning(message)
                self.warnings.append(message)
                continue

            for entry in entries:
                if not entry.downloadable:
                    continue
                if entry.id in merged:
                    logger.debug(
                        f"{entry.id} from '{provider.name}' shadowed by "
                        f"'{merged[entry.id].source}'"
                    )
                    continue
                merged[entry.id] = entry

        self._remote = merged
        return merged

    def refresh(self):
        """Forget memoised catalog results and warnings."""
        self._remote = None
        self.warnings = []

    def list(self, include_downloadable: bool = False) -> List[ListedToolchain]:
        """
        List known toolchains.

        Args:
            include_downloadable: Also query remote catalogs

        Returns:
            Installed toolchains, plus downloadable-only ones when requested,
            ordered by implementation, newest version first, then variant
        """
        remote = self._remote_entries() if include_downloadable else {}

        items: Dict[ToolchainId, ListedToolchain] = {}
        for local in self.local.enumerate():
            entry = self.registry.get(local.id)
            items[local.id] = ListedToolchain(
                id=local.id,
                status=ToolchainStatus.INSTALLED,
                install_path=entry.install_path if entry else None,
                catalog_entry=remote.get(local.id),
                entry=entry,
            )

        for toolchain_id, catalog_entry in remote.items():
            if toolchain_id not in items:
                items[toolchain_id] = ListedToolchain(
                    id=toolchain_id,
                    status=ToolchainStatus.DOWNLOADABLE,
                    catalog_entry=catalog_entry,
                )

        return sorted(items.values(), key=lambda item: item.id.listing_key())

    def find(self, toolchain_id: ToolchainId) -> Optional[CatalogEntry]:
        """Downloadable catalog entry for an exact id, if any catalog has one."""
        return self._remote_entries().get(toolchain_id)


__all__ = ["CatalogIndex", "ListedToolchain", "ToolchainStatus"]
