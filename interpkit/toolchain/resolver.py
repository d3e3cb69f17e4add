"""
Turn a toolchain request into a concrete toolchain.

Installed toolchains always win over downloadable ones, even when a newer
patch release could be downloaded; within a tier the highest version wins.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from interpkit.core.exceptions import AmbiguousImplementationError, NoMatchError
from interpkit.toolchain.catalog import CatalogIndex, ListedToolchain, ToolchainStatus
from interpkit.toolchain.identity import ToolchainId, ToolchainRequest
from interpkit.toolchain.registry import ToolchainEntry
from interpkit.toolchain.sources import CatalogEntry

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Outcome of resolving a request."""

    toolchain_id: ToolchainId
    needs_fetch: bool
    catalog_entry: Optional[CatalogEntry] = None
    entry: Optional[ToolchainEntry] = None


def _tie_break(item: ListedToolchain):
    installed_at = item.entry.installed_at if item.entry else ""
    return (installed_at, item.id.variant or "")


class Resolver:
    def __init__(self, index: CatalogIndex):
        self.index = index

    def resolve(
        self,
        request: Union[str, ToolchainRequest],
        include_downloadable: bool = True,
    ) -> Resolution:
        """
        Resolve a request against the catalog index.

        Args:
            request: Request string (``3.11``, ``pypy@3.10``) or parsed request
            include_downloadable: Consider toolchains that still need fetching

        Returns:
            Resolution naming the chosen toolchain

        Raises:
            ToolchainParseError: If the request string is malformed
            NoMatchError: If nothing matches
            AmbiguousImplementationError: If the request names no implementation
                and several implementations match equally well
        """
        if isinstance(request, str):
            request = ToolchainRequest.parse(request)

        matching = [
            item
            for item in self.index.list(include_downloadable=include_downloadable)
            if request.matches(item.id)
        ]
        installed = [item for item in matching if item.status == ToolchainStatus.INSTALLED]
        tier: List[ListedToolchain] = installed or matching

        if not tier:
            raise NoMatchError(str(request))

        best_version = max(item.id.version for item in tier)
        candidates = [item for item in tier if item.id.version == best_version]

        if request.implementation is None:
            implementations = {item.id.implementation for item in candidates}
            if len(implementations) > 1:
                ids = sorted((item.id for item in candidates), key=lambda t: t.sort_key())
                raise AmbiguousImplementationError(str(request), ids)

        chosen = max(candidates, key=_tie_break)
        logger.debug(f"Resolved '{request}' to {chosen.id} ({chosen.status.value})")

        return Resolution(
            toolchain_id=chosen.id,
            needs_fetch=not chosen.installed,
            catalog_entry=chosen.catalog_entry,
            entry=chosen.entry,
        )


__all__ = ["Resolution", "Resolver"]
