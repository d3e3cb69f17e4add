"""
Toolchain source providers.

Every place interpkit learns about toolchains from implements the same
capability, ``enumerate() -> list[CatalogEntry]``:

- ManifestCatalog: a JSON manifest of builds (bundled or served over HTTP)
- PyPyCatalog: the official PyPy ``versions.json`` listing
- LocalRegistrationSource: toolchains already present in the registry

Remote catalogs publish heterogeneous payloads; each provider normalises its
own shape into CatalogEntry objects for the current platform.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
from requests.exceptions import RequestException

from interpkit.core.config import CatalogConfig
from interpkit.core.exceptions import CatalogError, ToolchainParseError
from interpkit.toolchain.identity import Implementation, ToolchainId

logger = logging.getLogger(__name__)

BUNDLED_MANIFEST = Path(__file__).parent.parent / "data" / "cpython.json"

# interpkit platform key -> (PyPy "platform", accepted PyPy "arch" values)
PYPY_PLATFORMS = {
    "linux-x64": ("linux", ("x64",)),
    "linux-arm64": ("linux", ("aarch64", "arm64")),
    "linux-x86": ("linux", ("i686", "x86")),
    "macos-x64": ("darwin", ("x64",)),
    "macos-arm64": ("darwin", ("arm64", "aarch64")),
    "windows-x64": ("win64", ("x64",)),
    "windows-x86": ("win32", ("x86",)),
}


@dataclass(frozen=True)
class CatalogEntry:
    """A toolchain a source knows about; no download_url means installed-only."""

    id: ToolchainId
    download_url: Optional[str] = None
    checksum: Optional[str] = None
    checksum_url: Optional[str] = None
    source: str = ""

    @property
    def downloadable(self) -> bool:
        return bool(self.download_url)


class SourceProvider(ABC):
    """Abstract interface for anything that can enumerate toolchains."""

    name: str

    @abstractmethod
    def enumerate(self) -> List[CatalogEntry]:
        """
        List the toolchains this source knows about.

        Returns:
            Catalog entries for the current platform

        Raises:
            CatalogError: If the source cannot be queried or is malformed
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


def _load_json(location: str, session: Optional[requests.Session], timeout: int) -> Any:
    """Load a JSON document from an http(s) URL or a local path."""
    if location.startswith(("http://", "https://")):
        http = session or requests
        try:
            response = http.get(location, timeout=timeout)
            response.raise_for_status()
        except RequestException as e:
            raise CatalogError(f"Failed to fetch catalog {location}: {e}") from e
        try:
            return json.loads(response.text)
        except ValueError as e:
            raise CatalogError(f"Catalog {location} is not valid JSON: {e}") from e

    path = Path(location[len("file://"):] if location.startswith("file://") else location)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise CatalogError(f"Failed to read catalog {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog {path} is not valid JSON: {e}") from e


def _optional_str(item: Dict[str, Any], key: str, location: str) -> Optional[str]:
    value = item.get(key)
    if value is not None and not isinstance(value, str):
        raise CatalogError(f"Invalid '{key}' in catalog {location}: {value!r}")
    return value or None


class ManifestCatalog(SourceProvider):
    """
    Catalog backed by an interpkit manifest.

    Manifest shape::

        {
          "version": 1,
          "toolchains": [
            {"name": "cpython", "version": "3.11.14", "platform": "linux-x64",
             "url": "https://...tar.gz", "sha256": "..."},
            ...
          ]
        }

    ``sha256`` may be replaced by ``sha256_url`` pointing at a published
    checksum file. Entries for other platforms are skipped.
    """

    def __init__(
        self,
        name: str,
        platform: str,
        location: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.name = name
        self.platform = platform
        self.location = location or str(BUNDLED_MANIFEST)
        self.session = session
        self.timeout = timeout

    def enumerate(self) -> List[CatalogEntry]:
        payload = _load_json(self.location, self.session, self.timeout)

        if not isinstance(payload, dict) or not isinstance(payload.get("toolchains"), list):
            raise CatalogError(
                f"Invalid manifest {self.location}: missing 'toolchains' list"
            )

        entries: List[CatalogEntry] = []
        for item in payload["toolchains"]:
            entry = self._parse_item(item)
            if entry is not None:
                entries.append(entry)

        logger.debug(f"Catalog '{self.name}' lists {len(entries)} builds for {self.platform}")
        return entries

    def _parse_item(self, item: Dict[str, Any]) -> Optional[CatalogEntry]:
        if not isinstance(item, dict):
            raise CatalogError(f"Invalid manifest entry in {self.location}: {item!r}")

        platform = item.get("platform")
        if platform not in (None, "any", self.platform):
            return None

        fields = {key: item.get(key) for key in ("name", "version", "url")}
        variant = item.get("variant")
        if not all(isinstance(value, str) and value for value in fields.values()) or not (
            variant is None or isinstance(variant, str)
        ):
            raise CatalogError(
                f"Invalid manifest entry in {self.location}: {item!r} "
                "(name, version and url must be non-empty strings)"
            )

        text = f"{fields['name']}@{fields['version']}"
        if variant:
            text += f"+{variant}"
        try:
            toolchain_id = ToolchainId.parse(text)
        except ToolchainParseError as e:
            raise CatalogError(
                f"Invalid manifest entry in {self.location}: {item!r} ({e})"
            ) from e

        return CatalogEntry(
            id=toolchain_id,
            download_url=fields["url"],
            checksum=_optional_str(item, "sha256", self.location),
            checksum_url=_optional_str(item, "sha256_url", self.location),
            source=self.name,
        )


class PyPyCatalog(SourceProvider):
    """
    Catalog backed by PyPy's ``versions.json``.

    Each release lists the Python language version it implements, which
    becomes the toolchain version (``pypy@3.10.12``). Only stable releases
    are offered. PyPy does not publish checksums in this listing.
    """

    def __init__(
        self,
        name: str,
        platform: str,
        url: str,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        self.name = name
        self.platform = platform
        self.url = url
        self.session = session
        self.timeout = timeout

    def enumerate(self) -> List[CatalogEntry]:
        if self.platform not in PYPY_PLATFORMS:
            logger.debug(f"PyPy publishes no builds for {self.platform}")
            return []
        pypy_platform, pypy_arches = PYPY_PLATFORMS[self.platform]

        payload = _load_json(self.url, self.session, self.timeout)
        if not isinstance(payload, list):
            raise CatalogError(f"Invalid PyPy listing {self.url}: expected a list")

        entries: Dict[ToolchainId, CatalogEntry] = {}
        for release in payload:
            if not isinstance(release, dict):
                raise CatalogError(f"Invalid PyPy release entry: {release!r}")
            if not release.get("stable", False):
                continue

            python_version = release.get("python_version")
            files = release.get("files", [])
            if not isinstance(python_version, str) or not isinstance(files, list):
                raise CatalogError(f"Invalid PyPy release entry: {release!r}")
            try:
                toolchain_id = ToolchainId.parse(
                    f"{Implementation.PYPY.value}@{python_version}"
                )
            except ToolchainParseError as e:
                raise CatalogError(f"Invalid PyPy release entry: {release!r}") from e

            if toolchain_id in entries:
                # Listing is newest first; keep the newest PyPy for a language version
                continue

            for build in files:
                if not isinstance(build, dict):
                    raise CatalogError(f"Invalid PyPy build entry: {build!r}")
                if (
                    build.get("platform") == pypy_platform
                    and build.get("arch") in pypy_arches
                    and isinstance(build.get("download_url"), str)
                    and build["download_url"]
                ):
                    entries[toolchain_id] = CatalogEntry(
                        id=toolchain_id,
                        download_url=build["download_url"],
                        source=self.name,
                    )
                    break

        logger.debug(f"Catalog '{self.name}' lists {len(entries)} builds for {self.platform}")
        return list(entries.values())


class LocalRegistrationSource(SourceProvider):
    """Surfaces registry entries as installed-only catalog entries."""

    name = "registry"

    def __init__(self, registry):
        self._registry = registry

    def enumerate(self) -> List[CatalogEntry]:
        return [
            CatalogEntry(id=entry.id, source=self.name)
            for entry in self._registry.list()
        ]


def create_remote_sources(
    catalogs: List[CatalogConfig],
    platform: str,
    session: Optional[requests.Session] = None,
    timeout: int = 30,
) -> List[SourceProvider]:
    """Instantiate the configured catalog providers, in configuration order."""
    sources: List[SourceProvider] = []
    for catalog in catalogs:
        if catalog.kind == "manifest":
            sources.append(
                ManifestCatalog(
                    catalog.name,
                    platform,
                    location=catalog.url,
                    session=session,
                    timeout=timeout,
                )
            )
        elif catalog.kind == "pypy":
            sources.append(
                PyPyCatalog(
                    catalog.name, platform, catalog.url, session=session, timeout=timeout
                )
            )
        else:
            raise CatalogError(f"Unknown catalog kind: {catalog.kind}")
    return sources


__all__ = [
    "CatalogEntry",
    "SourceProvider",
    "ManifestCatalog",
    "PyPyCatalog",
    "LocalRegistrationSource",
    "create_remote_sources",
]
