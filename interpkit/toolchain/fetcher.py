"""
Toolchain fetcher: download, verify, extract and register an interpreter.

Workflow for one catalog entry:

1. Skip if the registry already has the id (unless forced)
2. Take the per-toolchain lock and check the registry again
3. Download the archive into ``<home>/downloads`` with checksum verification
4. Extract into ``<home>/py/.tmp-<id>-<random>`` and normalise the root folder
5. Check the tree contains a runnable interpreter
6. Rename into ``<home>/py/<id>`` and add it to the registry
7. Remove the archive and temporary directories on every exit path

Nothing is registered until step 6 succeeds, so an interrupted fetch
never leaves a half-installed toolchain visible.
"""

import logging
import os
import re
import tempfile
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

import requests
from requests.exceptions import RequestException

from interpkit.core.config import FetchConfig
from interpkit.core.directory import HomeLayout
from interpkit.core.download import DownloadProgress, download_file
from interpkit.core.exceptions import (
    DownloadError,
    ExtractionError,
    FetchError,
    InterpkitError,
    ToolchainExistsError,
    UnsupportedArchiveFormat,
)
from interpkit.core.filesystem import (
    FilesystemError,
    archive_suffix,
    directory_size,
    extract_archive,
    safe_rmtree,
)
from interpkit.core.locking import LockManager
from interpkit.toolchain.identity import ToolchainId
from interpkit.toolchain.interpreter import find_python_executable
from interpkit.toolchain.registry import Origin, ToolchainEntry, ToolchainRegistry
from interpkit.toolchain.sources import CatalogEntry

logger = logging.getLogger(__name__)

_SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")


@dataclass
class FetchResult:
    """Result of fetching one toolchain."""

    toolchain_id: ToolchainId
    entry: ToolchainEntry
    was_cached: bool
    download_time: float = 0.0
    total_size_bytes: int = 0


@dataclass
class BatchFetchResult:
    """Results of a batch fetch; errors are keyed by toolchain id or request text."""

    results: Dict[ToolchainId, FetchResult] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _safe_name(toolchain_id: ToolchainId) -> str:
    return str(toolchain_id).replace("@", "-").replace("+", "-")


class ToolchainFetcher:
    """
    Acquires toolchains from catalog entries into the managed store.

    Example:
        >>> fetcher = ToolchainFetcher(registry, HomeLayout(), LockManager(lock_dir))
        >>> result = fetcher.fetch(catalog_entry)
        >>> print(result.entry.executable)
    """

    def __init__(
        self,
        registry: ToolchainRegistry,
        layout: HomeLayout,
        lock_manager: LockManager,
        config: Optional[FetchConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        self.registry = registry
        self.layout = layout
        self.lock_manager = lock_manager
        self.config = config or FetchConfig()
        self.session = session

    def _cached(self, catalog_entry: CatalogEntry, force: bool) -> Optional[FetchResult]:
        existing = self.registry.get(catalog_entry.id)
        if existing is None:
            return None
        if force and existing.origin == Origin.REGISTERED:
            raise ToolchainExistsError(catalog_entry.id)
        if force:
            return None

        logger.info(f"{catalog_entry.id} is already installed at {existing.install_path}")
        return FetchResult(toolchain_id=catalog_entry.id, entry=existing, was_cached=True)

    def fetch(
        self,
        catalog_entry: CatalogEntry,
        force: bool = False,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> FetchResult:
        """
        Fetch a toolchain and register it.

        Args:
            catalog_entry: Downloadable catalog entry
            force: Re-download even if a fetched copy is already installed
            progress_callback: Optional download progress callback

        Returns:
            FetchResult; ``was_cached`` is True when nothing was downloaded

        Raises:
            FetchError: If there is nothing to download or any step fails
            ToolchainExistsError: If forcing over a registered interpreter
        """
        if not catalog_entry.downloadable:
            raise FetchError(f"No download available for {catalog_entry.id}")

        cached = self._cached(catalog_entry, force)
        if cached is not None:
            return cached

        with self.lock_manager.toolchain_lock(str(catalog_entry.id)):
            # Another process may have finished while we waited for the lock
            self.registry.reload()
            cached = self._cached(catalog_entry, force)
            if cached is not None:
                return cached

            return self._fetch_locked(catalog_entry, progress_callback)

    def _fetch_locked(
        self,
        catalog_entry: CatalogEntry,
        progress_callback: Optional[Callable[[DownloadProgress], None]],
    ) -> FetchResult:
        toolchain_id = catalog_entry.id
        url = catalog_entry.download_url
        archive_name = url.rstrip("/").split("/")[-1].split("?")[0]
        suffix = archive_suffix(archive_name)
        if suffix is None:
            raise UnsupportedArchiveFormat(
                f"Cannot fetch {toolchain_id}: unsupported archive {archive_name}"
            )

        self.layout.ensure()
        store_dir = self.layout.store_dir
        install_dir = store_dir / str(toolchain_id)
        archive_path = (
            self.layout.downloads_dir / f"{_safe_name(toolchain_id)}-{uuid.uuid4().hex}{suffix}"
        )
        temp_dir = Path(
            tempfile.mkdtemp(prefix=f".tmp-{_safe_name(toolchain_id)}-", dir=store_dir)
        )

        try:
            checksum = catalog_entry.checksum or self._lookup_checksum(
                catalog_entry, archive_name
            )
            if not checksum:
                logger.warning(
                    f"No checksum published for {toolchain_id}; download is not verified"
                )

            download_start = time.time()
            download_file(
                url=url,
                destination=archive_path,
                expected_sha256=checksum,
                progress_callback=progress_callback,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
                session=self.session,
            )
            download_time = time.time() - download_start

            logger.info(f"Extracting {archive_name}")
            extract_archive(archive_path, temp_dir)
            root = self._normalize_root_directory(temp_dir)

            executable = find_python_executable(root)
            if executable is None:
                raise ExtractionError(
                    f"Archive for {toolchain_id} does not contain a Python interpreter"
                )
            relative_executable = executable.relative_to(root)

            entry = ToolchainEntry(
                id=toolchain_id,
                install_path=install_dir,
                origin=Origin.FETCHED,
                executable=install_dir / relative_executable,
                source_url=url,
                checksum=f"sha256:{checksum.lower()}" if checksum else None,
            )
            self._install(root, install_dir, entry)

            return FetchResult(
                toolchain_id=toolchain_id,
                entry=entry,
                was_cached=False,
                download_time=download_time,
                total_size_bytes=directory_size(install_dir),
            )

        finally:
            archive_path.unlink(missing_ok=True)
            if temp_dir.exists():
                try:
                    safe_rmtree(temp_dir, require_prefix=store_dir)
                except FilesystemError as e:
                    logger.warning(f"Failed to remove temporary directory {temp_dir}: {e}")

    def _install(self, root: Path, install_dir: Path, entry: ToolchainEntry):
        """Move the extracted tree into place and record it in the registry."""
        store_dir = self.layout.store_dir
        previous_dir = None

        if install_dir.exists():
            # Forced refetch, or a stale directory left without a registry entry
            previous_dir = store_dir / f".tmp-old-{_safe_name(entry.id)}-{uuid.uuid4().hex[:8]}"
            os.replace(install_dir, previous_dir)

        os.replace(root, install_dir)

        try:
            if self.registry.get(entry.id) is not None:
                self.registry.replace(entry)
            else:
                self.registry.add(entry)
        except BaseException:
            safe_rmtree(install_dir, require_prefix=store_dir)
            if previous_dir is not None:
                os.replace(previous_dir, install_dir)
            raise

        if previous_dir is not None:
            try:
                safe_rmtree(previous_dir, require_prefix=store_dir)
            except FilesystemError as e:
                logger.warning(f"Failed to remove previous install {previous_dir}: {e}")

        logger.info(f"Installed {entry.id} to {install_dir}")

    def _normalize_root_directory(self, extract_dir: Path) -> Path:
        """
        Return the toolchain root inside an extraction directory.

        Archives with a single top-level folder (``python/``, ``pypy3.10-v7.3.17-linux64/``)
        are unwrapped; otherwise the extraction directory itself is the root.
        """
        items = list(extract_dir.iterdir())
        if len(items) == 1 and items[0].is_dir():
            return items[0]
        return extract_dir

    def _lookup_checksum(self, catalog_entry: CatalogEntry, archive_name: str) -> Optional[str]:
        """
        Fetch the published sha256 for an archive.

        ``checksum_url`` may point at a file holding a single digest or at a
        ``SHA256SUMS`` listing of ``<digest>  <file name>`` lines.
        """
        if not catalog_entry.checksum_url:
            return None

        http = self.session or requests
        try:
            response = http.get(catalog_entry.checksum_url, timeout=self.config.timeout)
            response.raise_for_status()
        except RequestException as e:
            raise DownloadError(
                f"Failed to fetch checksum for {catalog_entry.id}: {e}"
            ) from e

        for line in response.text.splitlines():
            parts = line.split()
            if len(parts) == 1 and _SHA256_RE.match(parts[0]):
                return parts[0]
            if len(parts) >= 2 and parts[-1].lstrip("*") == archive_name:
                if _SHA256_RE.match(parts[0]):
                    return parts[0]

        raise FetchError(
            f"Checksum for {archive_name} not found at {catalog_entry.checksum_url}"
        )

    def fetch_many(
        self,
        catalog_entries: Iterable[CatalogEntry],
        force: bool = False,
        max_workers: Optional[int] = None,
    ) -> BatchFetchResult:
        """
        Fetch several toolchains in parallel.

        Failures are collected per id instead of aborting the batch.

        Args:
            catalog_entries: Entries to fetch (duplicates are fetched once)
            force: Passed through to :meth:`fetch`
            max_workers: Worker threads (default: ``fetch.max_workers``)

        Returns:
            BatchFetchResult with per-id results and errors
        """
        unique: Dict[ToolchainId, CatalogEntry] = {}
        for catalog_entry in catalog_entries:
            unique.setdefault(catalog_entry.id, catalog_entry)

        batch = BatchFetchResult()
        if not unique:
            return batch

        workers = max(1, min(max_workers or self.config.max_workers, len(unique)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self.fetch, catalog_entry, force): toolchain_id
                for toolchain_id, catalog_entry in unique.items()
            }
            for future in as_completed(futures):
                toolchain_id = futures[future]
                try:
                    batch.results[toolchain_id] = future.result()
                except InterpkitError as e:
                    logger.error(f"Failed to fetch {toolchain_id}: {e}")
                    batch.errors[str(toolchain_id)] = e

        return batch


__all__ = ["BatchFetchResult", "FetchResult", "ToolchainFetcher"]
