"""
High-level toolchain management.

ToolchainManager wires the registry, catalogs, resolver, fetcher and pin
store together for one interpkit home directory. The CLI talks only to this
class.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

import requests

from interpkit.core.config import InterpkitConfig
from interpkit.core.download import DownloadProgress
from interpkit.core.exceptions import (
    FetchError,
    InterpkitError,
    NoMatchError,
    PinError,
    RegistrationError,
    ToolchainNotFoundError,
)
from interpkit.core.locking import LockManager
from interpkit.core.platform import detect_platform
from interpkit.toolchain.catalog import CatalogIndex, ListedToolchain
from interpkit.toolchain.fetcher import BatchFetchResult, FetchResult, ToolchainFetcher
from interpkit.toolchain.identity import (
    CUSTOM_PREFIX,
    Implementation,
    ToolchainId,
    ToolchainRequest,
    normalize_implementation,
)
from interpkit.toolchain.interpreter import find_python_executable, inspect_interpreter
from interpkit.toolchain.pins import PinRecord, PinStore
from interpkit.toolchain.registry import Origin, ToolchainEntry, ToolchainRegistry
from interpkit.toolchain.resolver import Resolution, Resolver
from interpkit.toolchain.sources import CatalogEntry, SourceProvider, create_remote_sources

logger = logging.getLogger(__name__)


class ToolchainManager:
    """
    Facade over every toolchain operation.

    Example:
        >>> manager = ToolchainManager(InterpkitConfig.load())
        >>> manager.fetch("cpython@3.11")
        >>> manager.pin(Path.cwd(), "cpython@3.11")
    """

    def __init__(
        self,
        config: Optional[InterpkitConfig] = None,
        sources: Optional[Sequence[SourceProvider]] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Loaded configuration (default: load from the default home)
            sources: Catalog providers to use instead of the configured ones
            session: Optional requests session shared by catalogs and downloads

        Raises:
            RegistryError: If the registry file is corrupt
        """
        self.config = config or InterpkitConfig.load()
        self.layout = self.config.home
        self.platform = self.config.platform or detect_platform()

        self.lock_manager = LockManager(self.layout.lock_dir)
        self.registry = ToolchainRegistry(
            self.layout.registry_file,
            self.lock_manager,
            self.layout.store_dir,
            lock_timeout=self.config.registry.lock_timeout,
        )

        if sources is None:
            sources = create_remote_sources(
                self.config.catalogs,
                self.platform,
                session=session,
                timeout=self.config.fetch.timeout,
            )
        self.index = CatalogIndex(self.registry, sources)
        self.resolver = Resolver(self.index)
        self.fetcher = ToolchainFetcher(
            self.registry,
            self.layout,
            self.lock_manager,
            config=self.config.fetch,
            session=session,
        )
        self.pins = PinStore()

        logger.debug(f"Toolchain manager for {self.layout} on {self.platform}")

    @property
    def warnings(self) -> List[str]:
        """Catalog problems encountered so far."""
        return self.index.warnings

    # ------------------------------------------------------------------
    # Listing and resolution
    # ------------------------------------------------------------------

    def list_toolchains(self, include_downloadable: bool = False) -> List[ListedToolchain]:
        return self.index.list(include_downloadable=include_downloadable)

    def resolve(
        self, request: Union[str, ToolchainRequest], include_downloadable: bool = True
    ) -> Resolution:
        return self.resolver.resolve(request, include_downloadable=include_downloadable)

    def resolve_pin(self, project_path: Path) -> Resolution:
        """
        Resolve the pin governing a project directory.

        Raises:
            PinError: If no pin file is found
            ResolveError: If the pinned request no longer matches anything
        """
        record = self.pins.find(project_path)
        if record is None:
            raise PinError(f"No .python-version found in {project_path} or its parents")
        return self.resolver.resolve(record.toolchain_request)

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _resolve_for_fetch(
        self, request: Union[str, ToolchainRequest], force: bool
    ) -> Resolution:
        # An installed match always wins, so catalogs are only consulted when
        # nothing installed matches or a fresh download is forced
        if not force:
            try:
                return self.resolver.resolve(request, include_downloadable=False)
            except NoMatchError:
                pass
        return self.resolver.resolve(request)

    def _download_entry(self, resolution: Resolution) -> CatalogEntry:
        catalog_entry = resolution.catalog_entry or self.index.find(resolution.toolchain_id)
        if catalog_entry is None:
            raise FetchError(f"No download available for {resolution.toolchain_id}")
        return catalog_entry

    def fetch(
        self,
        request: Union[str, ToolchainRequest],
        force: bool = False,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ) -> FetchResult:
        """
        Make sure a toolchain matching request is installed.

        Installed matches are returned without network access unless force
        is set.

        Raises:
            ToolchainParseError: If the request is malformed
            ResolveError: If nothing matches
            FetchError: If the download or installation fails
        """
        resolution = self._resolve_for_fetch(request, force)

        if not resolution.needs_fetch and not force:
            logger.info(f"{resolution.toolchain_id} is already installed")
            return FetchResult(
                toolchain_id=resolution.toolchain_id,
                entry=resolution.entry,
                was_cached=True,
            )

        return self.fetcher.fetch(
            self._download_entry(resolution),
            force=force,
            progress_callback=progress_callback,
        )

    def fetch_many(
        self, requests_: Iterable[Union[str, ToolchainRequest]], force: bool = False
    ) -> BatchFetchResult:
        """
        Fetch several requests with a bounded worker pool.

        Resolution failures are reported in the result alongside fetch failures.
        """
        batch = BatchFetchResult()
        to_fetch: List[CatalogEntry] = []

        for request in requests_:
            try:
                resolution = self._resolve_for_fetch(request, force)
                if not resolution.needs_fetch and not force:
                    batch.results[resolution.toolchain_id] = FetchResult(
                        toolchain_id=resolution.toolchain_id,
                        entry=resolution.entry,
                        was_cached=True,
                    )
                    continue
                to_fetch.append(self._download_entry(resolution))
            except InterpkitError as e:
                logger.error(f"Cannot fetch '{request}': {e}")
                batch.errors[str(request)] = e

        fetched = self.fetcher.fetch_many(to_fetch, force=force)
        batch.results.update(fetched.results)
        batch.errors.update(fetched.errors)
        return batch

    # ------------------------------------------------------------------
    # Registration and removal
    # ------------------------------------------------------------------

    def register(self, path: Path, name: Optional[str] = None) -> ToolchainEntry:
        """
        Register an interpreter that lives outside the managed store.

        Args:
            path: Interpreter binary or its installation directory
            name: Custom implementation name (must start with ``custom-``)

        Returns:
            The new registry entry

        Raises:
            RegistrationError: If path holds no runnable interpreter
            UnknownImplementationError: If name is not a valid custom name
            ToolchainExistsError: If the resulting id is already registered
        """
        path = Path(path).expanduser().absolute()
        executable = find_python_executable(path)
        if executable is None:
            raise RegistrationError(f"No Python interpreter found at {path}")

        info = inspect_interpreter(executable)

        if name:
            implementation = normalize_implementation(name)
            if implementation in {impl.value for impl in Implementation}:
                raise RegistrationError(
                    f"Custom name '{name}' must start with '{CUSTOM_PREFIX}'"
                )
        else:
            known = {impl.value for impl in Implementation}
            if info.implementation not in known:
                raise RegistrationError(
                    f"{executable} is a '{info.implementation}' interpreter; "
                    f"register it with --name {CUSTOM_PREFIX}<name>"
                )
            implementation = info.implementation

        entry = ToolchainEntry(
            id=ToolchainId(implementation=implementation, version=info.version),
            install_path=path,
            origin=Origin.REGISTERED,
            executable=executable,
        )
        self.registry.add(entry)
        return entry

    def remove(
        self, toolchain_id: Union[str, ToolchainId], project_path: Optional[Path] = None
    ) -> ToolchainEntry:
        """
        Remove an installed or registered toolchain.

        Pins are never consulted to block removal; if the pin of project_path
        currently resolves to the removed id a warning is logged.

        Raises:
            ToolchainParseError: If toolchain_id is malformed
            ToolchainNotFoundError: If the id is not installed
        """
        if isinstance(toolchain_id, str):
            toolchain_id = ToolchainId.parse(toolchain_id)

        if toolchain_id not in self.registry:
            raise ToolchainNotFoundError(toolchain_id)

        pinned = self._pinned_record(toolchain_id, project_path)
        entry = self.registry.remove(toolchain_id)

        if pinned is not None:
            logger.warning(
                f"{toolchain_id} was pinned by {pinned.pin_file} "
                f"('{pinned.toolchain_request}'); that pin no longer resolves to it"
            )
        return entry

    def _pinned_record(
        self, toolchain_id: ToolchainId, project_path: Optional[Path]
    ) -> Optional[PinRecord]:
        if project_path is None:
            return None
        try:
            record = self.pins.find(project_path)
            if record is None:
                return None
            resolution = self.resolver.resolve(
                record.toolchain_request, include_downloadable=False
            )
        except InterpkitError as e:
            logger.debug(f"Pin check skipped: {e}")
            return None
        return record if resolution.toolchain_id == toolchain_id else None

    # ------------------------------------------------------------------
    # Pinning
    # ------------------------------------------------------------------

    def pin(self, project_path: Path, request: str, relaxed: bool = False) -> PinRecord:
        """
        Pin a project to a toolchain request.

        The request must resolve against installed or downloadable toolchains.
        By default it is written as typed; with relaxed the resolved toolchain
        is written without its patch level (``cpython@3.11``).

        Raises:
            ToolchainParseError: If the request is malformed
            ResolveError: If the request matches nothing
            PinError: If the pin file cannot be written
        """
        resolution = self.resolver.resolve(request)
        text = resolution.toolchain_id.relaxed() if relaxed else request
        return self.pins.write(project_path, text)


__all__ = ["ToolchainManager"]
