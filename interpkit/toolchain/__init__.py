"""
Toolchain management module for interpkit.

This module provides functionality for:
- Toolchain identity parsing and formatting
- Catalog sources and the merged catalog index
- Request resolution
- Toolchain download, extraction and registration
- Project pins
"""

from interpkit.toolchain.identity import (
    Implementation,
    ToolchainId,
    ToolchainRequest,
)
from interpkit.toolchain.interpreter import (
    InterpreterInfo,
    find_python_executable,
    inspect_interpreter,
    is_executable,
)
from interpkit.toolchain.registry import (
    Origin,
    ToolchainEntry,
    ToolchainRegistry,
)
from interpkit.toolchain.sources import (
    CatalogEntry,
    LocalRegistrationSource,
    ManifestCatalog,
    PyPyCatalog,
    SourceProvider,
)
from interpkit.toolchain.catalog import (
    CatalogIndex,
    ListedToolchain,
    ToolchainStatus,
)
from interpkit.toolchain.resolver import (
    Resolution,
    Resolver,
)
from interpkit.toolchain.fetcher import (
    BatchFetchResult,
    FetchResult,
    ToolchainFetcher,
)
from interpkit.toolchain.pins import (
    PinRecord,
    PinStore,
)
from interpkit.toolchain.manager import ToolchainManager

__all__ = [
    # Identity
    "Implementation",
    "ToolchainId",
    "ToolchainRequest",
    # Interpreter
    "InterpreterInfo",
    "find_python_executable",
    "inspect_interpreter",
    "is_executable",
    # Registry
    "Origin",
    "ToolchainEntry",
    "ToolchainRegistry",
    # Sources
    "CatalogEntry",
    "LocalRegistrationSource",
    "ManifestCatalog",
    "PyPyCatalog",
    "SourceProvider",
    # Catalog
    "CatalogIndex",
    "ListedToolchain",
    "ToolchainStatus",
    # Resolution
    "Resolution",
    "Resolver",
    # Fetching
    "BatchFetchResult",
    "FetchResult",
    "ToolchainFetcher",
    # Pins
    "PinRecord",
    "PinStore",
    # Facade
    "ToolchainManager",
]
