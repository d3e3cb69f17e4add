"""
Core functionality for interpkit.

This package contains the foundational modules that the toolchain layer
depends on: errors, directories, configuration, locking, downloads and
filesystem helpers.
"""

from .config import (
    CatalogConfig,
    FetchConfig,
    InterpkitConfig,
    RegistryConfig,
)

from .directory import (
    HomeLayout,
    get_home_dir,
)

from .locking import (
    LockManager,
)

from .platform import (
    detect_platform,
)

from .exceptions import (
    InterpkitError,
    ConfigError,
    ToolchainParseError,
    InvalidFormatError,
    UnknownImplementationError,
    ResolveError,
    NoMatchError,
    AmbiguousImplementationError,
    CatalogError,
    FetchError,
    DownloadError,
    ChecksumMismatchError,
    ExtractionError,
    RegistryError,
    ToolchainNotFoundError,
    ToolchainExistsError,
    RegistryLockTimeout,
    RegistrationError,
    PinError,
)

__all__ = [
    # Config
    "CatalogConfig",
    "FetchConfig",
    "InterpkitConfig",
    "RegistryConfig",
    # Directories
    "HomeLayout",
    "get_home_dir",
    # Locking
    "LockManager",
    # Platform
    "detect_platform",
    # Exceptions
    "InterpkitError",
    "ConfigError",
    "ToolchainParseError",
    "InvalidFormatError",
    "UnknownImplementationError",
    "ResolveError",
    "NoMatchError",
    "AmbiguousImplementationError",
    "CatalogError",
    "FetchError",
    "DownloadError",
    "ChecksumMismatchError",
    "ExtractionError",
    "RegistryError",
    "ToolchainNotFoundError",
    "ToolchainExistsError",
    "RegistryLockTimeout",
    "RegistrationError",
    "PinError",
]
