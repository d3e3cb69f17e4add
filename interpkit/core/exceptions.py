"""
Centralized exception hierarchy for interpkit.

Lower layers raise these typed errors; only the CLI turns them into
human-readable messages and exit codes.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class InterpkitError(Exception):
    """Base exception for all interpkit errors."""

    pass


class ConfigError(InterpkitError):
    """Configuration file could not be parsed or validated."""

    pass


# ============================================================================
# Identity Exceptions
# ============================================================================


class ToolchainParseError(InterpkitError):
    """Base exception for malformed toolchain identity strings."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid toolchain '{text}': {reason}")


class InvalidFormatError(ToolchainParseError):
    """Version segment is not numeric-dot-delimited."""

    pass


class UnknownImplementationError(ToolchainParseError):
    """Implementation name is present but not recognised."""

    def __init__(self, text: str, implementation: str):
        self.implementation = implementation
        super().__init__(
            text,
            f"unknown implementation '{implementation}' "
            "(expected cpython, pypy or a custom-* name)",
        )


# ============================================================================
# Resolution Exceptions
# ============================================================================


class ResolveError(InterpkitError):
    """Base exception for toolchain resolution errors."""

    pass


class NoMatchError(ResolveError):
    """No known toolchain matches the request."""

    def __init__(self, request: str):
        self.request = request
        super().__init__(f"No toolchain matches '{request}'")


class AmbiguousImplementationError(ResolveError):
    """Several implementations match a request without an implementation."""

    def __init__(self, request: str, candidates):
        self.request = request
        self.candidates = list(candidates)
        names = ", ".join(str(c) for c in self.candidates)
        super().__init__(
            f"'{request}' is ambiguous, matches: {names}. "
            "Specify the implementation explicitly (e.g. cpython@...)."
        )


# ============================================================================
# Catalog Exceptions
# ============================================================================


class CatalogError(InterpkitError):
    """A catalog source could not be queried or returned bad data."""

    pass


# ============================================================================
# Fetch Exceptions
# ============================================================================


class FetchError(InterpkitError):
    """Base exception for toolchain fetch errors."""

    pass


class DownloadError(FetchError):
    """Network download failed after all retries."""

    pass


class ChecksumMismatchError(FetchError):
    """Downloaded archive does not match the published checksum."""

    def __init__(self, name: str, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {name}: expected {expected}, got {actual}"
        )


class ExtractionError(FetchError):
    """Archive could not be extracted or did not contain an interpreter."""

    pass


class UnsupportedArchiveFormat(ExtractionError):
    """Archive format is not supported."""

    pass


class InsecureArchiveError(ExtractionError):
    """Archive contains insecure paths (directory traversal attempt)."""

    pass


# ============================================================================
# Registry Exceptions
# ============================================================================


class RegistryError(InterpkitError):
    """Base exception for registry-related errors."""

    pass


class ToolchainNotFoundError(RegistryError):
    """Raised when a toolchain is not present in the registry."""

    def __init__(self, toolchain_id):
        self.toolchain_id = toolchain_id
        super().__init__(f"Toolchain not installed: {toolchain_id}")


class ToolchainExistsError(RegistryError):
    """Raised when registering an id that is already in the registry."""

    def __init__(self, toolchain_id):
        self.toolchain_id = toolchain_id
        super().__init__(f"Toolchain already registered: {toolchain_id}")


class RegistryLockTimeout(RegistryError):
    """Raised when registry lock cannot be acquired within timeout."""

    pass


# ============================================================================
# Registration / Pin Exceptions
# ============================================================================


class RegistrationError(InterpkitError):
    """Path does not contain a valid, runnable interpreter."""

    pass


class PinError(InterpkitError):
    """Pin file could not be read or written."""

    pass
