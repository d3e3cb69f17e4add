"""
Toolchain identity: parsing and formatting of interpreter identifiers.

A fully specified identifier names one concrete interpreter build::

    cpython@3.11.4
    pypy@3.10.13
    cpython@3.12.1+debug      # optional variant
    custom-corp@3.11.2        # registered with --name

A request is the partial form users type on the command line or write into
``.python-version``; any field may be left out and acts as a wildcard::

    3.11          # any implementation, any 3.11.x
    cpython@3     # newest CPython 3.x
    pypy          # newest PyPy
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from interpkit.core.exceptions import InvalidFormatError, UnknownImplementationError


class Implementation(str, Enum):
    """Interpreter implementations interpkit knows how to catalog."""

    CPYTHON = "cpython"
    PYPY = "pypy"


DEFAULT_IMPLEMENTATION = Implementation.CPYTHON.value
CUSTOM_PREFIX = "custom-"

_VERSION_RE = re.compile(r"^\d+(?:\.\d+){0,2}$")
_VARIANT_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
_CUSTOM_NAME_RE = re.compile(rf"^{CUSTOM_PREFIX}[a-z0-9][a-z0-9_.-]*$")


def normalize_implementation(name: str, text: str = "") -> str:
    """
    Validate and lowercase an implementation name.

    Known implementations are accepted as-is; anything else must use the
    ``custom-`` prefix reserved for registered interpreters.

    Raises:
        UnknownImplementationError: If the name is not recognised
    """
    lowered = name.strip().lower()
    if lowered in {impl.value for impl in Implementation}:
        return lowered
    if _CUSTOM_NAME_RE.match(lowered):
        return lowered
    raise UnknownImplementationError(text or name, name)


def _split(text: str) -> Tuple[Optional[str], str, Optional[str]]:
    """Split ``name@version+variant`` into its raw segments."""
    stripped = text.strip()
    if not stripped:
        raise InvalidFormatError(text, "empty toolchain string")
    if stripped.count("@") > 1:
        raise InvalidFormatError(text, "more than one '@'")

    if "@" in stripped:
        name, rest = stripped.split("@", 1)
        if not name:
            raise InvalidFormatError(text, "missing implementation before '@'")
    else:
        name, rest = None, stripped

    version, plus, variant = rest.partition("+")
    if plus and not _VARIANT_RE.match(variant):
        raise InvalidFormatError(text, f"invalid variant '{variant}'")

    return name, version, (variant if plus else None)


def _parse_version(text: str, version: str) -> Tuple[int, ...]:
    if not _VERSION_RE.match(version):
        raise InvalidFormatError(
            text, f"version '{version}' is not of the form MAJOR.MINOR[.PATCH]"
        )
    return tuple(int(part) for part in version.split("."))


@dataclass(frozen=True)
class ToolchainId:
    """Canonical identity of one interpreter build."""

    implementation: str
    version: Tuple[int, int, int]
    variant: Optional[str] = None

    def __post_init__(self):
        if len(self.version) != 3 or not all(
            isinstance(part, int) and part >= 0 for part in self.version
        ):
            raise ValueError(f"version must be a (major, minor, patch) triple: {self.version}")
        if self.variant is not None and not _VARIANT_RE.match(self.variant):
            raise ValueError(f"invalid variant: {self.variant!r}")

    @classmethod
    def parse(cls, text: str) -> "ToolchainId":
        """
        Parse a fully specified toolchain identifier.

        Accepts ``name@X.Y.Z``, ``name@X.Y`` (patch 0) and bare ``X.Y[.Z]``
        (implementation cpython), each with an optional ``+variant``.

        Raises:
            InvalidFormatError: If the version segment is malformed
            UnknownImplementationError: If the name is not recognised

        Example:
            >>> ToolchainId.parse("3.11.4")
            ToolchainId(implementation='cpython', version=(3, 11, 4), variant=None)
        """
        name, version, variant = _split(text)
        implementation = (
            normalize_implementation(name, text)
            if name is not None
            else DEFAULT_IMPLEMENTATION
        )

        parts = _parse_version(text, version)
        if len(parts) < 2:
            raise InvalidFormatError(
                text, f"version '{version}' needs at least MAJOR.MINOR"
            )
        if len(parts) == 2:
            parts = parts + (0,)

        return cls(implementation=implementation, version=parts, variant=variant)

    @property
    def major(self) -> int:
        return self.version[0]

    @property
    def minor(self) -> int:
        return self.version[1]

    @property
    def patch(self) -> int:
        return self.version[2]

    @property
    def version_string(self) -> str:
        return ".".join(str(part) for part in self.version)

    def format(self) -> str:
        """Render as ``<impl>@<major>.<minor>.<patch>[+variant]``."""
        rendered = f"{self.implementation}@{self.version_string}"
        if self.variant:
            rendered += f"+{self.variant}"
        return rendered

    def relaxed(self) -> str:
        """Render without the patch level, e.g. ``cpython@3.11``."""
        rendered = f"{self.implementation}@{self.major}.{self.minor}"
        if self.variant:
            rendered += f"+{self.variant}"
        return rendered

    def sort_key(self) -> Tuple[str, Tuple[int, int, int], str]:
        return (self.implementation, self.version, self.variant or "")

    def listing_key(self) -> Tuple[str, Tuple[int, ...], str]:
        """Implementation ascending, newest version first, then variant."""
        negated = tuple(-part for part in self.version)
        return (self.implementation, negated, self.variant or "")

    def __str__(self) -> str:
        return self.format()


@dataclass(frozen=True)
class ToolchainRequest:
    """A possibly partial toolchain identifier; ``None`` fields are wildcards."""

    implementation: Optional[str] = None
    major: Optional[int] = None
    minor: Optional[int] = None
    patch: Optional[int] = None
    variant: Optional[str] = None
    text: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> "ToolchainRequest":
        """
        Parse a request string.

        Besides every form :meth:`ToolchainId.parse` accepts, this allows a
        bare implementation (``pypy``) and a major-only version (``3``,
        ``cpython@3``). A bare version leaves the implementation unspecified.

        Raises:
            InvalidFormatError: If the version segment is malformed
            UnknownImplementationError: If the name is not recognised
        """
        name, version, variant = _split(text)

        if name is None and version and version[0].isalpha():
            # Bare implementation, e.g. "cpython" or "pypy+debug"
            name, version = version, ""

        implementation = (
            normalize_implementation(name, text) if name is not None else None
        )

        parts: Tuple[int, ...] = ()
        if version:
            parts = _parse_version(text, version)
        elif "@" in text:
            raise InvalidFormatError(text, "missing version after '@'")

        padded = parts + (None,) * (3 - len(parts))
        return cls(
            implementation=implementation,
            major=padded[0],
            minor=padded[1],
            patch=padded[2],
            variant=variant,
            text=text.strip(),
        )

    @property
    def is_exact(self) -> bool:
        """True when every field needed for a ToolchainId is present."""
        return (
            self.implementation is not None
            and self.major is not None
            and self.minor is not None
            and self.patch is not None
        )

    def to_id(self) -> ToolchainId:
        """Convert an exact request into a ToolchainId."""
        if not self.is_exact:
            raise ValueError(f"Request '{self}' is not fully specified")
        return ToolchainId(
            implementation=self.implementation,
            version=(self.major, self.minor, self.patch),
            variant=self.variant,
        )

    def matches(self, toolchain_id: ToolchainId) -> bool:
        """Check the non-wildcard fields against an identifier."""
        if (
            self.implementation is not None
            and self.implementation != toolchain_id.implementation
        ):
            return False
        for wanted, actual in zip(
            (self.major, self.minor, self.patch), toolchain_id.version
        ):
            if wanted is not None and wanted != actual:
                return False
        if self.variant is not None and self.variant != toolchain_id.variant:
            return False
        return True

    def __str__(self) -> str:
        if self.text:
            return self.text
        version = ".".join(
            str(part) for part in (self.major, self.minor, self.patch) if part is not None
        )
        rendered = self.implementation or ""
        if self.implementation and version:
            rendered += "@"
        rendered += version
        if self.variant:
            rendered += f"+{self.variant}"
        return rendered


__all__ = [
    "Implementation",
    "ToolchainId",
    "ToolchainRequest",
    "normalize_implementation",
    "DEFAULT_IMPLEMENTATION",
    "CUSTOM_PREFIX",
]
