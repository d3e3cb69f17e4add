"""YAML configuration for interpkit.

Reads ``<home>/config.yaml``. Every section is optional; a missing file
yields the defaults.

Example::

    version: 1
    catalogs:
      - kind: manifest
        name: mirror
        url: https://example.com/interpreters.json
      - kind: pypy
    fetch:
      max_retries: 3
      timeout: 30
      max_workers: 4
    registry:
      lock_timeout: 30
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from interpkit.core.directory import HomeLayout
from interpkit.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

CATALOG_KINDS = ("manifest", "pypy")
PYPY_VERSIONS_URL = "https://downloads.python.org/pypy/versions.json"


@dataclass
class CatalogConfig:
    """A remote catalog source."""

    kind: str  # 'manifest', 'pypy'
    name: str
    url: Optional[str] = None  # None → bundled manifest / default PyPy URL


@dataclass
class FetchConfig:
    """Download behaviour."""

    max_retries: int = 3
    timeout: int = 30
    max_workers: int = 4


@dataclass
class RegistryConfig:
    """Registry persistence behaviour."""

    lock_timeout: float = 30


def default_catalogs() -> List[CatalogConfig]:
    """Bundled CPython builds plus the official PyPy listing."""
    return [
        CatalogConfig(kind="manifest", name="cpython"),
        CatalogConfig(kind="pypy", name="pypy", url=PYPY_VERSIONS_URL),
    ]


@dataclass
class InterpkitConfig:
    """Complete interpkit configuration."""

    home: HomeLayout = field(default_factory=HomeLayout)
    catalogs: List[CatalogConfig] = field(default_factory=default_catalogs)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    registry: RegistryConfig = field(default_factory=RegistryConfig)
    platform: Optional[str] = None  # None → detect

    @classmethod
    def load(cls, home: Optional[Path] = None) -> "InterpkitConfig":
        """
        Load configuration for a home directory.

        Args:
            home: Home directory (default: $INTERPKIT_HOME or ~/.interpkit)

        Returns:
            Parsed configuration (defaults when config.yaml is absent)

        Raises:
            ConfigError: If config.yaml is invalid
        """
        layout = HomeLayout(home)
        config_file = layout.config_file

        if not config_file.exists():
            logger.debug(f"Config file not found (optional): {config_file}")
            return cls(home=layout)

        logger.debug(f"Loading configuration from {config_file}")
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read {config_file}: {e}") from e

        return parse_config(data or {}, layout)


def parse_config(data: dict, layout: HomeLayout) -> InterpkitConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    version = data.get("version", 1)
    if version != 1:
        raise ConfigError(f"Unsupported version: {version} (expected 1)")

    config = InterpkitConfig(home=layout)

    if "catalogs" in data:
        config.catalogs = _parse_catalogs(data["catalogs"])
    if "fetch" in data:
        config.fetch = _parse_fetch(data["fetch"] or {})
    if "registry" in data:
        config.registry = _parse_registry(data["registry"] or {})

    platform_key = data.get("platform")
    if platform_key is not None:
        if not isinstance(platform_key, str) or "-" not in platform_key:
            raise ConfigError(
                f"Invalid platform '{platform_key}' (expected e.g. 'linux-x64')"
            )
        config.platform = platform_key

    return config


def _parse_catalogs(data) -> List[CatalogConfig]:
    if not isinstance(data, list):
        raise ConfigError("'catalogs' must be a list")

    catalogs = []
    names = set()
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise ConfigError(f"catalogs[{i}] must be a mapping")

        kind = item.get("kind")
        if kind not in CATALOG_KINDS:
            raise ConfigError(
                f"catalogs[{i}]: invalid kind '{kind}' "
                f"(expected one of: {', '.join(CATALOG_KINDS)})"
            )

        name = item.get("name") or kind
        if not isinstance(name, str):
            raise ConfigError(f"catalogs[{i}]: name must be a string")
        if name in names:
            raise ConfigError(f"Duplicate catalog name: {name}")
        names.add(name)

        url = item.get("url")
        if url is not None and not isinstance(url, str):
            raise ConfigError(f"catalogs[{i}]: url must be a string")
        if kind == "pypy" and not url:
            url = PYPY_VERSIONS_URL

        catalogs.append(CatalogConfig(kind=kind, name=name, url=url))

    return catalogs


def _positive_int(section: str, key: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{section}.{key} must be a positive integer, got {value!r}")
    return value


def _parse_fetch(data: dict) -> FetchConfig:
    if not isinstance(data, dict):
        raise ConfigError("'fetch' must be a mapping")
    defaults = FetchConfig()
    return FetchConfig(
        max_retries=_positive_int(
            "fetch", "max_retries", data.get("max_retries", defaults.max_retries)
        ),
        timeout=_positive_int("fetch", "timeout", data.get("timeout", defaults.timeout)),
        max_workers=_positive_int(
            "fetch", "max_workers", data.get("max_workers", defaults.max_workers)
        ),
    )


def _parse_registry(data: dict) -> RegistryConfig:
    if not isinstance(data, dict):
        raise ConfigError("'registry' must be a mapping")
    timeout = data.get("lock_timeout", RegistryConfig.lock_timeout)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
        raise ConfigError(
            f"registry.lock_timeout must be a non-negative number, got {timeout!r}"
        )
    return RegistryConfig(lock_timeout=timeout)
