"""
Directory structure management for interpkit.

Directory Structure:
    Home (~/.interpkit/ or %USERPROFILE%\\.interpkit\\, or $INTERPKIT_HOME):
        - py/             : Fetched toolchain installations (one dir per id)
        - downloads/      : Archives being downloaded (removed after extraction)
        - lock/           : Concurrent access control files
        - registry.json   : Installed and registered toolchains
        - config.yaml     : Optional user configuration

    Project:
        - .python-version : Pinned toolchain request, one line
"""

import os
from pathlib import Path
from typing import Optional

from interpkit.core.exceptions import ConfigError

HOME_ENV_VAR = "INTERPKIT_HOME"
PIN_FILENAME = ".python-version"


def get_home_dir() -> Path:
    """
    Get the interpkit home directory.

    ``$INTERPKIT_HOME`` wins when set; otherwise the platform default is used.

    Returns:
        Path: The home directory path.
            - Windows: %USERPROFILE%\\.interpkit
            - Linux/macOS: ~/.interpkit/

    Example:
        >>> home = get_home_dir()
        >>> print(home)
        /home/user/.interpkit  # on Linux
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()

    if os.name == "nt":  # Windows
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine interpkit home directory."
            )
        return Path(user_profile) / ".interpkit"
    else:  # Linux/macOS
        return Path.home() / ".interpkit"


class HomeLayout:
    """Paths inside an interpkit home directory."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root) if root is not None else get_home_dir()

    @property
    def store_dir(self) -> Path:
        return self.root / "py"

    @property
    def downloads_dir(self) -> Path:
        return self.root / "downloads"

    @property
    def lock_dir(self) -> Path:
        return self.root / "lock"

    @property
    def registry_file(self) -> Path:
        return self.root / "registry.json"

    @property
    def config_file(self) -> Path:
        return self.root / "config.yaml"

    def ensure(self) -> "HomeLayout":
        """Create the directory skeleton if missing."""
        for directory in (self.store_dir, self.downloads_dir, self.lock_dir):
            directory.mkdir(parents=True, exist_ok=True)
        return self

    def __repr__(self) -> str:
        return f"HomeLayout({str(self.root)!r})"
