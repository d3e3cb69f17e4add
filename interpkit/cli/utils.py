"""
Shared utilities for CLI commands.

Provides common functionality used across multiple CLI commands to
eliminate duplication and ensure consistent behavior.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from interpkit.core.config import InterpkitConfig
from interpkit.core.download import DownloadProgress, format_progress
from interpkit.toolchain.manager import ToolchainManager

logger = logging.getLogger(__name__)


# ============================================================================
# Manager Construction
# ============================================================================


def create_manager(args) -> ToolchainManager:
    """
    Build a ToolchainManager for the parsed global options.

    Args:
        args: Parsed arguments with an optional ``home`` attribute

    Raises:
        ConfigError: If config.yaml is invalid
        RegistryError: If registry.json is corrupt
    """
    home = getattr(args, "home", None)
    config = InterpkitConfig.load(home)
    return ToolchainManager(config)


def resolve_project_root(path: Optional[Path] = None) -> Path:
    """
    Resolve project root directory.

    Args:
        path: Optional path (default: current directory)

    Returns:
        Resolved absolute path
    """
    if path is None:
        path = Path.cwd()
    return Path(path).resolve()


# ============================================================================
# Output
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_warning(message: str):
    """Print warning message to stderr."""
    print(f"WARNING: {message}", file=sys.stderr)


def safe_print(message: str, file=None):
    """
    Print message with safe encoding handling for Windows console.

    Characters the console cannot encode are replaced.

    Args:
        message: Message to print
        file: Output file (default: stdout)
    """
    try:
        print(message, file=file)
    except UnicodeEncodeError:
        stream = file or sys.stdout
        encoding = getattr(stream, "encoding", None) or "ascii"
        print(message.encode(encoding, errors="replace").decode(encoding), file=file)


def progress_printer(quiet: bool = False):
    """
    Return a download progress callback writing to stderr, or None.

    Progress is only shown on an interactive terminal.
    """
    if quiet or not sys.stderr.isatty():
        return None

    def report(progress: DownloadProgress):
        sys.stderr.write(f"\r  {format_progress(progress)}")
        if progress.bytes_downloaded >= progress.total_bytes:
            sys.stderr.write("\n")
        sys.stderr.flush()

    return report
