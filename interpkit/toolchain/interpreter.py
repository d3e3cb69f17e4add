"""
Interpreter discovery and inspection.

Locates the interpreter binary inside an installation directory and asks a
binary which implementation and version it is, by running a short probe
script and reading the JSON it prints.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from interpkit.core.exceptions import RegistrationError

logger = logging.getLogger(__name__)

PROBE_SCRIPT = (
    "import json, sys; "
    "print(json.dumps({"
    "'implementation': sys.implementation.name, "
    "'version': list(sys.version_info[:3])"
    "}))"
)


@dataclass
class InterpreterInfo:
    """What an interpreter reported about itself."""

    implementation: str
    version: Tuple[int, int, int]
    executable: Path


def _candidates(root: Path) -> List[Path]:
    if os.name == "nt":  # Windows
        return [
            root / "python.exe",
            root / "pypy3.exe",
            root / "pypy.exe",
            root / "python" / "python.exe",
            root / "Scripts" / "python.exe",
        ]
    return [
        root / "bin" / "python3",
        root / "bin" / "python",
        root / "bin" / "pypy3",
        root / "bin" / "pypy",
        root / "python" / "bin" / "python3",  # python-build-standalone layout
        root / "python" / "bin" / "python",
        root / "install" / "bin" / "python3",
    ]


def is_executable(path: Path) -> bool:
    """True when path is a regular file the current user may execute."""
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)


def find_python_executable(path: Path) -> Optional[Path]:
    """
    Find the interpreter binary for a path.

    Args:
        path: Either an interpreter binary or an installation directory

    Returns:
        Path to the interpreter, or None if nothing executable was found

    Example:
        >>> find_python_executable(Path('/opt/python3.11'))
        PosixPath('/opt/python3.11/bin/python3')
    """
    path = Path(path)

    if path.is_file():
        return path if is_executable(path) else None

    if not path.is_dir():
        return None

    for candidate in _candidates(path):
        if is_executable(candidate):
            return candidate

    logger.debug(f"No interpreter found under {path}")
    return None


def inspect_interpreter(executable: Path, timeout: int = 10) -> InterpreterInfo:
    """
    Run an interpreter and report its implementation and version.

    Args:
        executable: Interpreter binary
        timeout: Seconds to wait for the probe

    Returns:
        InterpreterInfo with the reported implementation and version

    Raises:
        RegistrationError: If the binary cannot be run or reports garbage
    """
    executable = Path(executable)
    if not is_executable(executable):
        raise RegistrationError(f"Not an executable interpreter: {executable}")

    try:
        result = subprocess.run(
            [str(executable), "-c", PROBE_SCRIPT],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            env={**os.environ, "PYTHONNOUSERSITE": "1"},
        )
    except subprocess.TimeoutExpired as e:
        raise RegistrationError(
            f"Interpreter {executable} did not respond within {timeout}s"
        ) from e
    except OSError as e:
        raise RegistrationError(f"Failed to run interpreter {executable}: {e}") from e

    if result.returncode != 0:
        raise RegistrationError(
            f"Interpreter {executable} exited with {result.returncode}: "
            f"{result.stderr.strip()[:200]}"
        )

    try:
        data = json.loads(result.stdout.strip().splitlines()[-1])
        implementation = str(data["implementation"]).lower()
        version = tuple(int(part) for part in data["version"])
        if len(version) != 3:
            raise ValueError(f"expected 3 version components, got {version}")
    except (IndexError, KeyError, TypeError, ValueError) as e:
        raise RegistrationError(
            f"Unexpected output from {executable}: {result.stdout.strip()[:200]}"
        ) from e

    logger.debug(f"{executable} reports {implementation} {version}")
    return InterpreterInfo(
        implementation=implementation, version=version, executable=executable
    )


__all__ = [
    "InterpreterInfo",
    "find_python_executable",
    "inspect_interpreter",
    "is_executable",
]
