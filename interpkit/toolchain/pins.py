"""Project pins stored in ``.python-version`` files."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from interpkit.core.directory import PIN_FILENAME
from interpkit.core.exceptions import PinError
from interpkit.core.filesystem import atomic_write
from interpkit.toolchain.identity import ToolchainRequest

logger = logging.getLogger(__name__)


@dataclass
class PinRecord:
    """A project's pinned toolchain request, as written in its pin file."""

    project_path: Path
    toolchain_request: str
    pin_file: Path

    @property
    def request(self) -> ToolchainRequest:
        return ToolchainRequest.parse(self.toolchain_request)


class PinStore:
    """
    Reads and writes pin files.

    The store only records requests; it never checks that a pinned
    toolchain exists.
    """

    def __init__(self, filename: str = PIN_FILENAME):
        self.filename = filename

    def read(self, project_path: Path) -> Optional[PinRecord]:
        """
        Read the pin in a project directory.

        Returns:
            PinRecord, or None if the directory has no pin file or it is blank

        Raises:
            PinError: If the pin file exists but cannot be read
        """
        project_path = Path(project_path)
        pin_file = project_path / self.filename
        if not pin_file.is_file():
            return None

        try:
            content = pin_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise PinError(f"Cannot read {pin_file}: {e}") from e

        for line in content.splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                return PinRecord(
                    project_path=project_path, toolchain_request=line, pin_file=pin_file
                )

        logger.debug(f"{pin_file} is empty")
        return None

    def find(self, start: Path) -> Optional[PinRecord]:
        """Walk up from start to the nearest directory with a pin."""
        start = Path(start).absolute()
        for directory in (start, *start.parents):
            record = self.read(directory)
            if record is not None:
                logger.debug(f"Found pin '{record.toolchain_request}' in {record.pin_file}")
                return record
        return None

    def write(self, project_path: Path, request: str) -> PinRecord:
        """
        Pin a project to a toolchain request.

        Args:
            project_path: Project root directory
            request: Request string, written verbatim (stripped)

        Returns:
            The new PinRecord

        Raises:
            ToolchainParseError: If request is not a valid toolchain request
            PinError: If the pin file cannot be written
        """
        project_path = Path(project_path)
        text = request.strip()
        ToolchainRequest.parse(text)

        if not project_path.is_dir():
            raise PinError(f"Project directory does not exist: {project_path}")

        pin_file = project_path / self.filename
        try:
            atomic_write(pin_file, text + "\n")
        except OSError as e:
            raise PinError(f"Cannot write {pin_file}: {e}") from e

        logger.info(f"Pinned {project_path} to {text}")
        return PinRecord(project_path=project_path, toolchain_request=text, pin_file=pin_file)


__all__ = ["PinRecord", "PinStore"]
