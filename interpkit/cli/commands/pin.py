"""
Pin command implementation.

Writes the project's ``.python-version`` file.
"""

import logging

from interpkit.cli.utils import create_manager, print_error, resolve_project_root, safe_print
from interpkit.core.exceptions import InterpkitError

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the pin command.

    Args:
        args: Parsed command-line arguments with:
            - request: Toolchain request to pin
            - relaxed: Write the resolved toolchain without its patch level
            - project_root: Project directory

    Returns:
        Exit code (0 for success, 1 for error)
    """
    project_root = resolve_project_root(args.project_root)
    logger.debug(f"Pinning {project_root} to '{args.request}'")

    try:
        manager = create_manager(args)
        record = manager.pin(project_root, args.request, relaxed=args.relaxed)
    except InterpkitError as e:
        print_error(f"Failed to pin '{args.request}'", str(e))
        return 1

    safe_print(f"Pinned {record.project_path} to {record.toolchain_request}")
    return 0
