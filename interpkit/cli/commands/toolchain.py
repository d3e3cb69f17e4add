"""
Toolchain management commands.

This module implements the ``toolchain`` sub-commands:
- list: Show installed (and optionally downloadable) toolchains
- fetch: Download and install toolchains
- register: Register an interpreter installed elsewhere
- remove: Remove an installed or registered toolchain
"""

import json
import logging

from interpkit.cli.utils import (
    create_manager,
    print_error,
    print_warning,
    progress_printer,
    resolve_project_root,
    safe_print,
)
from interpkit.core.exceptions import InterpkitError

logger = logging.getLogger(__name__)


def run_list(args) -> int:
    """
    List toolchains.

    Args:
        args: Parsed command-line arguments with:
            - include_downloadable: Also list toolchains that can be fetched
            - format: 'text' or 'json'

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        manager = create_manager(args)
        items = manager.list_toolchains(include_downloadable=args.include_downloadable)
    except InterpkitError as e:
        print_error("Failed to list toolchains", str(e))
        return 1

    for warning in manager.warnings:
        print_warning(warning)

    if args.format == "json":
        payload = [
            {
                "id": str(item.id),
                "status": item.status.value,
                "path": str(item.install_path) if item.install_path else None,
                "download_url": (
                    item.catalog_entry.download_url if item.catalog_entry else None
                ),
            }
            for item in items
        ]
        safe_print(json.dumps(payload, indent=2))
        return 0

    for item in items:
        safe_print(f"{item.id} ({item.install_path or ''})")
    return 0


def run_fetch(args) -> int:
    """
    Fetch toolchains.

    Args:
        args: Parsed command-line arguments with:
            - requests: One or more toolchain requests
            - force: Re-download already fetched toolchains

    Returns:
        Exit code (0 if every request succeeded, 1 otherwise)
    """
    try:
        manager = create_manager(args)

        if len(args.requests) == 1:
            result = manager.fetch(
                args.requests[0],
                force=args.force,
                progress_callback=progress_printer(args.quiet),
            )
            results, errors = [result], {}
        else:
            batch = manager.fetch_many(args.requests, force=args.force)
            results, errors = list(batch.results.values()), batch.errors
    except InterpkitError as e:
        print_error("Failed to fetch toolchain", str(e))
        return 1

    for warning in manager.warnings:
        print_warning(warning)

    for result in sorted(results, key=lambda r: r.toolchain_id.sort_key()):
        if result.was_cached:
            safe_print(f"{result.toolchain_id} is already installed")
        else:
            safe_print(f"Fetched {result.toolchain_id} ({result.entry.install_path})")

    for key, error in sorted(errors.items()):
        print_error(f"Failed to fetch {key}", str(error))

    return 1 if errors else 0


def run_register(args) -> int:
    """
    Register an external interpreter.

    Args:
        args: Parsed command-line arguments with:
            - path: Interpreter binary or installation directory
            - name: Optional custom implementation name

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        manager = create_manager(args)
        entry = manager.register(args.path, name=args.name)
    except InterpkitError as e:
        print_error("Failed to register toolchain", str(e))
        return 1

    safe_print(f"Registered {entry.id} ({entry.executable})")
    return 0


def run_remove(args) -> int:
    """
    Remove a toolchain.

    Args:
        args: Parsed command-line arguments with:
            - toolchain_id: Fully specified id, e.g. cpython@3.11.4

    Returns:
        Exit code (0 for success, 1 for error)
    """
    try:
        manager = create_manager(args)
        entry = manager.remove(
            args.toolchain_id, project_path=resolve_project_root(args.project_root)
        )
    except InterpkitError as e:
        print_error("Failed to remove toolchain", str(e))
        return 1

    safe_print(f"Removed {entry.id}")
    return 0
