"""
interpkit CLI argument parser.

This module implements the command-line interface for interpkit using argparse.
"""

import argparse
import importlib
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import List, Optional

try:
    __version__ = version("interpkit")
except PackageNotFoundError:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """interpkit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="interpkit",
            description="interpkit - Python toolchain manager",
            epilog='Use "interpkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"interpkit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--home",
            type=Path,
            metavar="PATH",
            help="interpkit home directory (default: $INTERPKIT_HOME or ~/.interpkit)",
        )
        parser.add_argument(
            "--project-root",
            type=Path,
            metavar="PATH",
            default=Path.cwd(),
            help="Project root directory (default: current directory)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_pin_command(subparsers)
        self._add_toolchain_command(subparsers)
        self._add_fetch_command(subparsers)

        return parser

    def _add_pin_command(self, subparsers):
        """Add 'pin' subcommand."""
        parser = subparsers.add_parser(
            "pin",
            help="Pin the project to a toolchain",
            description="Write a toolchain request to the project's .python-version",
        )
        parser.add_argument(
            "request", help="Toolchain request (e.g., 3.11, cpython@3.11.4, pypy@3.10)"
        )
        parser.add_argument(
            "--relaxed",
            action="store_true",
            help="Pin the resolved toolchain without its patch level",
        )

    def _add_fetch_arguments(self, parser):
        parser.add_argument(
            "requests",
            nargs="+",
            metavar="REQUEST",
            help="Toolchain requests to fetch (e.g., cpython@3.12)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Re-download toolchains that are already fetched",
        )

    def _add_fetch_command(self, subparsers):
        """Add 'fetch' subcommand (alias of 'toolchain fetch')."""
        parser = subparsers.add_parser(
            "fetch",
            help="Fetch toolchains (alias of 'toolchain fetch')",
            description="Download and install toolchains",
        )
        self._add_fetch_arguments(parser)

    def _add_toolchain_command(self, subparsers):
        """Add 'toolchain' subcommand with sub-subcommands."""
        parser = subparsers.add_parser(
            "toolchain",
            help="Manage toolchains",
            description="Manage interpreter toolchains (list, fetch, register, remove)",
        )

        toolchain_subparsers = parser.add_subparsers(
            dest="toolchain_command",
            help="Toolchain management commands",
            metavar="COMMAND",
        )

        # toolchain list
        list_parser = toolchain_subparsers.add_parser(
            "list",
            help="List toolchains",
            description="Show installed toolchains",
        )
        list_parser.add_argument(
            "--include-downloadable",
            action="store_true",
            help="Also list toolchains available for download",
        )
        list_parser.add_argument(
            "--format",
            choices=["text", "json"],
            default="text",
            help="Output format [default: text]",
        )

        # toolchain fetch
        fetch_parser = toolchain_subparsers.add_parser(
            "fetch",
            help="Fetch toolchains",
            description="Download and install toolchains",
        )
        self._add_fetch_arguments(fetch_parser)

        # toolchain register
        register_parser = toolchain_subparsers.add_parser(
            "register",
            help="Register an external interpreter",
            description="Register an interpreter installed outside interpkit",
        )
        register_parser.add_argument(
            "path", type=Path, help="Interpreter binary or installation directory"
        )
        register_parser.add_argument(
            "--name",
            metavar="NAME",
            help="Custom implementation name (must start with 'custom-')",
        )

        # toolchain remove
        remove_parser = toolchain_subparsers.add_parser(
            "remove",
            help="Remove a toolchain",
            description="Remove a fetched or registered toolchain",
        )
        remove_parser.add_argument(
            "toolchain_id", metavar="TOOLCHAIN", help="Toolchain id (e.g., cpython@3.11.4)"
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        # Configure logging
        self._configure_logging(parsed_args)

        # Check if command specified
        if not parsed_args.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        if args.command == "toolchain":
            return self._dispatch_toolchain_command(args)

        # Command module mapping: (module, function)
        command_map = {
            "pin": ("interpkit.cli.commands.pin", "run"),
            "fetch": ("interpkit.cli.commands.toolchain", "run_fetch"),
        }

        target = command_map.get(args.command)
        if not target:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module_name, function_name = target
        module = importlib.import_module(module_name)
        return getattr(module, function_name)(args)

    def _dispatch_toolchain_command(self, args) -> int:
        """
        Dispatch toolchain sub-commands.

        Args:
            args: Parsed arguments with toolchain_command field

        Returns:
            Exit code from command handler
        """
        if not getattr(args, "toolchain_command", None):
            logger.error("No toolchain sub-command specified")
            self.parser.parse_args(["toolchain", "--help"])
            return 1

        from interpkit.cli.commands import toolchain

        toolchain_command_map = {
            "list": toolchain.run_list,
            "fetch": toolchain.run_fetch,
            "register": toolchain.run_register,
            "remove": toolchain.run_remove,
        }

        handler = toolchain_command_map.get(args.toolchain_command)
        if not handler:
            logger.error(f"Unknown toolchain command: {args.toolchain_command}")
            return 1

        return handler(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
