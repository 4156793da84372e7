"""
ChromiumKit CLI argument parser.

This module implements the command-line interface for ChromiumKit using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from chromiumkit.core.platform import PlatformTag

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("chromiumkit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)

PLATFORM_CHOICES = [tag.value for tag in PlatformTag]


class CLI:
    """ChromiumKit command-line interface."""

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
            prog="chromiumkit",
            description="ChromiumKit - provision pinned Chromium snapshot builds",
            epilog='Use "chromiumkit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"ChromiumKit {__version__}"
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
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: $CHROMIUMKIT_CONFIG)",
        )
        parser.add_argument(
            "--install-root",
            type=Path,
            metavar="PATH",
            help="Local install folder (default: ./.chromiumkit)",
        )
        parser.add_argument(
            "--cache-root",
            type=Path,
            metavar="PATH",
            help="Shared cache folder (default: ~/.chromium-cache)",
        )

        # Subcommands
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_provision_command(subparsers)
        self._add_path_command(subparsers)
        self._add_clean_command(subparsers)

        return parser

    def _add_build_arguments(self, parser):
        """Add --platform/--revision shared by all subcommands."""
        parser.add_argument(
            "--platform",
            choices=PLATFORM_CHOICES,
            metavar="PLATFORM",
            help=f"Target platform ({'|'.join(PLATFORM_CHOICES)}) [default: host]",
        )
        parser.add_argument(
            "--revision",
            metavar="REV",
            help="Chromium revision [default: from config]",
        )

    def _add_provision_command(self, subparsers):
        """Add 'provision' subcommand."""
        parser = subparsers.add_parser(
            "provision",
            help="Download Chromium if needed and print its path",
            description="Ensure a Chromium build is installed locally and print the executable path",
        )
        self._add_build_arguments(parser)
        parser.add_argument(
            "--no-log",
            action="store_true",
            help="Do not print download start/done notices",
        )

    def _add_path_command(self, subparsers):
        """Add 'path' subcommand."""
        parser = subparsers.add_parser(
            "path",
            help="Print where the executable lives",
            description="Print the executable path without downloading; exits 1 if it is missing",
        )
        self._add_build_arguments(parser)
        parser.add_argument(
            "--shared",
            action="store_true",
            help="Print the path in the shared cache instead of the install folder",
        )

    def _add_clean_command(self, subparsers):
        """Add 'clean' subcommand."""
        parser = subparsers.add_parser(
            "clean",
            help="Remove an installed build",
            description="Remove a build from the install folder or the shared cache",
        )
        self._add_build_arguments(parser)
        parser.add_argument(
            "--shared",
            action="store_true",
            help="Remove the build from the shared cache instead of the install folder",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be removed without removing",
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

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

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
        command_map = {
            "provision": "chromiumkit.cli.commands.provision",
            "path": "chromiumkit.cli.commands.path",
            "clean": "chromiumkit.cli.commands.clean",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
