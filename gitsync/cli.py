"""Command-line interface for gitsync.

This module provides the CLI options and the run loop for the repository
synchronization tool.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from .config import SyncSettings, load_config, read_password_file
from .errors import ConfigError
from .sync import GitSync


def setup_logging(verbose: bool = False, log_path: Optional[Path] = None) -> None:
    """Setup logging configuration.

    Args:
        verbose: Enable debug logging if True
        log_path: Append log records to this file as well as the console
    """
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_path is not None:
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    logging.basicConfig(level=level, format=format_str, handlers=handlers, force=True)


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Clone or pull GitHub and Bitbucket repositories listed in a YAML file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sync everything listed in repos.yaml into the current directory
  gitsync

  # Use a custom list and base directory
  gitsync -c team-repos.yaml -b ~/src

  # Default credentials for the APIs and HTTPS remotes
  gitsync -u alice --password-file ~/.config/gitsync/password
        """.strip(),
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("repos.yaml"),
        help="Path to the repository list YAML file (default: repos.yaml)",
    )

    parser.add_argument(
        "-b",
        "--base-dir",
        type=Path,
        default=Path("."),
        help="Base directory for all clones (default: current directory)",
    )

    parser.add_argument(
        "-u",
        "--username",
        type=str,
        default=os.getenv("GITSYNC_USERNAME", ""),
        help="Default username for the APIs and HTTPS remotes (env: GITSYNC_USERNAME)",
    )

    parser.add_argument(
        "-p",
        "--password",
        type=str,
        default=os.getenv("GITSYNC_PASSWORD", ""),
        help="Default password for the APIs and HTTPS remotes (env: GITSYNC_PASSWORD)",
    )

    parser.add_argument(
        "--password-file",
        type=Path,
        help="File containing the default password, used when no password is given",
    )

    parser.add_argument(
        "--timeout",
        type=int,
        default=30,
        help="Listing request timeout in seconds (default: 30)",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )

    return parser


def build_settings(args: argparse.Namespace) -> SyncSettings:
    """Build the run settings from parsed arguments.

    Creates the base directory when it does not exist.

    Raises:
        ConfigError: If the password file cannot be read or the base
            directory cannot be created
    """
    password = args.password
    if not password and args.password_file:
        password = read_password_file(args.password_file)

    try:
        args.base_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Error creating base directory {args.base_dir}: {e}") from e

    return SyncSettings(
        base_dir=args.base_dir,
        username=args.username,
        password=password,
        timeout=args.timeout,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the CLI application."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        settings = build_settings(args)
    except ConfigError as e:
        setup_logging(args.verbose)
        logging.getLogger(__name__).error(str(e))
        sys.exit(1)

    setup_logging(args.verbose, settings.log_path)
    logger = logging.getLogger(__name__)

    try:
        try:
            entries = load_config(args.config)
        except ConfigError as e:
            logger.error(f"Failed to load configuration: {e}")
            sys.exit(1)

        projects = sum(1 for entry in entries if entry["type"] == "project")
        logger.info(
            f"Configuration loaded: {projects} projects, "
            f"{len(entries) - projects} repositories"
        )

        with GitSync(settings) as gitsync:
            result = gitsync.run(entries)

        if result.is_success:
            logger.info(f"✓ {result}")
        else:
            logger.warning(f"✗ {result}")
            for url, error in result.failed:
                logger.warning(f"  {url}: {error}")

        # Partial failures still count as a completed run
        sys.exit(0)

    except KeyboardInterrupt:
        logger.info("Sync interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            logger.exception("Full traceback:")
        sys.exit(1)


if __name__ == "__main__":
    main()
