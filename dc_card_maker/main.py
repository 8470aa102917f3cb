"""Main entry point for the Dreamcast SD card maker.

This module provides the application entry point with:
- Command-line argument parsing
- Precondition checks with distinct exit codes
- Application initialization and dependency injection
"""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

import structlog

from . import __version__
from .models import AppConfig, RunReport
from .services.card_maker import CardMakerService
from .services.config import ConfigurationService
from .services.errors import AppError, ExitCode, PreconditionError, get_error_service
from .services.filesystem import FileSystemService
from .services.logging import setup_logging
from .services.menu_image import check_data_files
from .services.tools import Toolchain

log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services.

    Services are created lazily so precondition failures never touch the
    external toolchain.
    """

    def __init__(self, config_path: Path | None = None) -> None:
        self._config_path: Path | None = config_path

        self._config_service: ConfigurationService | None = None
        self._config: AppConfig | None = None
        self._filesystem: FileSystemService | None = None
        self._toolchain: Toolchain | None = None
        self._card_maker: CardMakerService | None = None

    @property
    def config_service(self) -> ConfigurationService:
        """Get the configuration service (lazy initialization)."""
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Get the current application configuration."""
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def filesystem(self) -> FileSystemService:
        if self._filesystem is None:
            self._filesystem = FileSystemService()
        return self._filesystem

    @property
    def toolchain(self) -> Toolchain:
        if self._toolchain is None:
            self._toolchain = Toolchain.from_config(self.config)
        return self._toolchain

    @property
    def card_maker(self) -> CardMakerService:
        if self._card_maker is None:
            self._card_maker = CardMakerService(
                toolchain=self.toolchain,
                filesystem=self.filesystem,
                data_directory=self.config.data_directory,
                menu_volume_id=self.config.menu_volume_id,
            )
        return self._card_maker


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        game_list: Path,
        source_dir: Path,
        target_dir: Path,
        config: Path | None,
        log_level: str | None,
        log_dir: Path | None,
    ) -> None:
        self.game_list: Path = game_list
        self.source_dir: Path = source_dir
        self.target_dir: Path = target_dir
        self.config: Path | None = config
        self.log_level: str | None = log_level
        self.log_dir: Path | None = log_dir


class CardMakerArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with the usage exit code."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(ExitCode.USAGE, f"{self.prog}: error: {message}\n")


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments.

    Args:
        argv: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments container
    """
    parser = CardMakerArgumentParser(
        prog="dc-card-maker",
        description=f"Dreamcast SD card maker (version {__version__})",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dc-card-maker game_list.txt ~/dreamcast /media/sdcard
  dc-card-maker --log-level DEBUG game_list.txt ~/dreamcast /media/sdcard
        """
    )

    _ = parser.add_argument("game_list", type=Path, help="Text file with one archive name per line")
    _ = parser.add_argument("source_dir", type=Path, help="Directory containing the game archives")
    _ = parser.add_argument("target_dir", type=Path, help="Root directory of the SD card")

    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/dc-card-maker/config.json)"
    )

    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from configuration, INFO)"
    )

    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for JSON log files (default: console only)"
    )

    ns = parser.parse_args(argv)

    return ParsedArgs(
        game_list=ns.game_list,
        source_dir=ns.source_dir,
        target_dir=ns.target_dir,
        config=ns.config,
        log_level=ns.log_level,
        log_dir=ns.log_dir,
    )


def check_inputs(args: ParsedArgs) -> None:
    """Verify the input file and directories exist.

    Raises:
        PreconditionError: For the first missing input, with its exit code
    """
    if not args.game_list.is_file():
        raise PreconditionError(
            f"Input file does not exist : {args.game_list}",
            ExitCode.GAME_LIST_MISSING,
            args.game_list,
        )
    if not args.source_dir.is_dir():
        raise PreconditionError(
            f"Source directory does not exist : {args.source_dir}",
            ExitCode.SOURCE_MISSING,
            args.source_dir,
        )
    if not args.target_dir.is_dir():
        raise PreconditionError(
            f"Target directory does not exist : {args.target_dir}",
            ExitCode.TARGET_MISSING,
            args.target_dir,
        )


def print_report(report: RunReport) -> None:
    """Summarize a finished run on standard output."""
    for entry in report.placed:
        how = "restored" if entry.restored else "extracted"
        print(f"{entry.slot_name}  {entry.identity}  ({entry.disc_type.value}, {how})")
    for skipped in report.skipped:
        print(f"--  {skipped.identity}  (skipped: {skipped.reason})")
    if report.leftovers:
        print("Following directories at target directory contain old games:", file=sys.stderr)
        for directory in report.leftovers:
            print(f"  {directory}", file=sys.stderr)
        print("Delete or move them to a different location.", file=sys.stderr)


def run(args: ParsedArgs, context: ApplicationContext) -> int:
    """Check preconditions and build the card.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    check_inputs(args)
    context.toolchain.check_available()
    check_data_files(context.config.data_directory)

    report = context.card_maker.run(args.game_list, args.source_dir, args.target_dir)
    print_report(report)
    return ExitCode.OK


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)
    context = ApplicationContext(config_path=args.config)

    _ = setup_logging(
        log_level=args.log_level or context.config.log_level,
        log_dir=args.log_dir,
    )

    log.debug("Starting Dreamcast SD card maker", version=__version__)

    try:
        exit_code = run(args, context)

    except KeyboardInterrupt:
        log.warning("Interrupted by user")
        exit_code = ExitCode.INTERRUPTED

    except Exception as e:
        if not isinstance(e, AppError):
            log.error("Unhandled exception", error=str(e), exc_info=True)
        error_service = get_error_service()
        friendly = error_service.handle_error(e, operation="make_card", component="main", details_shown=True)
        print(error_service.create_user_message(friendly, include_details=True), file=sys.stderr)
        exit_code = friendly.exit_code

    log.debug("Application exiting", exit_code=int(exit_code))
    sys.exit(int(exit_code))


if __name__ == "__main__":
    main()
