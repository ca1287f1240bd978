from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from identity_migrator.app import check_connections, run_migration
from identity_migrator.common.logging import configure_logging
from identity_migrator.config import ConfigurationError, get_migration_config
from identity_migrator.domain.orchestrator import PreflightError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from identity_migrator.app import ConfirmPrompt

log = logging.getLogger(__name__)

DAILY_LOG_FILE = "migration-log-{day:%Y%m%d}.txt"


@dataclass(slots=True)
class RunGuard:
    """Whether the target database is being written; decides the Ctrl+C exit status."""

    writing: bool = False

    def gate(self, confirm: ConfirmPrompt | None) -> ConfirmPrompt:
        def proceed() -> bool:
            self.writing = confirm is None or confirm()
            return self.writing

        return proceed


RUN_GUARD = RunGuard()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        help="JSON settings file with SourceDatabase/TargetDatabase sections "
        "(defaults to SOURCE_DB_* / TARGET_DB_* environment variables)",
    )
    common.add_argument(
        "--log-file",
        nargs="?",
        const="",
        default=None,
        help="Also write the log to a file (default name: migration-log-YYYYMMDD.txt)",
    )
    common.add_argument(
        "--verbose",
        action="store_true",
        help="Log per-row decisions at DEBUG level",
    )

    parser = argparse.ArgumentParser(description="Migrate legacy identity data to the v2 schema")
    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate = subparsers.add_parser("migrate", parents=[common], help="Run the migration")
    migrate.add_argument(
        "--yes",
        action="store_true",
        help="Do not ask for confirmation before writing to the target database",
    )
    migrate.add_argument(
        "--report",
        type=Path,
        help="Write the migration report as JSON to this path",
    )

    subparsers.add_parser("check", parents=[common], help="Only test both database connections")

    return parser.parse_args(list(argv))


def _resolve_log_file(value: str | None, *, today: date | None = None) -> Path | None:
    if value is None:
        return None
    if value:
        return Path(value)
    return Path(DAILY_LOG_FILE.format(day=today or date.today()))  # noqa: DTZ011


def prompt_confirmation(read: Callable[[str], str] = input) -> bool:
    """Ask the operator to confirm; anything but yes/y (or end of input) declines."""

    try:
        response = read("Do you want to proceed? (yes/no): ")
    except EOFError:
        return False
    return response.strip().lower() in {"yes", "y"}


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    configure_logging(
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        log_file=_resolve_log_file(parsed_args.log_file),
    )
    log.info("=" * 49)
    log.info("Identity database migration tool v1 -> v2")
    log.info("=" * 49)

    try:
        config = get_migration_config(path=parsed_args.config)
        if parsed_args.command == "check":
            check_connections(config)
            log.info("Both database connections are working")
        elif parsed_args.command == "migrate":
            try:
                report = run_migration(
                    config,
                    confirm=RUN_GUARD.gate(None if parsed_args.yes else prompt_confirmation),
                    report_path=parsed_args.report,
                )
            finally:
                RUN_GUARD.writing = False
            if report is not None:
                log.info("Migration process completed. Check the log for details.")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(1)
    except PreflightError:
        log.exception("Pre-flight check failed")
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during migration")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C); an interrupted migration exits non-zero."""
    if RUN_GUARD.writing:
        log.error("Migration interrupted by user (Ctrl+C); the target may be partially migrated")
        sys.exit(1)
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
