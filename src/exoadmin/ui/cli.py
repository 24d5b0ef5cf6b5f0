from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from exoadmin import __version__
from exoadmin.app import (
    DEFAULT_FORMATS,
    Backend,
    InventoryReport,
    run_inventory_export,
    run_reconciliation,
)
from exoadmin.config import ConfigurationError, configure_logging, get_report_config
from exoadmin.domain.ports import RemoteError
from exoadmin.domain.reconciliation import JOBS, ReportFormat, SchemaError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

# Errors that abort a run before or while connecting; per-row errors never reach here.
_SETUP_ERRORS = (SchemaError, ConfigurationError, RemoteError, OSError)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconcile Exchange Online and Entra ID objects with CSV input"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser(
        "reconcile",
        help="Apply the desired state in a CSV file to the directory",
    )
    reconcile.add_argument("job", choices=sorted(JOBS), help="Reconciliation job to run")
    reconcile.add_argument(
        "--input",
        "-i",
        type=Path,
        required=True,
        help="CSV file with one desired-state row per line",
    )
    reconcile.add_argument(
        "--dry-run",
        action="store_true",
        help="Look up and decide every row without writing to the directory",
    )
    _add_connection_arguments(reconcile)
    _add_report_arguments(reconcile, default_formats=DEFAULT_FORMATS)

    export = subparsers.add_parser("export", help="Export directory inventory reports")
    export_sub = export.add_subparsers(dest="report", required=True)
    permissions = export_sub.add_parser(
        str(InventoryReport.MAILBOX_PERMISSIONS),
        help="Export Full Access, Send As and Send on Behalf permissions",
    )
    permissions.add_argument(
        "--mailbox",
        action="append",
        default=[],
        dest="identifiers",
        help="Mailbox to export (repeatable; defaults to every mailbox)",
    )
    _add_connection_arguments(permissions)
    _add_report_arguments(permissions, default_formats=(ReportFormat.CSV,))

    members = export_sub.add_parser(
        str(InventoryReport.GROUP_MEMBERS),
        help="Export group membership in the import-group-members layout",
    )
    members.add_argument(
        "--group",
        action="append",
        default=[],
        dest="identifiers",
        help="Group to export (repeatable; defaults to every group)",
    )
    _add_connection_arguments(members)
    _add_report_arguments(members, default_formats=(ReportFormat.CSV,))

    return parser.parse_args(list(argv))


def _add_connection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--backend",
        type=Backend,
        choices=list(Backend),
        default=Backend.EXCHANGE,
        help="Directory backend to talk to (default: %(default)s)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=0,
        help="Transport-level retries for failed HTTP calls (default: %(default)s)",
    )


def _add_report_arguments(
    parser: argparse.ArgumentParser,
    *,
    default_formats: Sequence[ReportFormat],
) -> None:
    parser.add_argument(
        "--report-dir",
        type=Path,
        help="Directory for report files (defaults to EXOADMIN_REPORT_DIR or the user data dir)",
    )
    parser.add_argument(
        "--format",
        dest="formats",
        type=ReportFormat,
        choices=list(ReportFormat),
        nargs="+",
        default=list(default_formats),
        help="Report formats to write",
    )


def _validate(args: argparse.Namespace) -> None:
    if args.retries < 0:
        raise ValueError("Retries must be non-negative")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
    try:
        _validate(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        report_config = get_report_config(output_dir=parsed_args.report_dir)
        if parsed_args.command == "reconcile":
            run = run_reconciliation(
                parsed_args.job,
                parsed_args.input,
                backend=parsed_args.backend,
                dry_run=parsed_args.dry_run,
                retries=parsed_args.retries,
                formats=parsed_args.formats,
                report_config=report_config,
            )
            log.info(
                "%s finished: total=%s, applied=%s, skipped=%s, failed=%s",
                run.job.name,
                run.summary.total,
                run.summary.applied,
                run.summary.skipped,
                run.summary.failed,
            )
            paths = run.report_paths
        elif parsed_args.command == "export":
            export = run_inventory_export(
                InventoryReport(parsed_args.report),
                identifiers=parsed_args.identifiers,
                backend=parsed_args.backend,
                retries=parsed_args.retries,
                formats=parsed_args.formats,
                report_config=report_config,
            )
            log.info(
                "Export %s finished: rows=%s, failures=%s",
                parsed_args.report,
                len(export.result.rows),
                len(export.result.failures),
            )
            paths = export.report_paths
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except (*_SETUP_ERRORS, ValueError):
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    for path in paths:
        log.info("Report: %s", path)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
