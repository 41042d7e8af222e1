from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from batchupsert.app import load_records
from batchupsert.config import configure_logging
from batchupsert.domain.model import SaveOptions

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Find-or-create rows in batches")
    subparsers = parser.add_subparsers(dest="command", required=True)

    load = subparsers.add_parser("load", help="Upsert JSON-lines records into a table")
    load.add_argument("table", type=str, help="Name of the target table")
    load.add_argument("file", type=Path, help="Path to a file with one JSON record per line")
    load.add_argument(
        "--primary-key",
        type=str,
        help="Primary key column (defaults to the table's single-column primary key)",
    )
    load.add_argument(
        "--allow-null-search",
        action="store_true",
        help="Accept null search values and match them null-safely",
    )
    load.add_argument(
        "--allow-association-fields",
        action="store_true",
        help="Allow records to set foreign key columns of required associations",
    )
    load.add_argument(
        "--skip-lookup",
        action="store_true",
        help="Insert one row per record without searching for existing rows",
    )
    load.add_argument(
        "--ignore-conflicts",
        action="store_true",
        help="Skip rows that violate a unique constraint",
    )
    load.add_argument(
        "--skip-id-assignment",
        action="store_true",
        help="Do not bind returned ids back onto records",
    )

    return parser.parse_args(list(argv))


def _save_options(args: argparse.Namespace) -> SaveOptions:
    return SaveOptions(
        allow_association_fields=args.allow_association_fields,
        allow_null_search=args.allow_null_search,
        skip_lookup=args.skip_lookup,
        ignore_conflicts=args.ignore_conflicts,
        skip_id_assignment=args.skip_id_assignment,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        if not parsed_args.file.is_file():
            raise ValueError(f"Record file not found: {parsed_args.file}")  # noqa: TRY301
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "load":
            result = load_records(
                parsed_args.file,
                table_name=parsed_args.table,
                primary_key=parsed_args.primary_key,
                options=_save_options(parsed_args),
            )
            log.info(
                "Load finished: read=%s, persisted=%s, identified=%s",
                result.read,
                result.persisted,
                result.identified,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during load")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
