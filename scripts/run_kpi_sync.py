"""
Run the KPI workbook sync from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging

from app.logging_utils import configure_logging
from app.services.kpi_sync_service import get_kpi_sync_service

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync release KPI workbooks into the database.")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument(
        "--all",
        dest="sync_all",
        action="store_true",
        help="Sync every year and month under the root folder.",
    )
    scope.add_argument(
        "--year",
        dest="year",
        type=int,
        default=None,
        help="Year to sync (requires --month). Defaults to the current month.",
    )
    parser.add_argument(
        "--month",
        dest="month",
        default=None,
        help="Month number or name to sync, e.g. 11 or Nov.",
    )
    parser.add_argument(
        "--source",
        dest="source",
        choices=("graph", "local"),
        default=None,
        help="Workbook source. Defaults to KPI_SYNC_SOURCE.",
    )
    parser.add_argument(
        "--local-root",
        dest="local_root",
        default=None,
        help="Root folder holding year folders when --source=local.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.year is None) != (args.month is None):
        parser.error("--year and --month must be given together.")

    try:
        service = get_kpi_sync_service(source=args.source, local_root=args.local_root)
        if args.sync_all:
            summary = service.sync_all()
        elif args.year is not None:
            summary = service.sync_month(args.year, args.month)
        else:
            summary = service.sync_current_month()
    except (RuntimeError, ValueError, FileNotFoundError) as exc:
        logger.error("KPI sync failed: %s", exc)
        return 2

    print(json.dumps(summary.to_dict(), indent=2))
    return 1 if summary.has_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
