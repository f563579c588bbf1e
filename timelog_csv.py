#!/usr/bin/env python3

"""Export one month of a time-log block as CSV report rows."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from timelog_aggregate import build_report_rows, month_period
from timelog_block import FileDocumentStore, PersistenceError, load_block
from timelog_common import MONTH_ORDER, load_config
from timelog_model import LogDecodeError

CSV_DELIMITER = ","


def csv_escape(value: str) -> str:
    return value.replace('"', '""').replace("\\", "\\\\")


def format_row(values: Sequence[str]) -> str:
    escaped = [f'"{csv_escape(value)}"' for value in values]
    return CSV_DELIMITER.join(escaped)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export a month of a time-log block as CSV."
    )
    parser.add_argument("file", help="Markdown file holding time-log blocks")
    parser.add_argument("--month", required=True, choices=MONTH_ORDER, help="Month name")
    parser.add_argument(
        "--block", type=int, default=0, help="Time-log block to read (zero-based)"
    )
    parser.add_argument(
        "--with-total", action="store_true", help="Append a row with the month total"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    store = FileDocumentStore(config.block_language)

    try:
        document = load_block(store, args.file, args.block)
    except (PersistenceError, LogDecodeError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    day_log = document.months.get(args.month, {})
    report = build_report_rows(
        day_log, project=document.project or "", period=month_period(day_log)
    )

    lines = [format_row(report.header)]
    lines.extend(format_row(row) for row in report.rows)
    if args.with_total:
        lines.append(format_row(["Total", "", "", "", report.month_total, ""]))
    sys.stdout.write("\n".join(lines))
    return 0


if __name__ == "__main__":
    sys.exit(main())
