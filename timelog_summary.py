#!/usr/bin/env python3

"""Print week, day and month totals for the time-log blocks of a Markdown file."""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence, TextIO, Tuple

from timelog_aggregate import (
    STATUS_OK,
    SortOrder,
    day_total_minutes,
    document_title,
    document_total_minutes,
    entry_duration,
    group_days_into_weeks,
    iter_months,
    month_total_minutes,
)
from timelog_block import (
    FileDocumentStore,
    PersistenceError,
    block_source,
    find_blocks,
)
from timelog_common import format_minutes, load_config
from timelog_model import LogDecodeError, LogDocument, decode_document
from timelog_table import (
    ANSI_BOLD,
    ANSI_DIM,
    ANSI_FG_RESET,
    ANSI_RESET,
    ColumnSpec,
    Style,
    render_table,
    use_color,
)

ANSI_RED = "\033[31m"

HEADERS = ["Month", "Wk", "Date", "Day", "Entries", "Flagged", "Total"]
COLUMNS = [
    ColumnSpec(align="<"),
    ColumnSpec(align=">"),
    ColumnSpec(align="<"),
    ColumnSpec(align="<"),
    ColumnSpec(align=">"),
    ColumnSpec(align=">"),
    ColumnSpec(align=">"),
]
TOTAL_COLUMN = len(HEADERS) - 1
FLAGGED_COLUMN = TOTAL_COLUMN - 1


def build_rows(
    document: LogDocument, order: SortOrder
) -> Tuple[List[List[str]], List[str]]:
    """Return table rows and a parallel list of row kinds ("day" or "month")."""

    rows: List[List[str]] = []
    kinds: List[str] = []

    for month, day_log in iter_months(document, order):
        weeks = group_days_into_weeks(day_log, order)
        if not weeks:
            continue

        month_cell = month
        for week in weeks:
            week_cell = f"W{week.week_number}"
            for week_day in week.days:
                flagged = sum(
                    1
                    for entry in week_day.entries
                    if entry_duration(entry, week_day.day).status != STATUS_OK
                )
                rows.append(
                    [
                        month_cell,
                        week_cell,
                        week_day.date_str,
                        week_day.day.strftime("%A"),
                        str(len(week_day.entries)),
                        str(flagged) if flagged else "",
                        format_minutes(day_total_minutes(week_day.entries, week_day.day)),
                    ]
                )
                kinds.append("day")
                month_cell = ""
                week_cell = ""

        rows.append(["", "", "", "", "", "", format_minutes(month_total_minutes(day_log))])
        kinds.append("month")

    return rows, kinds


def render_document(
    document: LogDocument,
    order: SortOrder,
    color: bool,
    stream: TextIO,
) -> None:
    title = document_title(document)
    print(f"{ANSI_BOLD}{title}{ANSI_RESET}" if color else title, file=stream)
    if document.period is not None:
        print(f"period {document.period.from_date} - {document.period.to_date}", file=stream)
    if document.project:
        print(f"project {document.project}", file=stream)

    rows, kinds = build_rows(document, order)

    def cell_style(
        row_index: int, col_index: int, _value: str, row: Sequence[str]
    ) -> Optional[Style]:
        if kinds[row_index] == "month":
            return Style(prefix=ANSI_BOLD, suffix=ANSI_RESET) if col_index == TOTAL_COLUMN else None
        if col_index == FLAGGED_COLUMN and row[FLAGGED_COLUMN]:
            return Style(prefix=ANSI_RED, suffix=ANSI_FG_RESET)
        if col_index == TOTAL_COLUMN and row[TOTAL_COLUMN] == "0m":
            return Style(prefix=ANSI_DIM, suffix=ANSI_FG_RESET)
        return None

    render_table(HEADERS, rows, COLUMNS, color=color, cell_style=cell_style, stream=stream)
    print(f"Total: {format_minutes(document_total_minutes(document))}", file=stream)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarise the time-log blocks of a Markdown file."
    )
    parser.add_argument("file", help="Markdown file holding time-log blocks")
    parser.add_argument(
        "--order",
        choices=["asc", "desc"],
        default=None,
        help="Listing order of months, weeks and days (default from config)",
    )
    parser.add_argument(
        "--block",
        type=int,
        default=None,
        help="Only summarise the N-th time-log block (zero-based)",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    order = SortOrder.from_text(args.order or config.order)
    store = FileDocumentStore(config.block_language)
    stream = sys.stdout
    color = not args.no_color and use_color(stream)

    try:
        text = store.read(args.file)
    except PersistenceError as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    positions = find_blocks(text, config.block_language)
    if args.block is not None:
        if not 0 <= args.block < len(positions):
            sys.stderr.write(f"No time-log block {args.block} in {args.file}\n")
            return 1
        selected = [(args.block, positions[args.block])]
    else:
        selected = list(enumerate(positions))

    if not selected:
        sys.stderr.write(f"No {config.block_language} blocks found in {args.file}\n")
        return 1

    failed = False
    for count, (handle, position) in enumerate(selected):
        if count:
            print("", file=stream)
        source = block_source(text, position)
        try:
            document = decode_document(source)
        except LogDecodeError as exc:
            sys.stderr.write(
                f"Error rendering time-log block {handle} "
                f"(line {position.line_start + 1}):\n{exc}\n\nSource:\n{source}\n"
            )
            failed = True
            continue
        render_document(document, order, color, stream)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
