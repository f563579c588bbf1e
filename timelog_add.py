#!/usr/bin/env python3

"""Add a time entry to a time-log block and save the block back in place."""

from __future__ import annotations

import argparse
from datetime import date
import re
import sys
from typing import Optional, Sequence

from timelog_aggregate import entry_duration
from timelog_block import BlockUpdater, FileDocumentStore, PersistenceError, load_block
from timelog_common import format_date, load_config, parse_date
from timelog_model import (
    EntryValidationError,
    LogDecodeError,
    NewEntry,
    TimeEntry,
    add_entry,
)

_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII)


def normalize_date(value: str) -> str:
    """Accept YYYY-MM-DD as well, converting it to the block's DD-MM-YYYY keys."""

    match = _ISO_DATE.fullmatch(value.strip())
    if match:
        year, month, day = match.groups()
        return f"{day}-{month}-{year}"
    return value.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Add an entry to a time-log block in a Markdown file."
    )
    parser.add_argument("file", help="Markdown file holding time-log blocks")
    parser.add_argument(
        "-d",
        "--date",
        default=None,
        help="Entry date, DD-MM-YYYY or YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--from", dest="from_time", required=True, help="Start, HH:mm")
    parser.add_argument("--to", dest="to_time", required=True, help="End, HH:mm")
    parser.add_argument(
        "--break", dest="break_text", default="", help="Break, e.g. 30m or 1h"
    )
    parser.add_argument("--note", default=None, help="Optional note")
    parser.add_argument(
        "--block", type=int, default=0, help="Time-log block to update (zero-based)"
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    store = FileDocumentStore(config.block_language)

    entry_date = normalize_date(args.date) if args.date else format_date(date.today())
    new_entry = NewEntry(
        date=entry_date,
        from_time=args.from_time,
        to_time=args.to_time,
        break_text=args.break_text,
        note=args.note,
    )

    try:
        document = load_block(store, args.file, args.block)
        updated = add_entry(document, new_entry)
    except (PersistenceError, LogDecodeError, EntryValidationError) as exc:
        sys.stderr.write(f"{exc}\n")
        return 1

    try:
        BlockUpdater(store).save(args.file, args.block, updated)
    except PersistenceError:
        return 1

    entry = TimeEntry(
        from_time=new_entry.from_time,
        to_time=new_entry.to_time,
        break_text=new_entry.break_text,
    )
    duration = entry_duration(entry, parse_date(new_entry.date))
    print(
        f"Added {new_entry.from_time}-{new_entry.to_time} on {new_entry.date} "
        f"({duration.label}) to {args.file}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
