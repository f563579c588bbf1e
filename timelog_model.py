#!/usr/bin/env python3

"""In-memory model of a time-log block and its YAML wire format."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
import re
from typing import Any, Dict, List, Optional, Tuple

import yaml

from timelog_common import (
    MONTH_ORDER,
    _debug,
    month_name,
    parse_date,
    resolve_clock_time,
)

PROJECT_KEY = "project"
PERIOD_KEY = "period"
RESERVED_KEYS = (PROJECT_KEY, PERIOD_KEY)
ENTRY_KEYS = ("from", "to", "break", "note")

YAML_INDENT = 2
EMPTY_BREAK = "0m"

_FORM_TIME_PATTERN = re.compile(r"\d{2}:\d{2}", re.ASCII)
_FORM_BREAK_PATTERN = re.compile(r"\d+(\.\d+)?\s*h|\d+\s*m", re.ASCII)

INT_TAG = "tag:yaml.org,2002:int"
FLOAT_TAG = "tag:yaml.org,2002:float"
BOOL_TAG = "tag:yaml.org,2002:bool"
_REPLACED_TAGS = (INT_TAG, FLOAT_TAG, BOOL_TAG)

# Plain decimal numbers only: clock times such as 17:00 must stay strings
# instead of being read as YAML 1.1 base-60 integers, and only
# true/false are booleans so "yes", "no", "on" and "off" stay text.
_INT_PATTERN = re.compile(r"^[-+]?(?:0|[1-9][0-9]*)$")
_FLOAT_PATTERN = re.compile(
    r"^[-+]?(?:[0-9]+\.[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?$"
    r"|^[-+]?\.(?:inf|Inf|INF)$"
    r"|^\.(?:nan|NaN|NAN)$"
)
_BOOL_PATTERN = re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$")


class LogDecodeError(ValueError):
    """Raised when block text does not decode into a time-log document."""


class EntryValidationError(ValueError):
    """Raised when a new entry is rejected before it is added."""


def _without_implicit_scalars(resolvers: Dict[Any, list]) -> Dict[Any, list]:
    return {
        first: [(tag, regexp) for tag, regexp in items if tag not in _REPLACED_TAGS]
        for first, items in resolvers.items()
    }


class _LogLoader(yaml.SafeLoader):
    pass


class _LogDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


for _cls in (_LogLoader, _LogDumper):
    _cls.yaml_implicit_resolvers = _without_implicit_scalars(
        yaml.SafeLoader.yaml_implicit_resolvers
    )
    _cls.add_implicit_resolver(INT_TAG, _INT_PATTERN, list("-+0123456789"))
    _cls.add_implicit_resolver(FLOAT_TAG, _FLOAT_PATTERN, list("-+0123456789."))
    _cls.add_implicit_resolver(BOOL_TAG, _BOOL_PATTERN, list("tTfF"))


@dataclass
class TimeEntry:
    from_time: str
    to_time: str
    break_text: Optional[str] = None
    note: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Period:
    from_date: str
    to_date: str
    extra: Dict[str, Any] = field(default_factory=dict)


DayLog = Dict[str, List[TimeEntry]]


@dataclass
class LogDocument:
    """A decoded block: two reserved fields plus month name -> day log.

    Keys that are neither reserved nor canonical month names are kept in
    ``extras`` so they survive a round trip, but they are never aggregated.
    ``key_order`` remembers the wire order of top-level keys.
    """

    project: Optional[str] = None
    period: Optional[Period] = None
    months: Dict[str, DayLog] = field(default_factory=dict)
    extras: Dict[str, Any] = field(default_factory=dict)
    key_order: Tuple[str, ...] = ()


@dataclass
class NewEntry:
    date: str
    from_time: str
    to_time: str
    break_text: str = ""
    note: Optional[str] = None


def is_month_name(key: Any) -> bool:
    return isinstance(key, str) and key in MONTH_ORDER


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _entry_from_wire(value: Any, where: str) -> TimeEntry:
    if not isinstance(value, dict):
        raise LogDecodeError(f"Entry in {where} must be a mapping, got {type(value).__name__}")
    return TimeEntry(
        from_time=_optional_text(value.get("from")) or "",
        to_time=_optional_text(value.get("to")) or "",
        break_text=_optional_text(value.get("break")),
        note=_optional_text(value.get("note")),
        extra={key: item for key, item in value.items() if key not in ENTRY_KEYS},
    )


def _day_log_from_wire(value: Any, month: str) -> DayLog:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise LogDecodeError(f"Month '{month}' must map dates to entry lists")

    day_log: DayLog = {}
    for raw_key, entries in value.items():
        date_key = str(raw_key)
        if entries is None:
            day_log[date_key] = []
            continue
        if not isinstance(entries, list):
            raise LogDecodeError(f"Entries for {date_key} in {month} must be a list")
        day_log[date_key] = [
            _entry_from_wire(entry, f"{month} {date_key}") for entry in entries
        ]
    return day_log


def _period_from_wire(value: Any) -> Period:
    if not isinstance(value, dict):
        raise LogDecodeError("'period' must be a mapping with 'from' and 'to'")
    return Period(
        from_date=_optional_text(value.get("from")) or "",
        to_date=_optional_text(value.get("to")) or "",
        extra={key: item for key, item in value.items() if key not in ("from", "to")},
    )


def document_from_wire(tree: Any) -> LogDocument:
    """Translate a decoded flat-keyed tree into a LogDocument."""

    if tree is None:
        tree = {}
    if not isinstance(tree, dict):
        raise LogDecodeError(
            f"Time log must be a mapping at the top level, got {type(tree).__name__}"
        )

    document = LogDocument()
    key_order: List[str] = []
    for raw_key, value in tree.items():
        key = str(raw_key)
        key_order.append(key)
        if key == PROJECT_KEY:
            document.project = _optional_text(value)
        elif key == PERIOD_KEY:
            document.period = _period_from_wire(value)
        elif is_month_name(key):
            document.months[key] = _day_log_from_wire(value, key)
        else:
            _debug(f"[timelog] keeping unrecognised top-level key '{key}'")
            document.extras[key] = value
    document.key_order = tuple(key_order)
    return document


def _entry_to_wire(entry: TimeEntry) -> Dict[str, Any]:
    wire: Dict[str, Any] = {"from": entry.from_time, "to": entry.to_time}
    if entry.break_text is not None:
        wire["break"] = entry.break_text
    if entry.note is not None:
        wire["note"] = entry.note
    wire.update(entry.extra)
    return wire


def _day_log_to_wire(day_log: DayLog) -> Dict[str, Any]:
    return {
        date_key: [_entry_to_wire(entry) for entry in entries]
        for date_key, entries in day_log.items()
    }


def document_to_wire(document: LogDocument) -> Dict[str, Any]:
    """Translate a LogDocument back into the flat-keyed wire tree.

    Keys are emitted in their original order; months added since decoding
    follow in calendar order.
    """

    wire: Dict[str, Any] = {}

    def emit(key: str) -> None:
        if key in wire:
            return
        if key == PROJECT_KEY and document.project is not None:
            wire[key] = document.project
        elif key == PERIOD_KEY and document.period is not None:
            period = {"from": document.period.from_date, "to": document.period.to_date}
            period.update(document.period.extra)
            wire[key] = period
        elif key in document.months:
            wire[key] = _day_log_to_wire(document.months[key])
        elif key in document.extras:
            wire[key] = document.extras[key]

    for key in document.key_order:
        emit(key)
    for key in RESERVED_KEYS:
        emit(key)
    for key in MONTH_ORDER:
        emit(key)
    for key in document.extras:
        emit(key)
    return wire


def decode_document(text: str) -> LogDocument:
    try:
        tree = yaml.load(text, Loader=_LogLoader)
    except yaml.YAMLError as exc:
        raise LogDecodeError(f"Invalid YAML in time log: {exc}") from exc
    return document_from_wire(tree)


def encode_document(document: LogDocument) -> str:
    """Serialize with a fixed indent and without anchors or aliases."""

    return yaml.dump(
        document_to_wire(document),
        Dumper=_LogDumper,
        indent=YAML_INDENT,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def validate_new_entry(new_entry: NewEntry) -> None:
    if not new_entry.date:
        raise EntryValidationError("Please select a date.")
    if not new_entry.from_time or not _FORM_TIME_PATTERN.fullmatch(new_entry.from_time):
        raise EntryValidationError("Please enter a valid 'From' time (HH:mm).")
    if not new_entry.to_time or not _FORM_TIME_PATTERN.fullmatch(new_entry.to_time):
        raise EntryValidationError("Please enter a valid 'To' time (HH:mm).")
    break_text = (new_entry.break_text or "").strip()
    if break_text and not _FORM_BREAK_PATTERN.fullmatch(break_text):
        raise EntryValidationError(
            "Invalid break format. Use numbers followed by 'h' or 'm' (e.g., '1h', '30m')."
        )
    if parse_date(new_entry.date) is None:
        raise EntryValidationError(f"Invalid date: {new_entry.date} (expected DD-MM-YYYY).")


def add_entry(document: LogDocument, new_entry: NewEntry) -> LogDocument:
    """Return a copy of ``document`` with ``new_entry`` added to its day.

    The day's entries are re-sorted by start time, latest first. The
    document passed in is left untouched.
    """

    validate_new_entry(new_entry)
    entry_day = parse_date(new_entry.date)
    month = month_name(entry_day)

    updated = copy.deepcopy(document)
    day_log = updated.months.setdefault(month, {})
    entries = day_log.setdefault(new_entry.date, [])
    entries.append(
        TimeEntry(
            from_time=new_entry.from_time,
            to_time=new_entry.to_time,
            break_text=(new_entry.break_text or "").strip() or EMPTY_BREAK,
            note=new_entry.note or None,
        )
    )

    def start_key(entry: TimeEntry) -> datetime:
        return resolve_clock_time(entry_day, entry.from_time) or datetime.min

    entries.sort(key=start_key, reverse=True)
    _debug(f"[timelog] added entry {new_entry.from_time}-{new_entry.to_time} on {new_entry.date}")
    return updated
