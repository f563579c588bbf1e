#!/usr/bin/env python3

"""Totals and week grouping for time-log documents."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from timelog_common import (
    MONTH_ORDER,
    _debug,
    format_minutes,
    parse_date,
    parse_duration_minutes,
    resolve_clock_time,
)
from timelog_model import DayLog, LogDocument, Period, TimeEntry

STATUS_OK = "ok"
STATUS_INVALID = "invalid"
STATUS_NEGATIVE_OR_ZERO = "negative_or_zero"

INVALID_LABEL = "Invalid"
NEGATIVE_OR_ZERO_LABEL = "Negative/Zero"

REPORT_HEADER = ["Date", "From", "To", "Break", "Duration", "Note"]


class SortOrder(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"

    @classmethod
    def from_text(cls, value: str) -> "SortOrder":
        return cls(value.strip().lower())

    @property
    def reverse(self) -> bool:
        return self is SortOrder.DESCENDING


@dataclass
class EntryDuration:
    minutes: int
    status: str
    label: str

    @property
    def contribution(self) -> int:
        return self.minutes if self.status == STATUS_OK else 0


@dataclass
class WeekDay:
    date_str: str
    day: date
    entries: List[TimeEntry]


@dataclass
class WeekGroup:
    week_number: int
    days: List[WeekDay]


@dataclass
class MonthReport:
    header: List[str]
    rows: List[List[str]]
    month_total: str
    project: str
    period: Optional[Period]


def entry_duration(entry: TimeEntry, day: date) -> EntryDuration:
    """Worked minutes of one entry: span minus break.

    Entries whose times do not resolve, or whose end is not after the start,
    count as zero and carry a label instead of a duration. A break longer
    than the span gives negative minutes, which the formatter shows as "0m".
    """

    start = resolve_clock_time(day, entry.from_time)
    end = resolve_clock_time(day, entry.to_time)
    if start is None or end is None:
        return EntryDuration(minutes=0, status=STATUS_INVALID, label=INVALID_LABEL)
    if end <= start:
        return EntryDuration(
            minutes=0, status=STATUS_NEGATIVE_OR_ZERO, label=NEGATIVE_OR_ZERO_LABEL
        )

    span_minutes = int((end - start).total_seconds() // 60)
    minutes = span_minutes - parse_duration_minutes(entry.break_text)
    return EntryDuration(minutes=minutes, status=STATUS_OK, label=format_minutes(minutes))


def day_total_minutes(entries: Sequence[TimeEntry], day: date) -> int:
    return sum(entry_duration(entry, day).contribution for entry in entries)


def month_total_minutes(day_log: DayLog) -> int:
    total = 0
    for date_str, entries in day_log.items():
        day = parse_date(date_str)
        if day is None:
            _debug(f"[timelog] skipping unparseable date key '{date_str}'")
            continue
        total += day_total_minutes(entries, day)
    return total


def document_total_minutes(document: LogDocument) -> int:
    return sum(month_total_minutes(day_log) for day_log in document.months.values())


def _dated_days(day_log: DayLog) -> List[WeekDay]:
    days: List[WeekDay] = []
    for date_str, entries in day_log.items():
        day = parse_date(date_str)
        if day is None or not entries:
            continue
        days.append(WeekDay(date_str=date_str, day=day, entries=entries))
    return days


def group_days_into_weeks(day_log: DayLog, order: SortOrder) -> List[WeekGroup]:
    """Group dated, non-empty days of a month by ISO week (Monday start).

    ``order`` applies to the weeks and to the days inside each week. Weeks
    are ordered by their earliest day, so week 1 holding late December sorts
    after week 52 of the same month listing.
    """

    grouped: Dict[Tuple[int, int], List[WeekDay]] = {}
    for week_day in sorted(_dated_days(day_log), key=lambda item: item.day):
        iso_year, iso_week, _weekday = week_day.day.isocalendar()
        grouped.setdefault((iso_year, iso_week), []).append(week_day)

    weeks = [
        WeekGroup(
            week_number=iso_week,
            days=sorted(days, key=lambda item: item.day, reverse=order.reverse),
        )
        for (_iso_year, iso_week), days in grouped.items()
    ]
    weeks.sort(key=lambda week: min(item.day for item in week.days), reverse=order.reverse)
    return weeks


def iter_months(document: LogDocument, order: SortOrder) -> List[Tuple[str, DayLog]]:
    names = [name for name in MONTH_ORDER if name in document.months]
    if order.reverse:
        names.reverse()
    return [(name, document.months[name]) for name in names]


def month_period(day_log: DayLog) -> Optional[Period]:
    dated = sorted(
        (day, date_str)
        for date_str, day in ((key, parse_date(key)) for key in day_log)
        if day is not None
    )
    if not dated:
        return None
    return Period(from_date=dated[0][1], to_date=dated[-1][1])


def break_label(entry: TimeEntry) -> str:
    minutes = parse_duration_minutes(entry.break_text)
    if entry.break_text and minutes > 0:
        return f"{format_minutes(minutes)} break"
    return "no break"


def document_title(document: LogDocument) -> str:
    start = parse_date(document.period.from_date) if document.period else None
    year = f"{start.year:04d}" if start else "Year"
    return f"{year}-{document.project or ''}"


def default_expanded(
    today: date, week_number: int, month: str, all_expanded: bool = False
) -> bool:
    """Whether a week or month section starts expanded for ``today``.

    Pass ``week_number=0`` to ask about a month only, or ``month=""`` to ask
    about a week only.
    """

    if all_expanded:
        return True
    if week_number and week_number == today.isocalendar()[1]:
        return True
    return bool(month) and month == MONTH_ORDER[today.month - 1]


def build_report_rows(
    day_log: DayLog, project: str = "", period: Optional[Period] = None
) -> MonthReport:
    rows: List[List[str]] = []
    for date_str, entries in day_log.items():
        day = parse_date(date_str)
        if day is None:
            continue
        for entry in entries:
            duration = entry_duration(entry, day)
            rows.append(
                [
                    date_str,
                    entry.from_time,
                    entry.to_time,
                    entry.break_text or "",
                    duration.label,
                    entry.note or "",
                ]
            )
    return MonthReport(
        header=list(REPORT_HEADER),
        rows=rows,
        month_total=format_minutes(month_total_minutes(day_log)),
        project=project,
        period=period,
    )
