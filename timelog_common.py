#!/usr/bin/env python3

"""Shared helpers for time-log block tools: config, parsing and formatting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
import math
import os
import re
import sys
from typing import Any, Dict, Optional

import json5

DEFAULT_BLOCK_LANGUAGE = "time-log"
DEFAULT_CONFIG_FILENAME = ".timelog_config.json"
DEFAULT_ORDER = "desc"

ENV_PREFIX = "TIMELOG_"
BLOCK_LANGUAGE_ENV_VAR = f"{ENV_PREFIX}BLOCK_LANGUAGE"
ORDER_ENV_VAR = f"{ENV_PREFIX}ORDER"
CONFIG_ENV_VAR = f"{ENV_PREFIX}CONFIG_JSON"
DEBUG_ENV_VAR = f"{ENV_PREFIX}DEBUG"

VALID_ORDERS = {"asc", "desc"}

MONTH_ORDER = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

_CLOCK_PATTERN = re.compile(r"(\d{1,2}):(\d{2})", re.ASCII)
_DATE_PATTERN = re.compile(r"(\d+)-(\d+)-(\d+)", re.ASCII)
_HOUR_TOKEN = re.compile(r"(\d+(?:\.\d+)?)\s*h", re.ASCII)
_MINUTE_TOKEN = re.compile(r"(\d+)\s*m", re.ASCII)


@dataclass
class TimeLogConfig:
    block_language: str
    order: str
    config_file: str


def _debug_enabled() -> bool:
    value = os.getenv(DEBUG_ENV_VAR, "").strip().lower()
    return value in {"1", "true", "yes", "on"}


def _debug(message: str) -> None:
    if _debug_enabled():
        sys.stderr.write(message.rstrip() + "\n")


def _warn(message: str) -> None:
    sys.stderr.write(message.rstrip() + "\n")


def _read_config_file(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, encoding="utf-8") as config_file:
            loaded = json5.load(config_file)
    except (OSError, ValueError) as exc:
        _warn(f"Could not read config file {config_path}: {exc}. Using defaults.")
        return {}
    if not isinstance(loaded, dict):
        _warn(f"Config file {config_path} must contain an object. Using defaults.")
        return {}
    return loaded


def _resolve_setting(
    file_values: Dict[str, Any], key: str, env_var: str, default: str
) -> str:
    value = default
    file_value = file_values.get(key)
    if file_value is not None:
        value = str(file_value).strip()
    env_value = os.getenv(env_var)
    if env_value is not None and env_value.strip():
        value = env_value.strip()
    return value


def load_config(config_path: Optional[str] = None) -> TimeLogConfig:
    """Resolve settings from the optional json5 config file and environment."""

    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILENAME)
    file_values = _read_config_file(config_path)

    block_language = _resolve_setting(
        file_values, "block_language", BLOCK_LANGUAGE_ENV_VAR, DEFAULT_BLOCK_LANGUAGE
    )
    if not block_language or any(ch.isspace() for ch in block_language):
        _warn(
            f"Invalid block language '{block_language}'. "
            f"Using default {DEFAULT_BLOCK_LANGUAGE}."
        )
        block_language = DEFAULT_BLOCK_LANGUAGE

    order = _resolve_setting(file_values, "order", ORDER_ENV_VAR, DEFAULT_ORDER).lower()
    if order not in VALID_ORDERS:
        _warn(f"Invalid order '{order}' (expected asc or desc). Using {DEFAULT_ORDER}.")
        order = DEFAULT_ORDER

    _debug(
        f"[timelog] config file={config_path} language={block_language} order={order}"
    )
    return TimeLogConfig(
        block_language=block_language,
        order=order,
        config_file=config_path,
    )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def parse_duration_minutes(text: Optional[str]) -> int:
    """Return the minutes described by hour and minute tokens such as "1h 30m".

    Every ``<number>h`` and ``<integer>m`` token is summed, so repeated tokens
    add up instead of being rejected. Text without tokens yields 0.
    """

    if not text or not isinstance(text, str):
        return 0

    normalized = text.strip().lower()
    total = 0.0
    for match in _HOUR_TOKEN.finditer(normalized):
        total += float(match.group(1)) * 60
    for match in _MINUTE_TOKEN.finditer(normalized):
        total += int(match.group(1))
    return _round_half_up(total)


def resolve_clock_time(day: date, text: Any) -> Optional[datetime]:
    """Combine ``day`` with an "HH:mm" string; None when the text is not a valid time."""

    if not text or not isinstance(text, str):
        return None

    match = _CLOCK_PATTERN.fullmatch(text)
    if not match:
        _debug(f"[timelog] invalid time format '{text}', expected HH:mm")
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        _debug(f"[timelog] invalid time value '{text}'")
        return None

    return datetime(day.year, day.month, day.day, hour, minute)


def format_date(day: date) -> str:
    return f"{day.day:02d}-{day.month:02d}-{day.year:04d}"


def _rolled_date(day: int, month: int, year: int) -> date:
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return date(year, month, 1) + timedelta(days=day - 1)


def parse_date(text: Any) -> Optional[date]:
    """Parse a DD-MM-YYYY key, rejecting anything that does not format back to itself.

    Day and month overflow roll forward first (31-02-2025 becomes 03-03-2025),
    and the mismatch against the input is what marks the date impossible.
    """

    if not text or not isinstance(text, str):
        return None

    match = _DATE_PATTERN.fullmatch(text)
    if not match:
        _debug(f"[timelog] invalid date format '{text}', expected DD-MM-YYYY")
        return None

    day, month, year = (int(part) for part in match.groups())
    try:
        parsed = _rolled_date(day, month, year)
    except (OverflowError, ValueError):
        _debug(f"[timelog] date out of range '{text}'")
        return None

    if format_date(parsed) != text:
        _debug(f"[timelog] invalid date value '{text}' -> resulted in {format_date(parsed)}")
        return None
    return parsed


def format_minutes(total_minutes: Any) -> str:
    """Render minutes as "1h 30m", "2h" or "45m"; zero, negative and non-numbers give "0m"."""

    if isinstance(total_minutes, bool) or not isinstance(total_minutes, (int, float)):
        return "0m"
    if not math.isfinite(total_minutes) or total_minutes <= 0:
        return "0m"

    hours, minutes = divmod(int(total_minutes), 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    return " ".join(parts) or "0m"


def month_name(day: date) -> str:
    return MONTH_ORDER[day.month - 1]
