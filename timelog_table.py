"""Fixed-width terminal tables for the time-log summary."""

from __future__ import annotations

from dataclasses import dataclass
import sys
from typing import Callable, List, Optional, Sequence, TextIO

ANSI_RESET = "\033[0m"
ANSI_BOLD = "\033[1m"
ANSI_UNDERLINE = "\033[4m"
ANSI_ROW_ALT = "\033[48;2;26;26;26m"
ANSI_FG_RESET = "\033[39m"
ANSI_DIM = "\033[38;2;120;120;120m"


@dataclass(frozen=True)
class ColumnSpec:
    align: str = "<"
    min_width: Optional[int] = None


@dataclass(frozen=True)
class Style:
    prefix: str = ""
    suffix: str = ""


CellStyleFn = Callable[[int, int, str, Sequence[str]], Optional[Style]]


def compute_widths(
    rows: Sequence[Sequence[str]],
    headers: Sequence[str],
    columns: Sequence[ColumnSpec],
) -> List[int]:
    if len(headers) != len(columns):
        raise ValueError("Headers and columns must be the same length")

    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row):
            cell_len = len("" if cell is None else str(cell))
            if cell_len > widths[index]:
                widths[index] = cell_len

    for index, column in enumerate(columns):
        if column.min_width is not None:
            widths[index] = max(widths[index], column.min_width)
    return widths


def render_header(
    headers: Sequence[str],
    widths: Sequence[int],
    columns: Sequence[ColumnSpec],
    color: bool = True,
    stream: TextIO = sys.stdout,
) -> None:
    parts = [
        f"{header:{column.align}{width}}"
        for header, column, width in zip(headers, columns, widths)
    ]
    if color:
        parts = [f"{ANSI_UNDERLINE}{part}{ANSI_RESET}" for part in parts]
    print(" ".join(parts), file=stream)


def render_rows(
    rows: Sequence[Sequence[str]],
    widths: Sequence[int],
    columns: Sequence[ColumnSpec],
    color: bool = True,
    stripe: bool = True,
    cell_style: Optional[CellStyleFn] = None,
    stream: TextIO = sys.stdout,
) -> None:
    if len(widths) != len(columns):
        raise ValueError("Widths and columns must be the same length")

    for row_index, row in enumerate(rows):
        cells: List[str] = []
        for col_index, (cell, column, width) in enumerate(zip(row, columns, widths)):
            value = "" if cell is None else str(cell)
            formatted = f"{value:{column.align}{width}}"
            if color and cell_style:
                style = cell_style(row_index, col_index, value, row)
                if style:
                    formatted = f"{style.prefix}{formatted}{style.suffix}"
            cells.append(formatted)

        line = " ".join(cells)
        if color and stripe and row_index % 2:
            line = f"{ANSI_ROW_ALT}{line}{ANSI_RESET}"
        print(line, file=stream)


def render_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    columns: Sequence[ColumnSpec],
    color: bool = True,
    cell_style: Optional[CellStyleFn] = None,
    stream: TextIO = sys.stdout,
) -> List[int]:
    widths = compute_widths(rows, headers, columns)
    render_header(headers, widths, columns, color=color, stream=stream)
    render_rows(rows, widths, columns, color=color, cell_style=cell_style, stream=stream)
    return widths


def use_color(stream: TextIO) -> bool:
    return hasattr(stream, "isatty") and stream.isatty()
