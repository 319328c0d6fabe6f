"""A1 coordinate helpers.

Columns are a single letter, so the addressable grid is at most 26 columns
wide (``A`` through ``Z``).  Rows and columns are 0-based in code and
1-based in cell names.
"""

from __future__ import annotations

import re
from typing import NamedTuple

MAX_COLUMNS = 26

_CELL_NAME_RE = re.compile(r"[A-Z][0-9]+")


class CellAddress(NamedTuple):
    """A 0-based (row, col) pair."""

    row: int
    col: int


def column_letter(col: int) -> str:
    """0-based column index -> letter (0 -> 'A', 25 -> 'Z')."""
    if not 0 <= col < MAX_COLUMNS:
        raise ValueError(f"Column index out of range: {col}")
    return chr(ord("A") + col)


def column_index(letter: str) -> int:
    """Column letter -> 0-based index ('A' -> 0)."""
    if len(letter) != 1 or not letter.isalpha() or not letter.isascii():
        raise ValueError(f"Invalid column letter: {letter!r}")
    return ord(letter.upper()) - ord("A")


def rowcol_to_a1(row: int, col: int) -> str:
    """Convert a 0-based (row, col) pair to a cell name like ``"B3"``."""
    if row < 0:
        raise ValueError(f"Row index out of range: {row}")
    return f"{column_letter(col)}{row + 1}"


def a1_to_rowcol(name: str) -> CellAddress:
    """Convert a cell name like ``"B3"`` to a 0-based :class:`CellAddress`.

    The first character is the column letter; everything after it must be
    a positive decimal row number.
    """
    text = name.strip()
    if len(text) < 2:
        raise ValueError(f"Invalid cell reference: {name!r}")
    col = column_index(text[0])
    digits = text[1:]
    if not digits.isdigit() or not digits.isascii():
        raise ValueError(f"Invalid cell reference: {name!r}")
    row = int(digits) - 1
    if row < 0:
        raise ValueError(f"Invalid cell reference: {name!r}")
    return CellAddress(row, col)


def is_cell_name(text: str) -> bool:
    """True for a canonical name: upper-case letter, row without leading zero."""
    return bool(_CELL_NAME_RE.fullmatch(text)) and text[1] != "0"


def parse_range(range_str: str) -> tuple[str, str]:
    """Split ``"A1:B3"`` into its endpoints; ``"A1"`` is ``("A1", "A1")``."""
    parts = [p.strip() for p in range_str.split(":")]
    if len(parts) == 1:
        return parts[0], parts[0]
    if len(parts) != 2:
        raise ValueError(f"Invalid range: {range_str!r}")
    return parts[0], parts[1]


def normalize_span(start: str, end: str) -> tuple[int, int, int, int]:
    """Return ``(min_row, min_col, max_row, max_col)`` for two endpoints."""
    r1, c1 = a1_to_rowcol(start)
    r2, c2 = a1_to_rowcol(end)
    return min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2)
