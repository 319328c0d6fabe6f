"""Formula text helpers: reference extraction, range expansion and rewriting."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

from gridcalc._utils import a1_to_rowcol, normalize_span, parse_range, rowcol_to_a1

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# Single-letter column, one or more digits: A1, Z120
_CELL_REF = r"(?<![A-Za-z0-9_.])([A-Z])(\d+)(?![A-Za-z0-9_(])"
CELL_REF_RE = re.compile(_CELL_REF)

# Quoted literals are copied through untouched when rewriting.
_TOKEN_RE = re.compile(rf"\"[^\"]*\"|'[^']*'|{_CELL_REF}")

# Range operand: A1:B3
_RANGE_RE = re.compile(rf"{_CELL_REF}\s*:\s*{_CELL_REF}")

# Whole-expression function call head: SUM( ... )
_FUNC_HEAD_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)\s*\(")


def _strip_strings(formula: str) -> str:
    return re.sub(r"\"[^\"]*\"|'[^']*'", "", formula)


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def parse_references(formula: str) -> list[str]:
    """All cell names in *formula*, in order of first appearance.

    Range endpoints are reported as individual names; use
    :func:`expand_range` for the cells in between.
    """
    refs: list[str] = []
    seen: set[str] = set()
    for m in CELL_REF_RE.finditer(_strip_strings(formula)):
        ref = m.group(0)
        if ref not in seen:
            refs.append(ref)
            seen.add(ref)
    return refs


def expand_range(range_ref: str) -> list[str]:
    """Expand ``"A1:B2"`` into ``["A1", "B1", "A2", "B2"]`` (row-major).

    Endpoint order does not matter; ``"B2:A1"`` expands identically.
    """
    start, end = parse_range(range_ref)
    r_min, c_min, r_max, c_max = normalize_span(start, end)
    return [
        rowcol_to_a1(r, c)
        for r in range(r_min, r_max + 1)
        for c in range(c_min, c_max + 1)
    ]


def referenced_cells(formula: str) -> list[str]:
    """Every cell *formula* reads: single references plus each cell of a range.

    Malformed endpoints such as ``A0`` are skipped.
    """
    text = _strip_strings(formula)
    cells: list[str] = []
    seen: set[str] = set()

    def _add(ref: str) -> None:
        if ref not in seen:
            seen.add(ref)
            cells.append(ref)

    for m in _RANGE_RE.finditer(text):
        try:
            span = expand_range(f"{m.group(1)}{m.group(2)}:{m.group(3)}{m.group(4)}")
        except ValueError:
            continue
        for ref in span:
            _add(ref)
    for ref in parse_references(text):
        _add(ref)
    return cells


# ---------------------------------------------------------------------------
# Function-call classification
# ---------------------------------------------------------------------------


def _find_matching_paren(expr: str, start: int) -> int:
    """Index of the ``')'`` matching the ``'('`` at *expr[start]*, or -1."""
    depth = 1
    quote: str | None = None
    for i in range(start + 1, len(expr)):
        ch = expr[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
    return -1


def match_function_call(expr: str) -> tuple[str, str] | None:
    """If *expr* is exactly ``FUNC(balanced_args)``, return ``(name, args_str)``.

    ``SUM(A1:A5)*2`` is NOT matched because content trails the close-paren.
    """
    stripped = expr.strip()
    m = _FUNC_HEAD_RE.match(stripped)
    if not m:
        return None
    open_idx = m.end() - 1
    close_idx = _find_matching_paren(stripped, open_idx)
    if close_idx >= 0 and close_idx == len(stripped) - 1:
        return m.group(1), stripped[open_idx + 1 : close_idx]
    return None


def split_top_level_args(args_str: str) -> list[str]:
    """Split on commas at paren depth 0, outside quotes. Parts are stripped."""
    if not args_str.strip():
        return []
    args: list[str] = []
    depth = 0
    quote: str | None = None
    current = ""
    for ch in args_str:
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in ('"', "'"):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(current.strip())
            current = ""
            continue
        current += ch
    args.append(current.strip())
    return args


def unquote(arg: str) -> str:
    """Drop one leading and one trailing quote character, if present."""
    return re.sub(r"^['\"]|['\"]$", "", arg)


# ---------------------------------------------------------------------------
# Reference rewriting
# ---------------------------------------------------------------------------


def _sub_references(formula: str, replace: Callable[[str], str]) -> str:
    if not formula.startswith("="):
        return formula

    def _repl(m: re.Match[str]) -> str:
        token = m.group(0)
        if token[0] in ('"', "'"):
            return token
        return replace(token)

    return "=" + _TOKEN_RE.sub(_repl, formula[1:])


def rewrite_references(formula: str, mapping: Mapping[str, str]) -> str:
    """Rename references through *mapping* in a single pass.

    Each reference is looked up once, so ``{"A1": "B1", "B1": "A1"}`` swaps
    the two names instead of collapsing them.  Literals are returned as-is.
    """
    if not mapping:
        return formula
    return _sub_references(formula, lambda ref: mapping.get(ref, ref))


def shift_references(
    formula: str,
    d_row: int,
    d_col: int,
    n_rows: int,
    n_cols: int,
) -> str:
    """Offset every reference by ``(d_row, d_col)``.

    A reference whose shifted position falls outside
    ``[0, n_rows) x [0, n_cols)`` keeps its original text.
    """

    def _shift(ref: str) -> str:
        try:
            row, col = a1_to_rowcol(ref)
        except ValueError:
            return ref
        new_row, new_col = row + d_row, col + d_col
        if 0 <= new_row < n_rows and 0 <= new_col < n_cols:
            return rowcol_to_a1(new_row, new_col)
        return ref

    return _sub_references(formula, _shift)
