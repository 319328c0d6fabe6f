"""Worksheet - the calculation engine's single-sheet session object.

A :class:`Worksheet` owns the raw cell store, the style store, the grid
size and the undo/redo history.  All mutation goes through its methods so
every undoable change records the pre-mutation snapshot first.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from types import MappingProxyType
from typing import Any

from gridcalc._config import DEFAULT_CONFIG, GridConfig
from gridcalc._history import History, Snapshot
from gridcalc._styles import DEFAULT_STYLE, CellStyle
from gridcalc._utils import (
    CellAddress,
    a1_to_rowcol,
    is_cell_name,
    normalize_span,
    rowcol_to_a1,
)
from gridcalc.calc._evaluator import SheetEvaluator
from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._parser import parse_references, rewrite_references, shift_references

logger = logging.getLogger(__name__)

_NUMERIC_LITERAL_RE = re.compile(r"[0-9]+")


class Worksheet:
    """A single sheet of cells with formulas, styles and history.

    Usage::

        ws = Worksheet()
        ws["A1"] = "5"
        ws["B1"] = "=A1+3"
        ws.display_value("B1")   # "8"
        ws.undo()
    """

    __slots__ = (
        "_config", "_cells", "_styles", "_n_rows", "_n_cols",
        "_history", "_evaluator", "_batch_depth",
    )

    def __init__(
        self,
        config: GridConfig | None = None,
        functions: FunctionRegistry | None = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self._cells: dict[str, str] = {}
        self._styles: dict[str, CellStyle] = {}
        self._n_rows = self._config.default_rows
        self._n_cols = self._config.default_cols
        self._history = History(self._config.history_limit)
        self._evaluator = SheetEvaluator(self, functions)
        self._batch_depth = 0

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def config(self) -> GridConfig:
        return self._config

    @property
    def n_rows(self) -> int:
        return self._n_rows

    @property
    def n_cols(self) -> int:
        return self._n_cols

    @property
    def cells(self) -> Mapping[str, str]:
        return MappingProxyType(self._cells)

    @property
    def styles(self) -> Mapping[str, CellStyle]:
        return MappingProxyType(self._styles)

    @property
    def history(self) -> History:
        return self._history

    @property
    def evaluator(self) -> SheetEvaluator:
        return self._evaluator

    def content(self, name: str) -> str:
        return self._cells.get(name, "")

    def style(self, name: str) -> CellStyle:
        return self._styles.get(name, DEFAULT_STYLE)

    def __getitem__(self, name: str) -> str:
        """``ws['A1']`` -> raw content."""
        return self.content(name)

    def __setitem__(self, name: str, value: str) -> None:
        """``ws['A1'] = '5'`` - shorthand for :meth:`set_content`."""
        self.set_content(name, value)

    def __contains__(self, name: str) -> bool:
        return name in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self._n_rows and 0 <= col < self._n_cols

    def _require(self, name: str) -> CellAddress:
        addr = a1_to_rowcol(name)
        if not self.in_bounds(*addr):
            raise ValueError(
                f"Cell {name} is outside the {self._n_rows}x{self._n_cols} grid"
            )
        return addr

    def _canonical(self, name: str) -> str:
        return rowcol_to_a1(*self._require(name))

    def max_used(self) -> tuple[int, int] | None:
        """``(max_row, max_col)`` over occupied cells, or None when empty."""
        if not self._cells:
            return None
        addrs = [a1_to_rowcol(name) for name in self._cells]
        return max(a.row for a in addrs), max(a.col for a in addrs)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def display_value(self, name: str) -> str:
        """Evaluated, formatted value of *name*; never raises for bad formulas."""
        return self._evaluator.display_value(name)

    def evaluate(self, content: str, name: str) -> str:
        """Preview what *content* would display if stored at *name*."""
        return self._evaluator.evaluate(content, name)

    def iter_display_rows(self) -> Iterator[tuple[str, ...]]:
        """Display values row by row over the whole grid."""
        for r in range(self._n_rows):
            yield tuple(self.display_value(rowcol_to_a1(r, c)) for c in range(self._n_cols))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _snapshot(self) -> Snapshot:
        return Snapshot.capture(self._cells, self._styles, self._n_rows, self._n_cols)

    def _restore(self, snapshot: Snapshot) -> None:
        self._cells = dict(snapshot.cells)
        self._styles = dict(snapshot.styles)
        self._n_rows = snapshot.n_rows
        self._n_cols = snapshot.n_cols

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Group every mutation inside the block into one undo step."""
        if self._batch_depth == 0:
            self._history.record(self._snapshot())
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1

    def undo(self) -> bool:
        """Restore the state before the last mutation. False when nothing to undo."""
        previous = self._history.undo(self._snapshot())
        if previous is None:
            return False
        self._restore(previous)
        return True

    def redo(self) -> bool:
        """Re-apply the last undone mutation. False when nothing to redo."""
        following = self._history.redo(self._snapshot())
        if following is None:
            return False
        self._restore(following)
        return True

    # ------------------------------------------------------------------
    # Content and style edits
    # ------------------------------------------------------------------

    def _put(self, name: str, value: str) -> None:
        if value:
            self._cells[name] = value
        else:
            self._cells.pop(name, None)

    def _put_style(self, name: str, style: CellStyle) -> None:
        if style.is_default:
            self._styles.pop(name, None)
        else:
            self._styles[name] = style

    def set_content(self, name: str, value: str) -> None:
        """Store raw *value* at *name*; an empty string empties the cell."""
        name = self._canonical(name)
        with self.batch():
            self._put(name, str(value))

    def clear(self, name: str) -> None:
        self.set_content(name, "")

    def set_style(self, name: str, **changes: Any) -> CellStyle:
        """Update style fields of *name* (``bold=True``, ``text_align="center"``...)."""
        name = self._canonical(name)
        style = self.style(name).replace(**changes)
        with self.batch():
            self._put_style(name, style)
        return style

    def toggle_bold(self, name: str) -> CellStyle:
        name = self._canonical(name)
        return self.set_style(name, bold=not self.style(name).bold)

    def toggle_italic(self, name: str) -> CellStyle:
        name = self._canonical(name)
        return self.set_style(name, italic=not self.style(name).italic)

    def toggle_strikethrough(self, name: str) -> CellStyle:
        name = self._canonical(name)
        return self.set_style(name, strikethrough=not self.style(name).strikethrough)

    def set_alignment(self, name: str, alignment: str) -> CellStyle:
        return self.set_style(name, text_align=alignment)

    # ------------------------------------------------------------------
    # Structural mutation
    # ------------------------------------------------------------------

    def _relocate(self, move: Callable[[int, int], tuple[int, int] | None]) -> None:
        """Move every cell through ``move(row, col) -> (row, col) | None``.

        ``None`` drops the cell.  Content and style move together, and every
        formula reference to a relocated address is renamed to match.
        """
        mapping: dict[str, str] = {}
        referenced: set[str] = set(self._cells) | set(self._styles)
        for value in self._cells.values():
            if value.startswith("="):
                referenced.update(parse_references(value))
        for name in referenced:
            if not is_cell_name(name):
                continue
            row, col = a1_to_rowcol(name)
            target = move(row, col)
            if target is not None and target != (row, col):
                mapping[name] = rowcol_to_a1(*target)

        cells: dict[str, str] = {}
        styles: dict[str, CellStyle] = {}
        for name, value in self._cells.items():
            target = move(*a1_to_rowcol(name))
            if target is not None:
                cells[rowcol_to_a1(*target)] = rewrite_references(value, mapping)
        for name, style in self._styles.items():
            target = move(*a1_to_rowcol(name))
            if target is not None:
                styles[rowcol_to_a1(*target)] = style
        self._cells = cells
        self._styles = styles

    def insert_row(self, index: int) -> bool:
        """Insert a blank row below row *index*; rows after it shift down."""
        if not 0 <= index < self._n_rows:
            return False
        with self.batch():
            self._relocate(lambda r, c: (r + 1, c) if r > index else (r, c))
            self._n_rows += 1
        logger.debug("Inserted row after %d (rows=%d)", index, self._n_rows)
        return True

    def delete_row(self, index: int) -> bool:
        """Delete row *index*; rows after it shift up. No-op on a 1-row grid."""
        if self._n_rows <= 1 or not 0 <= index < self._n_rows:
            return False

        def _move(r: int, c: int) -> tuple[int, int] | None:
            if r == index:
                return None
            return (r - 1, c) if r > index else (r, c)

        with self.batch():
            self._relocate(_move)
            self._n_rows -= 1
        logger.debug("Deleted row %d (rows=%d)", index, self._n_rows)
        return True

    def insert_column(self, index: int) -> bool:
        """Insert a blank column right of column *index*.

        No-op once the grid already spans every addressable column.
        """
        if not 0 <= index < self._n_cols or self._n_cols >= self._config.max_cols:
            return False
        limit = self._config.max_cols

        def _move(r: int, c: int) -> tuple[int, int] | None:
            if c <= index:
                return (r, c)
            return (r, c + 1) if c + 1 < limit else None

        with self.batch():
            self._relocate(_move)
            self._n_cols += 1
        logger.debug("Inserted column after %d (cols=%d)", index, self._n_cols)
        return True

    def delete_column(self, index: int) -> bool:
        """Delete column *index*; columns after it shift left. No-op on a 1-column grid."""
        if self._n_cols <= 1 or not 0 <= index < self._n_cols:
            return False

        def _move(r: int, c: int) -> tuple[int, int] | None:
            if c == index:
                return None
            return (r, c - 1) if c > index else (r, c)

        with self.batch():
            self._relocate(_move)
            self._n_cols -= 1
        logger.debug("Deleted column %d (cols=%d)", index, self._n_cols)
        return True

    # ------------------------------------------------------------------
    # Move & fill
    # ------------------------------------------------------------------

    def move(self, source: str, destination: str) -> bool:
        """Swap two cells and retarget every formula that referenced either."""
        source = self._canonical(source)
        destination = self._canonical(destination)
        if source == destination:
            return False
        mapping = {source: destination, destination: source}
        with self.batch():
            src_value, dst_value = self.content(source), self.content(destination)
            src_style, dst_style = self.style(source), self.style(destination)
            self._put(destination, src_value)
            self._put(source, dst_value)
            self._put_style(destination, src_style)
            self._put_style(source, dst_style)
            for name, value in list(self._cells.items()):
                if value.startswith("="):
                    self._cells[name] = rewrite_references(value, mapping)
        return True

    def fill(self, source: str, target: str) -> list[str]:
        """Propagate *source* across a span, like dragging the fill handle.

        *target* is either the far corner of the span (the span then runs
        from *source* to it) or an explicit range such as ``"A2:A4"``.
        Returns the names written, in row-major order.

        - all-digit literal: counts up by the distance from *source* along
          the fill axis (vertical when the span is a single column)
        - formula: references shift by each target's offset from *source*
        - anything else: copied verbatim

        The source style is copied to every target; *source* itself is
        never written.
        """
        src_row, src_col = self._require(source)
        source = rowcol_to_a1(src_row, src_col)
        if ":" in target:
            start, end = (part.strip() for part in target.split(":", 1))
        else:
            start, end = source, target
        self._require(start)
        self._require(end)
        r_min, c_min, r_max, c_max = normalize_span(start, end)
        vertical = c_min == c_max == src_col

        value = self.content(source)
        style = self.style(source)
        targets = [
            rowcol_to_a1(r, c)
            for r in range(r_min, r_max + 1)
            for c in range(c_min, c_max + 1)
            if (r, c) != (src_row, src_col)
        ]
        if not targets:
            return []

        with self.batch():
            for name in targets:
                row, col = a1_to_rowcol(name)
                if _NUMERIC_LITERAL_RE.fullmatch(value):
                    step = abs(row - src_row) if vertical else abs(col - src_col)
                    filled = str(int(value) + step)
                elif value.startswith("="):
                    filled = shift_references(
                        value, row - src_row, col - src_col, self._n_rows, self._n_cols,
                    )
                else:
                    filled = value
                self._put(name, filled)
                self._put_style(name, style)
        return targets

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next_cell(self, name: str, backwards: bool = False, vertical: bool = False) -> str:
        """Cell reached from *name* by Tab (Shift+Tab when *backwards*) or Enter.

        Tab wraps to the start of the next row; Shift+Tab to the end of the
        previous one.  The result is always inside the grid.
        """
        row, col = a1_to_rowcol(name)
        if vertical:
            row = row - 1 if backwards else row + 1
        elif backwards:
            if col > 0:
                col -= 1
            elif row > 0:
                row, col = row - 1, self._n_cols - 1
        elif col < self._n_cols - 1:
            col += 1
        elif row < self._n_rows - 1:
            row, col = row + 1, 0
        row = max(0, min(row, self._n_rows - 1))
        col = max(0, min(col, self._n_cols - 1))
        return rowcol_to_a1(row, col)

    # ------------------------------------------------------------------
    # Grid import / export
    # ------------------------------------------------------------------

    def export_rows(self) -> list[list[str]]:
        """Display values for every address up to the last used row/column."""
        extent = self.max_used()
        if extent is None:
            return []
        max_row, max_col = extent
        return [
            [self.display_value(rowcol_to_a1(r, c)) for c in range(max_col + 1)]
            for r in range(max_row + 1)
        ]

    def export_styles(self) -> dict[str, CellStyle]:
        """Resolved style of every occupied cell."""
        return {name: self.style(name) for name in self._cells}

    def import_rows(
        self,
        rows: Iterable[Sequence[Any]],
        styles: Mapping[str, CellStyle] | None = None,
    ) -> None:
        """Replace the sheet with literal *rows* (``None`` entries stay empty).

        The grid grows to fit the data but never shrinks below the
        configured default size.  Columns past the addressable limit are
        dropped.  History is cleared.
        """
        data = [list(row) for row in rows]
        limit = self._config.max_cols
        cells: dict[str, str] = {}
        for r, row in enumerate(data):
            for c, value in enumerate(row[:limit]):
                if value is None or value == "":
                    continue
                if isinstance(value, float) and value.is_integer():
                    value = int(value)
                cells[rowcol_to_a1(r, c)] = str(value)
        width = max((len(row) for row in data), default=0)
        if width > limit:
            logger.warning("Import is %d columns wide; keeping the first %d", width, limit)

        self._cells = cells
        self._styles = {
            name: style
            for name, style in (styles or {}).items()
            if name in cells and not style.is_default
        }
        self._n_rows = max(self._config.default_rows, len(data))
        self._n_cols = max(self._config.default_cols, min(width, limit))
        self._history.clear()
        logger.debug("Imported %d cells (%dx%d grid)", len(cells), self._n_rows, self._n_cols)

    def __repr__(self) -> str:
        return f"<Worksheet {self._n_rows}x{self._n_cols} cells={len(self._cells)}>"
