"""Snapshot-based undo/redo stacks."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from gridcalc._styles import CellStyle


@dataclass(frozen=True)
class Snapshot:
    """Immutable copy of the cell and style stores at one instant.

    The grid size travels with the stores so undoing a row or column
    insert also restores the dimensions.
    """

    cells: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    styles: Mapping[str, CellStyle] = field(default_factory=lambda: MappingProxyType({}))
    n_rows: int = 0
    n_cols: int = 0

    @classmethod
    def capture(
        cls,
        cells: Mapping[str, str],
        styles: Mapping[str, CellStyle],
        n_rows: int,
        n_cols: int,
    ) -> Snapshot:
        # CellStyle is frozen, so a shallow copy of each mapping is enough.
        return cls(MappingProxyType(dict(cells)), MappingProxyType(dict(styles)), n_rows, n_cols)


class History:
    """Linear undo/redo history.

    ``record`` pushes the pre-mutation snapshot and discards the redo
    stack.  ``undo`` / ``redo`` take the current state, push it onto the
    opposite stack and hand back the snapshot to restore, or ``None`` when
    there is nothing to do.
    """

    __slots__ = ("_undo", "_redo", "limit")

    def __init__(self, limit: int | None = None) -> None:
        self._undo: list[Snapshot] = []
        self._redo: list[Snapshot] = []
        self.limit = limit

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def record(self, snapshot: Snapshot) -> None:
        self._undo.append(snapshot)
        if self.limit is not None and len(self._undo) > self.limit:
            del self._undo[: len(self._undo) - self.limit]
        self._redo.clear()

    def undo(self, current: Snapshot) -> Snapshot | None:
        if not self._undo:
            return None
        self._redo.append(current)
        return self._undo.pop()

    def redo(self, current: Snapshot) -> Snapshot | None:
        if not self._redo:
            return None
        self._undo.append(current)
        return self._redo.pop()

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
