"""Protocol between the evaluator and whatever stores cell content."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class CellSource(Protocol):
    """Read-only view of a grid the evaluator can pull raw content from."""

    @property
    def n_rows(self) -> int:
        ...

    @property
    def n_cols(self) -> int:
        ...

    def content(self, name: str) -> str:
        """Raw content of *name*; ``""`` for an empty cell."""
        ...
