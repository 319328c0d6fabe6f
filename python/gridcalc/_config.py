"""Grid configuration."""

from __future__ import annotations

from dataclasses import dataclass

from gridcalc._utils import MAX_COLUMNS


@dataclass(frozen=True)
class GridConfig:
    """Sizing and history settings for a :class:`~gridcalc.Worksheet`.

    ``default_rows`` / ``default_cols`` are both the initial grid size and
    the floor that an import never shrinks below.  ``history_limit`` caps
    the undo stack (``None`` keeps every snapshot).
    """

    default_rows: int = 50
    default_cols: int = 26
    max_cols: int = MAX_COLUMNS
    history_limit: int | None = None

    def __post_init__(self) -> None:
        if self.default_rows < 1 or self.default_cols < 1:
            raise ValueError("Grid must be at least 1x1")
        if not 1 <= self.max_cols <= MAX_COLUMNS:
            raise ValueError(f"max_cols must be between 1 and {MAX_COLUMNS}")
        if self.default_cols > self.max_cols:
            raise ValueError("default_cols cannot exceed max_cols")
        if self.history_limit is not None and self.history_limit < 1:
            raise ValueError("history_limit must be positive or None")


DEFAULT_CONFIG = GridConfig()
