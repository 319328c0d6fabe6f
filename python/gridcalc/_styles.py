"""Frozen cell style dataclass."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

TEXT_ALIGNMENTS = ("left", "center", "right")


@dataclass(frozen=True)
class CellStyle:
    """Per-cell formatting. Absent overrides fall back to these defaults."""

    bold: bool = False
    italic: bool = False
    font_size: str = "14px"
    font_family: str = "Arial"
    color: str = "#000000"
    strikethrough: bool = False
    text_align: str = "left"

    def __post_init__(self) -> None:
        if self.text_align not in TEXT_ALIGNMENTS:
            raise ValueError(
                f"text_align must be one of {TEXT_ALIGNMENTS}, got {self.text_align!r}"
            )

    def replace(self, **changes: Any) -> CellStyle:
        """Return a copy with *changes* applied."""
        return dataclasses.replace(self, **changes)

    @property
    def is_default(self) -> bool:
        return self == DEFAULT_STYLE

    @property
    def font_size_pt(self) -> float:
        """Numeric part of ``font_size`` (``"14px"`` -> 14.0)."""
        digits = "".join(ch for ch in self.font_size if ch.isdigit() or ch == ".")
        return float(digits) if digits else 14.0

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


DEFAULT_STYLE = CellStyle()
