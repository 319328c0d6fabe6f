"""Workbook file I/O through openpyxl.

Only display values travel to disk: formulas are evaluated on save and a
loaded file comes back as literals.  Fonts and horizontal alignment map to
:class:`~gridcalc.CellStyle`.
"""

from __future__ import annotations

import logging
import os

from openpyxl import Workbook, load_workbook as _openpyxl_load
from openpyxl.styles import Alignment, Font

from gridcalc._config import GridConfig
from gridcalc._styles import TEXT_ALIGNMENTS, CellStyle
from gridcalc._utils import rowcol_to_a1
from gridcalc._worksheet import Worksheet

logger = logging.getLogger(__name__)

SHEET_TITLE = "Sheet1"


def _style_to_font(style: CellStyle) -> Font:
    return Font(
        name=style.font_family,
        size=style.font_size_pt,
        bold=style.bold,
        italic=style.italic,
        strike=style.strikethrough,
        color=style.color.lstrip("#").upper(),
    )


def _cell_to_style(font: Font | None, alignment: Alignment | None) -> CellStyle:
    changes: dict[str, object] = {}
    if font is not None:
        if font.b:
            changes["bold"] = True
        if font.i:
            changes["italic"] = True
        if font.strike:
            changes["strikethrough"] = True
        if font.name:
            changes["font_family"] = font.name
        if font.sz:
            changes["font_size"] = f"{font.sz:g}px"
        # Theme and indexed colours carry no RGB value of their own.
        color = font.color
        if color is not None and color.type == "rgb":
            rgb = color.rgb
            if isinstance(rgb, str) and len(rgb) >= 6:
                changes["color"] = f"#{rgb[-6:]}"
    if alignment is not None and alignment.horizontal in TEXT_ALIGNMENTS:
        changes["text_align"] = alignment.horizontal
    return CellStyle(**changes)


def save_workbook(ws: Worksheet, filename: str | os.PathLike[str]) -> None:
    """Write *ws*'s display values and styles to an .xlsx file."""
    wb = Workbook()
    sheet = wb.active
    sheet.title = SHEET_TITLE
    for r, row in enumerate(ws.export_rows()):
        for c, value in enumerate(row):
            if value == "":
                continue
            name = rowcol_to_a1(r, c)
            cell = sheet.cell(row=r + 1, column=c + 1, value=value)
            if value.startswith("="):
                # A display value, not a formula to recalculate.
                cell.data_type = "s"
            style = ws.style(name)
            if not style.is_default:
                cell.font = _style_to_font(style)
                cell.alignment = Alignment(horizontal=style.text_align)
    wb.save(str(filename))
    logger.info("Saved %d cells to %s", len(ws), filename)


def load_workbook(filename: str | os.PathLike[str], config: GridConfig | None = None) -> Worksheet:
    """Read the first sheet of an .xlsx file into a new :class:`Worksheet`."""
    # data_only: formula cells come back as their cached results.
    wb = _openpyxl_load(str(filename), data_only=True)
    try:
        sheet = wb.worksheets[0]
        rows: list[list[object]] = []
        styles: dict[str, CellStyle] = {}
        limit = (config or GridConfig()).max_cols
        for r, row in enumerate(sheet.iter_rows()):
            values: list[object] = []
            for c, cell in enumerate(row):
                values.append(cell.value)
                if cell.value is None or c >= limit:
                    continue
                if cell.has_style:
                    style = _cell_to_style(cell.font, cell.alignment)
                    if not style.is_default:
                        styles[rowcol_to_a1(r, c)] = style
            rows.append(values)
    finally:
        wb.close()

    ws = Worksheet(config)
    ws.import_rows(rows, styles)
    logger.info("Loaded %d cells from %s", len(ws), filename)
    return ws
