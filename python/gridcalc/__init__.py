"""gridcalc - a single-sheet calculation engine.

Usage::

    from gridcalc import Worksheet

    ws = Worksheet()
    ws["A2"] = "1"
    ws["A3"] = "2"
    ws["A1"] = "=SUM(A2:A3)"
    print(ws.display_value("A1"))    # "3"

    ws.fill("A2", "A5")               # A3..A5 count up from A2
    ws.insert_row(0)                  # formulas follow the shifted cells
    ws.undo()
"""

from gridcalc._config import DEFAULT_CONFIG, GridConfig
from gridcalc._history import History, Snapshot
from gridcalc._styles import DEFAULT_STYLE, CellStyle
from gridcalc._utils import CellAddress, a1_to_rowcol, parse_range, rowcol_to_a1
from gridcalc._workbook import load_workbook, save_workbook
from gridcalc._worksheet import Worksheet

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CellAddress",
    "CellStyle",
    "DEFAULT_CONFIG",
    "DEFAULT_STYLE",
    "GridConfig",
    "History",
    "Snapshot",
    "Worksheet",
    "a1_to_rowcol",
    "load_workbook",
    "parse_range",
    "rowcol_to_a1",
    "save_workbook",
]
