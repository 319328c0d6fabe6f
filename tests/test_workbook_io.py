"""Tests for .xlsx save/load through openpyxl."""

from __future__ import annotations

import logging
from pathlib import Path

import openpyxl
import pytest
from openpyxl.styles import Color, Font

from gridcalc import CellStyle, GridConfig, Worksheet, load_workbook, save_workbook
from gridcalc._workbook import SHEET_TITLE, _cell_to_style


@pytest.fixture
def sample() -> Worksheet:
    ws = Worksheet()
    ws["A1"] = "5"
    ws["B1"] = "=A1+3"
    ws["A2"] = "hello"
    ws.toggle_bold("A2")
    ws.set_alignment("A2", "center")
    return ws


class TestSave:
    def test_writes_display_values(self, sample: Worksheet, tmp_path: Path) -> None:
        path = tmp_path / "out.xlsx"
        save_workbook(sample, path)
        wb = openpyxl.load_workbook(path)
        sheet = wb.active
        assert sheet.title == SHEET_TITLE
        assert sheet["A1"].value == "5"
        assert sheet["B1"].value == "8"
        assert sheet["B2"].value is None
        wb.close()

    def test_writes_fonts(self, sample: Worksheet, tmp_path: Path) -> None:
        path = tmp_path / "out.xlsx"
        save_workbook(sample, path)
        wb = openpyxl.load_workbook(path)
        cell = wb.active["A2"]
        assert cell.font.b
        assert cell.font.name == "Arial"
        assert cell.alignment.horizontal == "center"
        wb.close()

    def test_equals_sign_result_stays_text(self, tmp_path: Path) -> None:
        ws = Worksheet()
        ws["A1"] = '=UPPER("=x")'
        assert ws.display_value("A1") == "=X"
        path = tmp_path / "text.xlsx"
        save_workbook(ws, path)

        wb = openpyxl.load_workbook(path)
        cell = wb.active["A1"]
        assert cell.value == "=X"
        assert cell.data_type == "s"
        wb.close()

    def test_logs(self, sample: Worksheet, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="gridcalc._workbook"):
            save_workbook(sample, tmp_path / "out.xlsx")
        assert "Saved 3 cells" in caplog.text


class TestLoad:
    def test_round_trip(self, sample: Worksheet, tmp_path: Path) -> None:
        path = tmp_path / "round.xlsx"
        save_workbook(sample, path)
        ws = load_workbook(path)
        assert ws["A1"] == "5"
        assert ws["B1"] == "8"
        assert ws["A2"] == "hello"
        assert ws.style("A2") == CellStyle(bold=True, text_align="center")
        assert "A1" not in ws.styles
        assert not ws.history.can_undo

    def test_native_values(self, tmp_path: Path) -> None:
        path = tmp_path / "native.xlsx"
        wb = openpyxl.Workbook()
        sheet = wb.active
        sheet["A1"] = 3
        sheet["B1"] = 2.5
        sheet["C1"] = 4.0
        wb.save(path)

        ws = load_workbook(path)
        assert ws["A1"] == "3"
        assert ws["B1"] == "2.5"
        assert ws["C1"] == "4"
        assert (ws.n_rows, ws.n_cols) == (50, 26)

    def test_formulas_load_as_cached_values(self, tmp_path: Path) -> None:
        path = tmp_path / "formula.xlsx"
        wb = openpyxl.Workbook()
        sheet = wb.active
        sheet["A1"] = 2
        sheet["A2"] = "=A1*100"
        wb.save(path)

        ws = load_workbook(path)
        assert ws["A1"] == "2"
        # openpyxl stores no cached result, so the cell arrives empty.
        assert "A2" not in ws
        assert not any(v.startswith("=") for v in ws.cells.values())

    def test_theme_colour_ignored(self, tmp_path: Path) -> None:
        path = tmp_path / "theme.xlsx"
        wb = openpyxl.Workbook()
        cell = wb.active["A1"]
        cell.value = "x"
        cell.font = Font(name="Arial", sz=14, b=True, color=Color(theme=1))
        wb.save(path)

        ws = load_workbook(path)
        assert ws.style("A1") == CellStyle(bold=True)

    def test_rgb_colour(self) -> None:
        font = Font(name="Arial", sz=14, color="FF336699")
        assert _cell_to_style(font, None).color == "#336699"

    def test_custom_config(self, tmp_path: Path) -> None:
        path = tmp_path / "small.xlsx"
        wb = openpyxl.Workbook()
        wb.active["C3"] = "x"
        wb.save(path)

        ws = load_workbook(path, GridConfig(default_rows=2, default_cols=2))
        assert (ws.n_rows, ws.n_cols) == (3, 3)
        assert ws["C3"] == "x"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_workbook(tmp_path / "absent.xlsx")
