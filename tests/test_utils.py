"""Tests for gridcalc A1 coordinate helpers."""

from __future__ import annotations

import pytest

from gridcalc._utils import (
    CellAddress,
    a1_to_rowcol,
    column_index,
    column_letter,
    is_cell_name,
    normalize_span,
    parse_range,
    rowcol_to_a1,
)


class TestColumns:
    def test_column_letter(self) -> None:
        assert column_letter(0) == "A"
        assert column_letter(25) == "Z"

    def test_column_letter_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            column_letter(26)
        with pytest.raises(ValueError):
            column_letter(-1)

    def test_column_index(self) -> None:
        assert column_index("A") == 0
        assert column_index("z") == 25

    def test_column_index_rejects_multi_letter(self) -> None:
        with pytest.raises(ValueError):
            column_index("AA")


class TestA1:
    def test_format(self) -> None:
        assert rowcol_to_a1(0, 0) == "A1"
        assert rowcol_to_a1(2, 1) == "B3"
        assert rowcol_to_a1(99, 25) == "Z100"

    def test_parse(self) -> None:
        assert a1_to_rowcol("B3") == CellAddress(2, 1)
        assert a1_to_rowcol("b3") == (2, 1)

    def test_roundtrip_every_column(self) -> None:
        for col in range(26):
            for row in (0, 1, 9, 48):
                assert a1_to_rowcol(rowcol_to_a1(row, col)) == (row, col)

    def test_name_roundtrip(self) -> None:
        for name in ("A1", "C10", "Z50"):
            assert rowcol_to_a1(*a1_to_rowcol(name)) == name

    @pytest.mark.parametrize("bad", ["", "A", "1A", "A1B", "AA1", "A0", "A-1", "A 1"])
    def test_invalid_raises(self, bad: str) -> None:
        with pytest.raises(ValueError):
            a1_to_rowcol(bad)

    def test_negative_row_rejected(self) -> None:
        with pytest.raises(ValueError):
            rowcol_to_a1(-1, 0)

    def test_is_cell_name(self) -> None:
        assert is_cell_name("A1")
        assert is_cell_name("Z999")
        assert not is_cell_name("a1")
        assert not is_cell_name("A01")
        assert not is_cell_name("AB1")


class TestRanges:
    def test_parse_range(self) -> None:
        assert parse_range("A1:B3") == ("A1", "B3")

    def test_single_cell_range(self) -> None:
        assert parse_range("C4") == ("C4", "C4")

    def test_too_many_colons(self) -> None:
        with pytest.raises(ValueError, match="Invalid range"):
            parse_range("A1:B2:C3")

    def test_normalize_span_order_independent(self) -> None:
        assert normalize_span("B3", "A1") == (0, 0, 2, 1)
        assert normalize_span("A1", "B3") == (0, 0, 2, 1)
