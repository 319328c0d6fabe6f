"""Tests for gridcalc.calc formula text helpers."""

from __future__ import annotations

import pytest

from gridcalc.calc._parser import (
    expand_range,
    match_function_call,
    parse_references,
    referenced_cells,
    rewrite_references,
    shift_references,
    split_top_level_args,
    unquote,
)


class TestParseReferences:
    def test_simple(self) -> None:
        assert parse_references("=A1+B2") == ["A1", "B2"]

    def test_no_duplicates(self) -> None:
        assert parse_references("=A1+A1*A1") == ["A1"]

    def test_range_endpoints(self) -> None:
        assert parse_references("=SUM(A1:A5)") == ["A1", "A5"]

    def test_string_literal_ignored(self) -> None:
        assert parse_references('=FIND_AND_REPLACE(A1,"B2","x")') == ["A1"]

    def test_function_name_not_a_reference(self) -> None:
        assert parse_references("=LOG10(A1)") == ["A1"]

    def test_multi_letter_column_not_a_reference(self) -> None:
        assert parse_references("=AB1+C2") == ["C2"]


class TestReferencedCells:
    def test_ranges_expanded(self) -> None:
        assert referenced_cells("=SUM(A1:A3)+B1") == ["A1", "A2", "A3", "B1"]

    def test_reversed_range_and_spaces(self) -> None:
        assert referenced_cells("=SUM(B2 : A1)") == ["A1", "B1", "A2", "B2"]

    def test_strings_ignored(self) -> None:
        assert referenced_cells('=FIND_AND_REPLACE(C1,"A1:A2","x")') == ["C1"]

    def test_malformed_range_not_expanded(self) -> None:
        assert referenced_cells("=SUM(A0:A2)+C1") == ["A0", "A2", "C1"]


class TestExpandRange:
    def test_column(self) -> None:
        assert expand_range("A1:A3") == ["A1", "A2", "A3"]

    def test_rectangle_row_major(self) -> None:
        assert expand_range("A1:B2") == ["A1", "B1", "A2", "B2"]

    def test_reversed_endpoints(self) -> None:
        assert expand_range("B2:A1") == expand_range("A1:B2")

    def test_single_cell(self) -> None:
        assert expand_range("C3") == ["C3"]

    def test_invalid_endpoint(self) -> None:
        with pytest.raises(ValueError):
            expand_range("A1:A")


class TestMatchFunctionCall:
    def test_whole_call(self) -> None:
        assert match_function_call("SUM(A1:A3)") == ("SUM", "A1:A3")

    def test_lowercase_name(self) -> None:
        assert match_function_call("sum(A1:A3)") == ("sum", "A1:A3")

    def test_trailing_content_not_matched(self) -> None:
        assert match_function_call("SUM(A1:A3)*2") is None

    def test_arithmetic_not_matched(self) -> None:
        assert match_function_call("A1+3") is None
        assert match_function_call("(A1+3)") is None

    def test_paren_inside_string(self) -> None:
        assert match_function_call('UPPER(")")') == ("UPPER", '")"')


class TestSplitArgs:
    def test_commas(self) -> None:
        assert split_top_level_args('A1, "x", "y"') == ["A1", '"x"', '"y"']

    def test_comma_inside_quotes(self) -> None:
        assert split_top_level_args('A1,"a,b"') == ["A1", '"a,b"']

    def test_nested_parens(self) -> None:
        assert split_top_level_args("F(A1,B1),C1") == ["F(A1,B1)", "C1"]

    def test_empty(self) -> None:
        assert split_top_level_args("  ") == []

    def test_unquote(self) -> None:
        assert unquote('"abc"') == "abc"
        assert unquote("'abc'") == "abc"
        assert unquote("abc") == "abc"


class TestRewriteReferences:
    def test_rename(self) -> None:
        assert rewrite_references("=A1+B1", {"A1": "C1"}) == "=C1+B1"

    def test_swap_is_single_pass(self) -> None:
        assert rewrite_references("=A1-B1", {"A1": "B1", "B1": "A1"}) == "=B1-A1"

    def test_literal_untouched(self) -> None:
        assert rewrite_references("A1", {"A1": "B1"}) == "A1"

    def test_strings_untouched(self) -> None:
        formula = '=FIND_AND_REPLACE(A1,"A1","x")'
        assert rewrite_references(formula, {"A1": "B1"}) == '=FIND_AND_REPLACE(B1,"A1","x")'

    def test_prefix_not_confused(self) -> None:
        assert rewrite_references("=A1+A10", {"A1": "B1"}) == "=B1+A10"


class TestShiftReferences:
    def test_shift_right(self) -> None:
        assert shift_references("=B1+1", 0, 1, 50, 26) == "=C1+1"

    def test_shift_down_range(self) -> None:
        assert shift_references("=SUM(A1:A3)", 2, 0, 50, 26) == "=SUM(A3:A5)"

    def test_out_of_bounds_kept(self) -> None:
        assert shift_references("=Z1+A1", 0, 1, 50, 26) == "=Z1+B1"

    def test_negative_out_of_bounds_kept(self) -> None:
        assert shift_references("=A1", -1, 0, 50, 26) == "=A1"

    def test_literal_untouched(self) -> None:
        assert shift_references("A1", 1, 1, 50, 26) == "A1"
