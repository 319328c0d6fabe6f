"""gridcalc.calc - Formula evaluation engine for gridcalc worksheets."""

from gridcalc.calc._evaluator import (
    ArithmeticParser,
    CircularReferenceError,
    FormulaSyntaxError,
    SheetEvaluator,
    evaluate_arithmetic,
    format_number,
)
from gridcalc.calc._functions import FUNCTION_CATALOG, FormulaError, FunctionRegistry, is_error
from gridcalc.calc._parser import (
    expand_range,
    match_function_call,
    parse_references,
    referenced_cells,
    rewrite_references,
    shift_references,
    split_top_level_args,
)
from gridcalc.calc._protocol import CellSource

__all__ = [
    "ArithmeticParser",
    "CellSource",
    "CircularReferenceError",
    "FUNCTION_CATALOG",
    "FormulaError",
    "FormulaSyntaxError",
    "FunctionRegistry",
    "SheetEvaluator",
    "evaluate_arithmetic",
    "expand_range",
    "format_number",
    "is_error",
    "match_function_call",
    "parse_references",
    "referenced_cells",
    "rewrite_references",
    "shift_references",
    "split_top_level_args",
]
