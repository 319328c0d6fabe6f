"""SheetEvaluator: turns a cell's raw content into its display value.

Arithmetic formulas are parsed by a small recursive descent parser over
numbers, cell references, ``+ - * /``, unary signs and parentheses.  A
formula that is exactly ``NAME(args)`` is dispatched to the function
registry instead.  Every failure becomes an error sentinel; nothing raised
inside evaluation reaches the caller.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable
from typing import Any

from gridcalc._utils import a1_to_rowcol, parse_range
from gridcalc.calc._functions import FormulaError, FunctionRegistry, to_number
from gridcalc.calc._parser import (
    CELL_REF_RE,
    expand_range,
    match_function_call,
    referenced_cells,
    split_top_level_args,
    unquote,
)
from gridcalc.calc._protocol import CellSource

logger = logging.getLogger(__name__)


class FormulaSyntaxError(ValueError):
    """Malformed arithmetic expression."""

    def __init__(self, message: str, position: int) -> None:
        super().__init__(f"{message} at position {position}")
        self.position = position


class CircularReferenceError(ValueError):
    """Evaluation re-entered *cell* while it was still being evaluated."""

    def __init__(self, cell: str) -> None:
        super().__init__(f"Circular reference through {cell}")
        self.cell = cell


# ---------------------------------------------------------------------------
# Arithmetic parsing
# ---------------------------------------------------------------------------

_TOKEN_SPEC = re.compile(
    r"\s*(?:"
    r"(?P<num>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)"
    r"|(?P<ref>[A-Z]\d+)"
    r"|(?P<op>[-+*/()])"
    r")"
)


def _tokenize(expr: str) -> list[tuple[str, str, int]]:
    """Split *expr* into ``(kind, text, position)`` tokens."""
    tokens: list[tuple[str, str, int]] = []
    pos = 0
    length = len(expr)
    while pos < length:
        if expr[pos].isspace():
            pos += 1
            continue
        m = _TOKEN_SPEC.match(expr, pos)
        if m is None or m.lastgroup is None:
            raise FormulaSyntaxError(f"Unexpected character {expr[pos]!r}", pos)
        tokens.append((m.lastgroup, m.group(m.lastgroup), m.start(m.lastgroup)))
        pos = m.end()
    return tokens


class ArithmeticParser:
    """Recursive descent evaluator for ``+ - * /`` expressions.

    Grammar::

        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | NUMBER | REF | '(' expr ')'

    ``resolve`` maps a cell reference to its numeric value.
    """

    def __init__(self, expr: str, resolve: Callable[[str], float]) -> None:
        self._expr = expr
        self._tokens = _tokenize(expr)
        self._index = 0
        self._resolve = resolve

    def parse(self) -> float:
        if not self._tokens:
            raise FormulaSyntaxError("Empty expression", 0)
        value = self._parse_expr()
        if self._index < len(self._tokens):
            _, text, pos = self._tokens[self._index]
            raise FormulaSyntaxError(f"Unexpected token {text!r}", pos)
        return value

    def _peek(self) -> tuple[str, str, int] | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _next(self) -> tuple[str, str, int]:
        tok = self._peek()
        if tok is None:
            raise FormulaSyntaxError("Unexpected end of expression", len(self._expr))
        self._index += 1
        return tok

    def _parse_expr(self) -> float:
        value = self._parse_term()
        while (tok := self._peek()) is not None and tok[1] in ("+", "-"):
            self._index += 1
            right = self._parse_term()
            value = value + right if tok[1] == "+" else value - right
        return value

    def _parse_term(self) -> float:
        value = self._parse_factor()
        while (tok := self._peek()) is not None and tok[1] in ("*", "/"):
            self._index += 1
            right = self._parse_factor()
            if tok[1] == "*":
                value = value * right
            else:
                value = value / right
        return value

    def _parse_factor(self) -> float:
        kind, text, pos = self._next()
        if kind == "num":
            return float(text)
        if kind == "ref":
            return self._resolve(text)
        if text == "-":
            return -self._parse_factor()
        if text == "+":
            return self._parse_factor()
        if text == "(":
            value = self._parse_expr()
            closing = self._next()
            if closing[1] != ")":
                raise FormulaSyntaxError("Expected ')'", closing[2])
            return value
        raise FormulaSyntaxError(f"Unexpected token {text!r}", pos)


def evaluate_arithmetic(expr: str, resolve: Callable[[str], float]) -> float:
    """Evaluate an arithmetic expression, resolving references via *resolve*."""
    return ArithmeticParser(expr, resolve).parse()


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------


def format_number(value: float) -> str:
    """Whole numbers without a fraction, everything else to two decimals."""
    if not math.isfinite(value):
        return FormulaError.ERROR.code
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def format_result(result: Any) -> str:
    if isinstance(result, FormulaError):
        return result.code
    if isinstance(result, bool):
        return str(result).upper()
    if isinstance(result, (int, float)):
        return format_number(float(result))
    if isinstance(result, list):
        return ",".join(format_result(v) for v in result)
    return str(result)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class SheetEvaluator:
    """Evaluates cell content pulled from a :class:`CellSource`.

    Usage::

        evaluator = SheetEvaluator(worksheet)
        evaluator.display_value("B1")

    Nothing is cached between calls: every top-level call re-reads the
    source, so the evaluator is always consistent with the current grid.
    Within one call, the cells a formula depends on are evaluated bottom-up
    first and remembered, which keeps long reference chains from nesting
    one Python frame group per link.
    """

    def __init__(self, source: CellSource, functions: FunctionRegistry | None = None) -> None:
        self._source = source
        self._functions = functions or FunctionRegistry()
        self._active: list[str] = []
        self._memo: dict[str, str] | None = None
        # Bumped whenever a cycle or depth failure is caught; a value computed
        # while it changed depends on the calling context and is not memoised.
        self._tainted = 0

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def display_value(self, name: str) -> str:
        """Display value of the cell stored at *name*."""
        if self._memo is None:
            return self.evaluate(self._source.content(name), name)
        cached = self._memo.get(name)
        if cached is not None:
            return cached
        tainted = self._tainted
        value = self._evaluate_content(self._source.content(name), name)
        if tainted == self._tainted:
            self._memo[name] = value
        return value

    def evaluate(self, content: str, name: str) -> str:
        """Evaluate *content* as if it were stored at *name*."""
        if self._memo is not None:
            return self._evaluate_content(content, name)
        if not content.startswith("="):
            return content
        self._memo = {}
        try:
            self._warm_up(content, name)
            return self._evaluate_content(content, name)
        finally:
            self._memo = None

    def _evaluate_content(self, content: str, name: str) -> str:
        if not content.startswith("="):
            return content
        if name in self._active:
            raise CircularReferenceError(name)
        self._active.append(name)
        try:
            return format_result(self._evaluate_formula(content[1:], name))
        except CircularReferenceError as exc:
            if exc.cell != name:
                raise
            self._tainted += 1
            logger.debug("Circular reference in %s: %r", name, content)
            return FormulaError.ERROR.code
        except RecursionError:
            # Only the outermost cell may turn this into a value; an inner
            # #ERROR! would be read as 0 by the cells above it.
            self._tainted += 1
            if len(self._active) > 1:
                raise
            logger.debug("Reference chain too deep below %s", name)
            return FormulaError.ERROR.code
        except Exception as exc:
            logger.debug("Error evaluating %r in %s: %s", content, name, exc)
            return FormulaError.ERROR.code
        finally:
            self._active.pop()

    # ------------------------------------------------------------------
    # Dependency warm-up
    # ------------------------------------------------------------------

    def _cell_dependencies(self, content: str) -> list[str]:
        if not content.startswith("="):
            return []
        deps: list[str] = []
        for ref in referenced_cells(content):
            try:
                self._check_bounds(ref)
            except ValueError:
                continue
            deps.append(ref)
        return deps

    def _dependency_order(self, content: str, name: str) -> list[str]:
        """Cells reachable from *content*, each after the cells it reads.

        Iterative depth-first post-order; *name* itself is left out.
        """
        order: list[str] = []
        seen = {name}
        stack: list[tuple[str, bool]] = [
            (ref, False) for ref in reversed(self._cell_dependencies(content))
        ]
        while stack:
            ref, expanded = stack.pop()
            if expanded:
                order.append(ref)
                continue
            if ref in seen:
                continue
            seen.add(ref)
            stack.append((ref, True))
            for dep in reversed(self._cell_dependencies(self._source.content(ref))):
                if dep not in seen:
                    stack.append((dep, False))
        return order

    def _warm_up(self, content: str, name: str) -> None:
        """Memoise the dependencies of *content* before evaluating it.

        *name* is held active meanwhile, so a dependency that leads back to
        it raises instead of being remembered with the wrong value.
        """
        self._active.append(name)
        try:
            for ref in self._dependency_order(content, name):
                try:
                    self.display_value(ref)
                except (CircularReferenceError, RecursionError):
                    # Left unmemoised; the main pass evaluates it in context.
                    continue
        finally:
            self._active.pop()

    # ------------------------------------------------------------------
    # Formula dispatch
    # ------------------------------------------------------------------

    def _evaluate_formula(self, expr: str, name: str) -> Any:
        func = match_function_call(expr)
        if func is None:
            return evaluate_arithmetic(expr, lambda ref: self._numeric_ref(ref, name))

        func_name, args_str = func[0].upper(), func[1]
        aggregate = self._functions.get_aggregate(func_name)
        if aggregate is not None:
            return aggregate(self._gather_numbers(args_str, name))
        text_func = self._functions.get_text(func_name)
        if text_func is not None:
            return text_func(self._resolve_text_args(args_str, name))
        logger.debug("Unknown function %s in %s", func_name, name)
        return FormulaError.UNKNOWN_FUNCTION

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def _check_bounds(self, ref: str) -> None:
        row, col = a1_to_rowcol(ref)
        if not (0 <= row < self._source.n_rows and 0 <= col < self._source.n_cols):
            raise ValueError(f"Reference {ref} is outside the grid")

    def _ref_display(self, ref: str) -> str:
        self._check_bounds(ref)
        return self.display_value(ref)

    def _numeric_ref(self, ref: str, name: str) -> float:
        """Arithmetic operand for *ref*: its numeric display value, else 0."""
        if ref == name:
            return 0.0
        num = to_number(self._ref_display(ref))
        return num if num is not None else 0.0

    def _range_displays(self, range_str: str, name: str) -> list[str]:
        """Display values across a range, skipping the evaluating cell."""
        start, end = parse_range(range_str)
        self._check_bounds(start)
        self._check_bounds(end)
        return [self.display_value(ref) for ref in expand_range(range_str) if ref != name]

    def _gather_numbers(self, args_str: str, name: str) -> list[float]:
        numbers: list[float] = []
        args = split_top_level_args(args_str)
        if not args:
            raise ValueError("Aggregate function requires a range argument")
        for arg in args:
            for display in self._range_displays(arg, name):
                num = to_number(display)
                if num is not None:
                    numbers.append(num)
        return numbers

    def _resolve_text_args(self, args_str: str, name: str) -> list[Any]:
        resolved: list[Any] = []
        for arg in split_top_level_args(args_str):
            if arg[:1] in ('"', "'"):
                resolved.append(unquote(arg))
            elif ":" in arg:
                resolved.append(self._range_displays(arg, name))
            elif CELL_REF_RE.fullmatch(arg):
                resolved.append(self._ref_display(arg))
            else:
                resolved.append(unquote(arg))
        return resolved
