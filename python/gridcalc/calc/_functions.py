"""Function registry and builtin implementations for formula evaluation."""

from __future__ import annotations

import math
import re
from typing import Any, Callable


# ---------------------------------------------------------------------------
# FormulaError: sentinel display values
# ---------------------------------------------------------------------------


class FormulaError:
    """Error value shown in place of a formula result.

    Use ``FormulaError.of(code)`` to get a cached singleton for each code.
    Errors compare equal to their string code, so a display value can be
    checked with ``value == FormulaError.ERROR``.
    """

    __slots__ = ("code",)
    _cache: dict[str, FormulaError] = {}

    ERROR: FormulaError
    UNKNOWN_FUNCTION: FormulaError

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def of(cls, code: str) -> FormulaError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    def __repr__(self) -> str:
        return self.code

    def __str__(self) -> str:
        return self.code

    def __eq__(self, other: object) -> bool:
        if isinstance(other, FormulaError):
            return self.code == other.code
        if isinstance(other, str):
            return self.code == other.upper()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


FormulaError.ERROR = FormulaError.of("#ERROR!")
FormulaError.UNKNOWN_FUNCTION = FormulaError.of("#UNKNOWN_FUNCTION")


def is_error(val: Any) -> bool:
    """True for a FormulaError or its display string."""
    return isinstance(val, FormulaError) or val in (
        FormulaError.ERROR.code,
        FormulaError.UNKNOWN_FUNCTION.code,
    )


def to_number(val: Any) -> float | None:
    """Parse *val* as a finite float, or None.

    The whole string must be a number: ``"5px"`` is not 5.
    """
    if isinstance(val, bool) or val is None:
        return None
    if isinstance(val, (int, float)):
        num = float(val)
    else:
        text = str(val).strip()
        # float() also takes Python digit separators ("1_000").
        if "_" in text:
            return None
        try:
            num = float(text)
        except ValueError:
            return None
    if not math.isfinite(num):
        return None
    return num


# ---------------------------------------------------------------------------
# Catalog: what a function picker offers, by category
# ---------------------------------------------------------------------------

FUNCTION_CATALOG: dict[str, tuple[str, str]] = {
    # Aggregate (5)
    "SUM": ("aggregate", "=SUM(A1:A10)"),
    "AVERAGE": ("aggregate", "=AVERAGE(A1:A10)"),
    "MAX": ("aggregate", "=MAX(A1:A10)"),
    "MIN": ("aggregate", "=MIN(A1:A10)"),
    "COUNT": ("aggregate", "=COUNT(A1:A10)"),
    # Text (5)
    "TRIM": ("text", "=TRIM(A1)"),
    "UPPER": ("text", "=UPPER(A1)"),
    "LOWER": ("text", "=LOWER(A1)"),
    "REMOVE_DUPLICATES": ("text", "=REMOVE_DUPLICATES(A1:A10)"),
    "FIND_AND_REPLACE": ("text", '=FIND_AND_REPLACE(A1,"old","new")'),
}


# ---------------------------------------------------------------------------
# Aggregate builtins - each takes the flat list of numbers gathered from
# the range arguments.
# ---------------------------------------------------------------------------


def _builtin_sum(values: list[float]) -> float:
    return float(sum(values))


def _builtin_average(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def _builtin_max(values: list[float]) -> float:
    if not values:
        return 0.0
    return max(values)


def _builtin_min(values: list[float]) -> float:
    if not values:
        return 0.0
    return min(values)


def _builtin_count(values: list[Any]) -> float:
    """COUNT - re-checks every argument, so raw strings are accepted too."""
    return float(sum(1 for v in values if to_number(v) is not None))


# ---------------------------------------------------------------------------
# Text builtins - each takes the list of positional arguments.  An argument
# is a display string, or a list of display strings when it named a range.
# ---------------------------------------------------------------------------


def _first(value: Any) -> str:
    if isinstance(value, list):
        return str(value[0])
    return str(value)


def _builtin_trim(args: list[Any]) -> str:
    if len(args) != 1:
        raise ValueError("TRIM requires exactly 1 argument")
    return _first(args[0]).strip()


def _builtin_upper(args: list[Any]) -> str:
    if len(args) != 1:
        raise ValueError("UPPER requires exactly 1 argument")
    return _first(args[0]).upper()


def _builtin_lower(args: list[Any]) -> str:
    if len(args) != 1:
        raise ValueError("LOWER requires exactly 1 argument")
    return _first(args[0]).lower()


def _row_key(row: Any) -> str:
    if isinstance(row, (list, tuple)):
        return "|".join(str(v) for v in row)
    return str(row)


def _builtin_remove_duplicates(args: list[Any]) -> Any:
    """Keep the first occurrence of each distinct entry; scalars pass through."""
    if len(args) != 1:
        raise ValueError("REMOVE_DUPLICATES requires exactly 1 argument")
    value = args[0]
    if not isinstance(value, list):
        return value
    seen: set[str] = set()
    unique: list[Any] = []
    for row in value:
        key = _row_key(row)
        if key not in seen:
            seen.add(key)
            unique.append(row)
    return unique


def _builtin_find_and_replace(args: list[Any]) -> Any:
    """FIND_AND_REPLACE(text, find, [replace]) - global regex replace."""
    if len(args) < 2 or len(args) > 3:
        raise ValueError("FIND_AND_REPLACE requires 2 or 3 arguments")
    text, find = args[0], _first(args[1])
    replacement = _first(args[2]) if len(args) > 2 else ""
    if not find:
        return text
    pattern = re.compile(find)

    def _replace(value: Any) -> str:
        return pattern.sub(lambda _m: replacement, str(value))

    if isinstance(text, list):
        return [_replace(v) for v in text]
    return _replace(text)


_AGGREGATE_BUILTINS: dict[str, Callable[[list[float]], float]] = {
    "SUM": _builtin_sum,
    "AVERAGE": _builtin_average,
    "MAX": _builtin_max,
    "MIN": _builtin_min,
    "COUNT": _builtin_count,
}

_TEXT_BUILTINS: dict[str, Callable[[list[Any]], Any]] = {
    "TRIM": _builtin_trim,
    "UPPER": _builtin_upper,
    "LOWER": _builtin_lower,
    "REMOVE_DUPLICATES": _builtin_remove_duplicates,
    "FIND_AND_REPLACE": _builtin_find_and_replace,
}


class FunctionRegistry:
    """Registry of callable function implementations.

    Aggregate functions receive the numbers gathered from their range
    arguments; text functions receive resolved positional arguments.  A
    name is looked up in the aggregate table first.
    """

    def __init__(self) -> None:
        self._aggregate: dict[str, Callable[[list[float]], float]] = dict(_AGGREGATE_BUILTINS)
        self._text: dict[str, Callable[[list[Any]], Any]] = dict(_TEXT_BUILTINS)

    def register_aggregate(self, name: str, func: Callable[[list[float]], float]) -> None:
        self._aggregate[name.upper()] = func

    def register_text(self, name: str, func: Callable[[list[Any]], Any]) -> None:
        self._text[name.upper()] = func

    def get_aggregate(self, name: str) -> Callable[[list[float]], float] | None:
        return self._aggregate.get(name.upper())

    def get_text(self, name: str) -> Callable[[list[Any]], Any] | None:
        return self._text.get(name.upper())

    def has(self, name: str) -> bool:
        key = name.upper()
        return key in self._aggregate or key in self._text

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._aggregate) | frozenset(self._text)
