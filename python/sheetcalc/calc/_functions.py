"""Function registry and builtin implementations for formula evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Iterator
from typing import Any, Callable

from sheetcalc._errors import ErrorKind


# ---------------------------------------------------------------------------
# CalcError: typed error values that propagate through formula chains
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalcError:
    """Error value produced during evaluation.

    Stored on the failing cell and handed, unchanged, to every cell that
    reads it.  ``str()`` gives the spreadsheet display code (``#DIV/0!``).
    """

    kind: ErrorKind
    message: str = ""

    @property
    def code(self) -> str:
        return self.kind.code

    def __str__(self) -> str:
        return self.code


def first_error(*values: Any) -> CalcError | None:
    """Return the first CalcError found in *values*, or None."""
    for v in values:
        if isinstance(v, CalcError):
            return v
    return None


def type_error(message: str) -> CalcError:
    return CalcError(ErrorKind.TYPE, message)


def arity_error(message: str) -> CalcError:
    return CalcError(ErrorKind.ARITY, message)


def div0_error(message: str = "division by zero") -> CalcError:
    return CalcError(ErrorKind.DIV0, message)


def ref_error(message: str) -> CalcError:
    return CalcError(ErrorKind.REF, message)


# ---------------------------------------------------------------------------
# RangeValue: shape-aware 2D range container
# ---------------------------------------------------------------------------


@dataclass
class RangeValue:
    """A resolved cell range that preserves 2D shape metadata.

    Values are stored row-major, matching ``CellRange.cells()``.
    """

    values: list[Any]
    n_rows: int
    n_cols: int

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)


# ---------------------------------------------------------------------------
# Argument shapes and function specs
# ---------------------------------------------------------------------------


class ArgShape(str, Enum):
    """What a function accepts in one argument position."""

    RANGE = "range"  # range or single-cell reference, passed as RangeValue
    SCALAR = "scalar"  # any non-range expression, passed as its value


@dataclass(frozen=True)
class FunctionSpec:
    """A named function with its argument contract.

    ``evaluate`` receives arguments already resolved to the declared shapes
    and free of errors; it returns a scalar or a :class:`CalcError`.
    """

    name: str
    arg_shapes: tuple[ArgShape, ...]
    evaluate: Callable[[list[Any]], Any] = field(compare=False)
    category: str = "custom"
    variadic: bool = False  # last shape may repeat

    def check_arity(self, n_args: int) -> CalcError | None:
        expected = len(self.arg_shapes)
        if self.variadic:
            if n_args >= expected:
                return None
            return arity_error(f"{self.name} takes at least {expected} argument(s), got {n_args}")
        if n_args != expected:
            return arity_error(f"{self.name} takes {expected} argument(s), got {n_args}")
        return None

    def shape_at(self, index: int) -> ArgShape:
        if index < len(self.arg_shapes):
            return self.arg_shapes[index]
        return self.arg_shapes[-1]


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def is_number(v: Any) -> bool:
    """int/float/bool, the types arithmetic accepts (TRUE=1, FALSE=0)."""
    return isinstance(v, (int, float))


def coerce_string(val: Any) -> str:
    """Display text of a scalar, as used by ``&`` and the text functions."""
    if val is None:
        return ""
    if isinstance(val, bool):
        return "TRUE" if val else "FALSE"
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def _aggregate_numbers(rng: RangeValue) -> tuple[list[float], int]:
    """Numbers contributed by a range, and how many of them came from numbers.

    Empty cells are skipped.  Non-numeric cells contribute 0.
    """
    nums: list[float] = []
    numeric = 0
    for v in rng:
        if v is None:
            continue
        if is_number(v):
            nums.append(float(v))
            numeric += 1
        else:
            nums.append(0.0)
    return nums, numeric


# ---------------------------------------------------------------------------
# Builtins
# Each receives its arguments already resolved to their declared shapes.
# ---------------------------------------------------------------------------


def _builtin_sum(args: list[Any]) -> float:
    nums, _ = _aggregate_numbers(args[0])
    return sum(nums)


def _builtin_average(args: list[Any]) -> float | CalcError:
    nums, _ = _aggregate_numbers(args[0])
    if not nums:
        return div0_error("AVERAGE of an empty range")
    return sum(nums) / len(nums)


def _builtin_max(args: list[Any]) -> float:
    """MAX - 0 when the range holds no numbers (not an error)."""
    nums, numeric = _aggregate_numbers(args[0])
    if not numeric:
        return 0.0
    return max(nums)


def _builtin_min(args: list[Any]) -> float:
    """MIN - 0 when the range holds no numbers (not an error)."""
    nums, numeric = _aggregate_numbers(args[0])
    if not numeric:
        return 0.0
    return min(nums)


def _builtin_count(args: list[Any]) -> int:
    """COUNT - counts numeric values only."""
    _, numeric = _aggregate_numbers(args[0])
    return numeric


def _builtin_trim(args: list[Any]) -> str:
    return coerce_string(args[0]).strip()


def _builtin_upper(args: list[Any]) -> str:
    return coerce_string(args[0]).upper()


def _builtin_lower(args: list[Any]) -> str:
    return coerce_string(args[0]).lower()


def _builtin_find_and_replace(args: list[Any]) -> str:
    """FIND_AND_REPLACE(text, old, new) - case-sensitive, every occurrence."""
    text, old, new = (coerce_string(a) for a in args)
    if not old:
        return text
    return text.replace(old, new)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

_ONE_RANGE = (ArgShape.RANGE,)
_ONE_SCALAR = (ArgShape.SCALAR,)

_BUILTINS: dict[str, FunctionSpec] = {
    spec.name: spec
    for spec in (
        # Aggregate
        FunctionSpec("SUM", _ONE_RANGE, _builtin_sum, "aggregate"),
        FunctionSpec("AVERAGE", _ONE_RANGE, _builtin_average, "aggregate"),
        FunctionSpec("MAX", _ONE_RANGE, _builtin_max, "aggregate"),
        FunctionSpec("MIN", _ONE_RANGE, _builtin_min, "aggregate"),
        FunctionSpec("COUNT", _ONE_RANGE, _builtin_count, "aggregate"),
        # Text
        FunctionSpec("TRIM", _ONE_SCALAR, _builtin_trim, "text"),
        FunctionSpec("UPPER", _ONE_SCALAR, _builtin_upper, "text"),
        FunctionSpec("LOWER", _ONE_SCALAR, _builtin_lower, "text"),
        FunctionSpec("FIND_AND_REPLACE", _ONE_SCALAR * 3, _builtin_find_and_replace, "text"),
    )
}

class FunctionRegistry:
    """Registry of callable function implementations.

    Starts with builtins and can be extended with custom functions.  The
    parser consults :meth:`has` and the evaluator :meth:`get`, so a newly
    registered name is usable in formulas parsed after registration.
    """

    def __init__(self) -> None:
        self._functions: dict[str, FunctionSpec] = dict(_BUILTINS)

    def register(
        self,
        name: str,
        func: Callable[[list[Any]], Any],
        arg_shapes: tuple[ArgShape, ...] = _ONE_SCALAR,
        *,
        category: str = "custom",
        variadic: bool = False,
    ) -> FunctionSpec:
        if variadic and not arg_shapes:
            raise ValueError(f"{name}: a variadic function needs at least one argument shape")
        spec = FunctionSpec(name.upper(), tuple(arg_shapes), func, category, variadic)
        self._functions[spec.name] = spec
        return spec

    def get(self, name: str) -> FunctionSpec | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions
