"""Evaluator: walks a parsed expression tree against current cell results.

Replaces string substitution and host-language ``eval`` with a typed walk
over the tree built by :mod:`sheetcalc.calc._parser`.  Every outcome is
either a scalar or a :class:`CalcError`; nothing raises out of
:meth:`Evaluator.evaluate`.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import Any

from sheetcalc._errors import ErrorKind
from sheetcalc.calc._functions import (
    ArgShape,
    CalcError,
    FunctionRegistry,
    FunctionSpec,
    RangeValue,
    arity_error,
    coerce_string,
    div0_error,
    first_error,
    is_number,
    ref_error,
    type_error,
)
from sheetcalc.calc._parser import (
    Boolean,
    BinaryOp,
    CellRef,
    Expression,
    FunctionCall,
    Number,
    RangeRef,
    String,
    UnaryOp,
)
from sheetcalc.calc._protocol import CellSource

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Operator helpers
# ---------------------------------------------------------------------------


def _as_number(val: Any, op: str) -> int | float | CalcError:
    """Numeric operand: empty counts as 0, text is a type error."""
    if val is None:
        return 0
    if is_number(val):
        return val
    return type_error(f"operator {op!r} needs numbers, got text {val!r}")


def _finite(val: int | float) -> int | float | CalcError:
    """Keep results inside the float range, for ints as well as floats."""
    if isinstance(val, float):
        if not math.isfinite(val):
            return type_error("numeric overflow")
    elif abs(val) > sys.float_info.max:
        return type_error("numeric overflow")
    return val


def _binary_op(left: Any, op: str, right: Any) -> Any:
    """Evaluate an arithmetic or string binary operation."""
    # Error propagation: if either operand is an error, propagate it
    err = first_error(left, right)
    if err is not None:
        return err
    if op == '&':
        return coerce_string(left) + coerce_string(right)
    lnum = _as_number(left, op)
    rnum = _as_number(right, op)
    err = first_error(lnum, rnum)
    if err is not None:
        return err
    if op == '/' and rnum == 0:
        return div0_error()
    try:
        if op == '+':
            return _finite(lnum + rnum)
        if op == '-':
            return _finite(lnum - rnum)
        if op == '*':
            return _finite(lnum * rnum)
        if op == '/':
            return _finite(lnum / rnum)
    except OverflowError:
        return type_error("numeric overflow")
    return type_error(f"unknown operator {op!r}")


def _compare(left: Any, right: Any, op: str) -> Any:
    """Evaluate a comparison operation.

    Numbers (and empty cells) compare numerically; anything involving text
    compares as case-insensitive text.  Returns a CalcError if either
    operand is an error.
    """
    # Error propagation: if either operand is an error, propagate it
    err = first_error(left, right)
    if err is not None:
        return err
    if (left is None or is_number(left)) and (right is None or is_number(right)):
        lv: Any = left if left is not None else 0
        rv: Any = right if right is not None else 0
    else:
        lv = coerce_string(left).lower()
        rv = coerce_string(right).lower()
    if op == '=':
        return lv == rv
    if op == '<>':
        return lv != rv
    if op == '>':
        return lv > rv
    if op == '<':
        return lv < rv
    if op == '>=':
        return lv >= rv
    if op == '<=':
        return lv <= rv
    return type_error(f"unknown operator {op!r}")


def values_differ(a: Any, b: Any) -> bool:
    """Whether two stored results differ (1 and 1.0 do not; TRUE and 1 do)."""
    if a is None and b is None:
        return False
    if a is None or b is None:
        return True
    if type(a) is bool or type(b) is bool:
        return a is not b
    return a != b


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------


class Evaluator:
    """Evaluates parsed formulas against a :class:`CellSource`.

    Usage::

        evaluator = Evaluator(registry)
        value = evaluator.evaluate(parse_formula("SUM(A1:A3)*2"), worksheet)

    Holds no per-pass state, so one instance can evaluate cells of the same
    tier from several threads at once.
    """

    def __init__(self, functions: FunctionRegistry | None = None) -> None:
        self._functions = functions if functions is not None else FunctionRegistry()

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def evaluate(self, expr: Expression, source: CellSource) -> Any:
        """Value of *expr*, or the CalcError it produced.

        A formula that is just a reference to an empty cell yields 0.  A tree
        too deep to walk recursively yields a TypeError.
        """
        try:
            result = self._eval(expr, source)
        except RecursionError:
            return type_error("formula is nested too deeply to evaluate")
        if result is None:
            return 0
        return result

    def _eval(self, expr: Expression, source: CellSource) -> Any:
        if isinstance(expr, Number):
            return _finite(expr.value)
        if isinstance(expr, (String, Boolean)):
            return expr.value
        if isinstance(expr, CellRef):
            return self._resolve_cell(expr, source)
        if isinstance(expr, RangeRef):
            return type_error(f"range {expr.range} used where a single value is expected")
        if isinstance(expr, UnaryOp):
            val = self._eval(expr.operand, source)
            if isinstance(val, CalcError):
                return val
            num = _as_number(val, expr.op)
            if isinstance(num, CalcError) or expr.op == '+':
                return num
            return -num
        if isinstance(expr, BinaryOp):
            left = self._eval(expr.left, source)
            right = self._eval(expr.right, source)
            if expr.op in ('+', '-', '*', '/', '&'):
                return _binary_op(left, expr.op, right)
            return _compare(left, right, expr.op)
        if isinstance(expr, FunctionCall):
            return self._eval_function(expr, source)
        return type_error(f"cannot evaluate {expr!r}")

    # ------------------------------------------------------------------
    # Reference resolution
    # ------------------------------------------------------------------

    def _resolve_cell(self, ref: CellRef, source: CellSource) -> Any:
        """Current result of a referenced cell; its error if it has one."""
        if not source.in_bounds(ref.address):
            return ref_error(f"{ref.address} is outside the grid")
        value, error = source.result_of(ref.address)
        if error is not None:
            return error
        return value

    def _resolve_range(self, ref: RangeRef | CellRef, source: CellSource) -> RangeValue | CalcError:
        """Resolve a range (or a single cell as 1x1) to a :class:`RangeValue`."""
        if isinstance(ref, CellRef):
            val = self._resolve_cell(ref, source)
            if isinstance(val, CalcError):
                return val
            return RangeValue(values=[val], n_rows=1, n_cols=1)
        rng = ref.range
        if not source.in_bounds(rng.end):
            return ref_error(f"{rng} extends outside the grid")
        values: list[Any] = []
        for addr in rng.cells():
            value, error = source.result_of(addr)
            if error is not None:
                return error
            values.append(value)
        return RangeValue(values=values, n_rows=rng.n_rows, n_cols=rng.n_cols)

    # ------------------------------------------------------------------
    # Function dispatch
    # ------------------------------------------------------------------

    def _eval_function(self, call: FunctionCall, source: CellSource) -> Any:
        """Evaluate a function call with arguments resolved to their shapes."""
        spec = self._functions.get(call.name)
        if spec is None:
            # registry changed after the formula was parsed
            return CalcError(ErrorKind.PARSE, f"unknown function {call.name}")
        err = spec.check_arity(len(call.args))
        if err is not None:
            return err

        args: list[Any] = []
        for i, arg in enumerate(call.args):
            resolved = self._resolve_arg(spec, i, arg, source)
            if isinstance(resolved, CalcError):
                return resolved
            args.append(resolved)

        try:
            result = spec.evaluate(args)
        except Exception as e:
            logger.debug("Error evaluating %s: %s", call.name, e)
            return type_error(f"{call.name}: {e}")
        if is_number(result):
            return _finite(result)
        return result

    def _resolve_arg(self, spec: FunctionSpec, index: int, arg: Expression, source: CellSource) -> Any:
        shape = spec.shape_at(index)
        if shape is ArgShape.RANGE:
            if not isinstance(arg, (RangeRef, CellRef)):
                return arity_error(f"{spec.name} argument {index + 1} must be a range")
            return self._resolve_range(arg, source)
        if isinstance(arg, RangeRef):
            return arity_error(f"{spec.name} argument {index + 1} must be a single value, got range {arg.range}")
        return self._eval(arg, source)
