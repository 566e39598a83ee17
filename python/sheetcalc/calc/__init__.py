"""sheetcalc.calc - Formula parsing, dependency tracking and evaluation."""

from sheetcalc.calc._evaluator import Evaluator
from sheetcalc.calc._functions import (
    ArgShape,
    CalcError,
    FunctionRegistry,
    FunctionSpec,
    RangeValue,
)
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._parser import (
    FormulaParser,
    all_references,
    expand_range,
    parse_formula,
    references,
)
from sheetcalc.calc._protocol import CellDelta, CellSource, EvaluationSnapshot

__all__ = [
    "ArgShape",
    "CalcError",
    "CellDelta",
    "CellSource",
    "DependencyGraph",
    "EvaluationSnapshot",
    "Evaluator",
    "FormulaParser",
    "FunctionRegistry",
    "FunctionSpec",
    "RangeValue",
    "all_references",
    "expand_range",
    "parse_formula",
    "references",
]
