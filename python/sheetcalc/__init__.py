"""sheetcalc: spreadsheet formula evaluation and dependency engine.

Usage::

    from sheetcalc import Spreadsheet

    sheet = Spreadsheet()
    sheet.commit_edit("A1", "10")
    sheet.commit_edit("A2", "20")
    sheet.commit_edit("A3", "=SUM(A1:A2)")
    print(sheet.read("A3").display_value)   # 30

    sheet.commit_edit("A1", "15")            # recomputes A3 only
"""

from sheetcalc._address import (
    AddressError,
    CellAddress,
    CellRange,
    cells_in,
    format_address,
    format_range,
    parse_address,
    parse_range,
)
from sheetcalc._cell import Cell, DataType
from sheetcalc._config import EngineSettings
from sheetcalc._errors import (
    CellReferenceError,
    CellValidationError,
    CircularReferenceError,
    EditError,
    ErrorKind,
    FormulaParseError,
)
from sheetcalc._spreadsheet import CellView, Spreadsheet
from sheetcalc.calc import CalcError, EvaluationSnapshot, FunctionRegistry

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "AddressError",
    "CalcError",
    "Cell",
    "CellAddress",
    "CellRange",
    "CellReferenceError",
    "CellValidationError",
    "CellView",
    "CircularReferenceError",
    "DataType",
    "EditError",
    "EngineSettings",
    "ErrorKind",
    "EvaluationSnapshot",
    "FormulaParseError",
    "FunctionRegistry",
    "Spreadsheet",
    "cells_in",
    "format_address",
    "format_range",
    "parse_address",
    "parse_range",
]
