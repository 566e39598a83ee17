"""Error kinds and the exceptions raised when an edit is rejected.

Two channels carry errors:

* Computational errors (bad operand types, wrong argument shapes, division
  by zero, out-of-grid references) are *values*: a ``CalcError`` is stored on
  the cell and flows to its dependents.  See ``sheetcalc.calc._functions``.
* Structural errors block a commit.  They are raised as ``EditError``
  subclasses and leave the sheet exactly as it was before the call.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sheetcalc._address import CellAddress


class ErrorKind(str, Enum):
    """Every error the engine can produce, with its display code."""

    REF = "RefError"
    CYCLE = "CycleError"
    TYPE = "TypeError"
    ARITY = "ArityError"
    PARSE = "ParseError"
    DIV0 = "DivideByZero"
    VALIDATION = "ValidationError"

    @property
    def code(self) -> str:
        return _DISPLAY_CODES[self]


_DISPLAY_CODES: dict[ErrorKind, str] = {
    ErrorKind.REF: "#REF!",
    ErrorKind.CYCLE: "#CYCLE!",
    ErrorKind.TYPE: "#VALUE!",
    ErrorKind.ARITY: "#N/A",
    ErrorKind.PARSE: "#PARSE!",
    ErrorKind.DIV0: "#DIV/0!",
    ErrorKind.VALIDATION: "#INVALID!",
}


class EditError(ValueError):
    """Base class for edits rejected at commit time."""

    kind: ErrorKind = ErrorKind.PARSE

    def __init__(self, message: str, address: CellAddress | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.address = address


class FormulaParseError(EditError):
    """Formula text is malformed or names an unknown function."""

    kind = ErrorKind.PARSE

    def __init__(
        self,
        message: str,
        address: CellAddress | None = None,
        position: int | None = None,
    ) -> None:
        super().__init__(message, address)
        self.position = position


class CircularReferenceError(EditError):
    """Accepting the formula would make a cell depend on itself."""

    kind = ErrorKind.CYCLE

    def __init__(self, message: str, address: CellAddress | None = None,
                 cycle: tuple[CellAddress, ...] = ()) -> None:
        super().__init__(message, address)
        self.cycle = cycle


class CellValidationError(EditError):
    """A literal does not match the cell's declared data type."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, address: CellAddress | None = None,
                 declared_type: str | None = None) -> None:
        super().__init__(message, address)
        self.declared_type = declared_type


class CellReferenceError(EditError):
    """The edit targets a malformed or out-of-grid address."""

    kind = ErrorKind.REF
