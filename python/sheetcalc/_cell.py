"""Cell record and declared data types."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from sheetcalc.calc._functions import CalcError

Scalar = Union[int, float, str, bool]


class DataType(str, Enum):
    AUTO = "Auto"
    TEXT = "Text"
    NUMBER = "Number"
    DATE = "Date"

    @classmethod
    def coerce(cls, value: DataType | str) -> DataType:
        """Look up a type by value or name, case-insensitively."""
        if isinstance(value, DataType):
            return value
        key = value.strip().lower()
        for member in cls:
            if member.value.lower() == key or member.name.lower() == key:
                return member
        raise ValueError(f"Unknown data type: {value!r}")


class Cell:
    """Storage for one grid cell.

    ``content`` keeps what the user typed: the literal text, or the formula
    source without its trigger character.  A formula's result goes to
    ``value``/``error`` and never replaces ``content``.
    """

    __slots__ = ("content", "is_formula", "declared_type", "_result")

    def __init__(
        self,
        content: str | None = None,
        is_formula: bool = False,
        declared_type: DataType = DataType.AUTO,
    ) -> None:
        self.content = content
        self.is_formula = is_formula
        self.declared_type = declared_type
        # (value, error) written as one tuple so readers never see half a result
        self._result: tuple[Scalar | None, CalcError | None] = (None, None)

    def __repr__(self) -> str:
        return (
            f"Cell(content={self.content!r}, is_formula={self.is_formula}, "
            f"declared_type={self.declared_type.value}, result={self._result!r})"
        )

    @property
    def value(self) -> Scalar | None:
        return self._result[0]

    @property
    def error(self) -> CalcError | None:
        return self._result[1]

    @property
    def result(self) -> tuple[Scalar | None, CalcError | None]:
        return self._result

    def set_result(self, value: Scalar | None, error: CalcError | None = None) -> None:
        if error is not None:
            value = None
        self._result = (value, error)

    @property
    def is_empty(self) -> bool:
        return self.content is None or self.content == ""

    def clear(self) -> None:
        self.content = None
        self.is_formula = False
        self._result = (None, None)
