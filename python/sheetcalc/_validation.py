"""Declared-type validation and display-type inference for literal input."""

from __future__ import annotations

import datetime
import math
import re

from sheetcalc._address import CellAddress
from sheetcalc._cell import DataType, Scalar
from sheetcalc._errors import CellValidationError

_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d")
# strptime accepts single-digit fields; the grammar wants MM/DD/YYYY or YYYY/MM/DD
_DATE_SHAPE_RE = re.compile(r"^(?:\d{2}/\d{2}/\d{4}|\d{4}/\d{2}/\d{2})$")


def is_number(text: str) -> bool:
    """Signed decimal within float range: ``42``, ``-3.5``, ``+.25``, ``7.``."""
    candidate = text.strip()
    return bool(_NUMBER_RE.match(candidate)) and math.isfinite(float(candidate))


def is_date(text: str) -> bool:
    """``MM/DD/YYYY`` or ``YYYY/MM/DD`` naming a real calendar day."""
    candidate = text.strip()
    if not _DATE_SHAPE_RE.match(candidate):
        return False
    for fmt in _DATE_FORMATS:
        try:
            datetime.datetime.strptime(candidate, fmt)
        except ValueError:
            continue
        return True
    return False


def infer_type(text: str | None) -> DataType:
    """Classify literal text for display; never gates acceptance."""
    if text is None or not text.strip():
        return DataType.AUTO
    if is_number(text):
        return DataType.NUMBER
    if is_date(text):
        return DataType.DATE
    return DataType.TEXT


def validate_literal(address: CellAddress, text: str, declared_type: DataType) -> None:
    """Raise :class:`CellValidationError` if *text* violates *declared_type*.

    Empty text clears the cell and is always accepted.
    """
    if not text.strip():
        return
    if declared_type is DataType.NUMBER and not is_number(text):
        raise CellValidationError(
            f"{address}: {text!r} is not a valid Number",
            address=address,
            declared_type=declared_type.value,
        )
    if declared_type is DataType.DATE and not is_date(text):
        raise CellValidationError(
            f"{address}: {text!r} is not a valid Date (expected MM/DD/YYYY or YYYY/MM/DD)",
            address=address,
            declared_type=declared_type.value,
        )


def literal_value(text: str) -> Scalar | None:
    """Computed value of a literal cell.

    Number-shaped text becomes ``int``/``float`` whatever the declared type;
    anything else stays a string.
    """
    if not text.strip():
        return None
    if is_number(text):
        stripped = text.strip()
        if _INT_RE.match(stripped):
            # leading zeros count against int()'s digit limit
            sign = "-" if stripped.startswith("-") else ""
            return int(sign + (stripped.lstrip("+-").lstrip("0") or "0"))
        return float(stripped)
    return text
