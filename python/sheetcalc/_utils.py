"""A1-notation helpers shared by the address model and the formula parser."""

from __future__ import annotations

import re

_A1_RE = re.compile(r"^([A-Za-z]{1,3})([1-9][0-9]*)$")
_COLUMN_RE = re.compile(r"^[A-Za-z]{1,3}$")


def column_letter_to_index(letters: str) -> int:
    """Convert a column label (A, Z, AA) to a 0-based index (A=0)."""
    if not _COLUMN_RE.match(letters):
        raise ValueError(f"Invalid column label: {letters!r}")
    index = 0
    for ch in letters.upper():
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def column_index_to_letter(index: int) -> str:
    """Convert a 0-based column index to its label (0 -> A, 26 -> AA)."""
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    chunks: list[str] = []
    current = index + 1
    while current > 0:
        current -= 1
        chunks.append(chr(ord("A") + current % 26))
        current //= 26
    return "".join(reversed(chunks))


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """Split ``"B3"`` into ``(3, 1)``: 1-based row, 0-based column."""
    m = _A1_RE.match(ref)
    if not m:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return int(m.group(2)), column_letter_to_index(m.group(1))


def rowcol_to_a1(row: int, col: int) -> str:
    """Inverse of :func:`a1_to_rowcol`."""
    if row < 1:
        raise ValueError(f"Row must be positive, got {row}")
    return f"{column_index_to_letter(col)}{row}"
