"""Cell addresses and rectangular ranges.

Both types are immutable values. ``CellAddress`` orders by ``(row, column)``
so sorting a collection of addresses gives the same row-major order that
:meth:`CellRange.cells` enumerates.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from sheetcalc._utils import a1_to_rowcol, rowcol_to_a1


class AddressError(ValueError):
    """Text is not a valid A1 address or range."""


@dataclass(frozen=True, order=True)
class CellAddress:
    """A single grid coordinate: 1-based row, 0-based column (A=0)."""

    row: int
    column: int

    def __post_init__(self) -> None:
        if self.row < 1:
            raise AddressError(f"Row must be positive, got {self.row}")
        if self.column < 0:
            raise AddressError(f"Column must be non-negative, got {self.column}")

    @classmethod
    def parse(cls, text: str) -> CellAddress:
        try:
            row, col = a1_to_rowcol(text.strip())
        except ValueError as e:
            raise AddressError(str(e)) from None
        return cls(row=row, column=col)

    def __str__(self) -> str:
        return rowcol_to_a1(self.row, self.column)

    def __repr__(self) -> str:
        return f"CellAddress({self})"


@dataclass(frozen=True)
class _RangeCells:
    """Restartable row-major view over the cells of a range."""

    rng: CellRange

    def __iter__(self) -> Iterator[CellAddress]:
        start, end = self.rng.start, self.rng.end
        for r in range(start.row, end.row + 1):
            for c in range(start.column, end.column + 1):
                yield CellAddress(row=r, column=c)

    def __len__(self) -> int:
        return len(self.rng)


@dataclass(frozen=True)
class CellRange:
    """Rectangular block of cells, normalized to top-left / bottom-right."""

    start: CellAddress
    end: CellAddress

    def __post_init__(self) -> None:
        top, bottom = sorted((self.start.row, self.end.row))
        left, right = sorted((self.start.column, self.end.column))
        # frozen dataclass: normalize in place through object.__setattr__
        object.__setattr__(self, "start", CellAddress(row=top, column=left))
        object.__setattr__(self, "end", CellAddress(row=bottom, column=right))

    @classmethod
    def parse(cls, text: str) -> CellRange:
        parts = text.strip().split(":")
        if len(parts) != 2:
            raise AddressError(f"Invalid range: {text!r}")
        return cls(CellAddress.parse(parts[0]), CellAddress.parse(parts[1]))

    @property
    def n_rows(self) -> int:
        return self.end.row - self.start.row + 1

    @property
    def n_cols(self) -> int:
        return self.end.column - self.start.column + 1

    def cells(self) -> _RangeCells:
        return _RangeCells(self)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, CellAddress):
            return False
        return (
            self.start.row <= address.row <= self.end.row
            and self.start.column <= address.column <= self.end.column
        )

    def __len__(self) -> int:
        return self.n_rows * self.n_cols

    def __str__(self) -> str:
        return f"{self.start}:{self.end}"

    def __repr__(self) -> str:
        return f"CellRange({self})"


def parse_address(text: str) -> CellAddress:
    return CellAddress.parse(text)


def parse_range(text: str) -> CellRange:
    return CellRange.parse(text)


def format_address(address: CellAddress) -> str:
    return str(address)


def format_range(rng: CellRange) -> str:
    return str(rng)


def cells_in(rng: CellRange) -> _RangeCells:
    """Row-major addresses of *rng*; iterating twice yields the same order."""
    return rng.cells()


def as_address(ref: str | CellAddress) -> CellAddress:
    """Accept either ``"A1"`` or a :class:`CellAddress`."""
    if isinstance(ref, CellAddress):
        return ref
    return CellAddress.parse(ref)
