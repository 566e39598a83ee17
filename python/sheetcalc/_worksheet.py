"""Worksheet: sparse value store mapping addresses to :class:`Cell` records."""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

from sheetcalc._address import CellAddress
from sheetcalc._cell import Cell, DataType, Scalar
from sheetcalc._config import EngineSettings

if TYPE_CHECKING:
    from sheetcalc.calc._functions import CalcError


class Worksheet:
    """Authoritative cell storage for one grid.

    Cells are created on first write; a missing key means an empty cell.
    Implements the ``CellSource`` protocol the evaluator reads through.
    """

    __slots__ = ("_settings", "_cells")

    def __init__(self, settings: EngineSettings | None = None) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self._cells: dict[CellAddress, Cell] = {}

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def get(self, address: CellAddress) -> Cell | None:
        return self._cells.get(address)

    def __getitem__(self, address: CellAddress) -> Cell:
        """``ws[addr]`` -> Cell, creating an empty one if needed."""
        return self._get_or_create_cell(address)

    def _get_or_create_cell(self, address: CellAddress) -> Cell:
        cell = self._cells.get(address)
        if cell is None:
            cell = Cell()
            self._cells[address] = cell
        return cell

    def __contains__(self, address: object) -> bool:
        return address in self._cells

    def __iter__(self) -> Iterator[CellAddress]:
        """Stored addresses in row-major order."""
        return iter(sorted(self._cells))

    def __len__(self) -> int:
        return len(self._cells)

    def discard_if_empty(self, address: CellAddress) -> None:
        """Drop a cell that holds nothing worth keeping (sparse storage)."""
        cell = self._cells.get(address)
        if cell is not None and cell.is_empty and cell.declared_type is DataType.AUTO:
            del self._cells[address]

    # ------------------------------------------------------------------
    # CellSource protocol
    # ------------------------------------------------------------------

    def result_of(self, address: CellAddress) -> tuple[Scalar | None, CalcError | None]:
        cell = self._cells.get(address)
        if cell is None:
            return (None, None)
        return cell.result

    def in_bounds(self, address: CellAddress) -> bool:
        return self._settings.in_bounds(address)
