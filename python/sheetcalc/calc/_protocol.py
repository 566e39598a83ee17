"""CellSource protocol and recalculation result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sheetcalc._address import CellAddress
    from sheetcalc.calc._functions import CalcError

ScalarValue = float | int | str | bool | None


@dataclass(frozen=True)
class CellDelta:
    """A single cell's result change from recalculation."""

    address: CellAddress
    old_value: ScalarValue
    new_value: ScalarValue
    old_error: CalcError | None = None
    new_error: CalcError | None = None
    formula: str | None = None  # the formula that produced new_value


@dataclass(frozen=True)
class EvaluationSnapshot:
    """Outcome of one committed edit or full recalculation pass."""

    edited: CellAddress | None  # None for a full recalculation
    tiers: tuple[tuple[CellAddress, ...], ...]  # evaluation order, tier by tier
    deltas: tuple[CellDelta, ...]  # cells whose value or error changed
    max_chain_depth: int = 0  # longest dependency chain from the edited cell

    @property
    def recomputed(self) -> tuple[CellAddress, ...]:
        return tuple(cell for tier in self.tiers for cell in tier)

    @property
    def changed(self) -> frozenset[CellAddress]:
        return frozenset(d.address for d in self.deltas)


@runtime_checkable
class CellSource(Protocol):
    """Read access the evaluator needs: current results of other cells."""

    def result_of(self, address: CellAddress) -> tuple[ScalarValue, CalcError | None]:
        """``(value, error)`` last computed for *address*; ``(None, None)`` if empty."""
        ...

    def in_bounds(self, address: CellAddress) -> bool:
        """Whether *address* lies inside the grid."""
        ...
