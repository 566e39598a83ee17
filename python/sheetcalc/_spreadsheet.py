"""Spreadsheet: the engine facade and its single mutation entry point.

Usage::

    sheet = Spreadsheet()
    sheet.commit_edit("A1", "10")
    sheet.commit_edit("A2", "=A1*2")
    sheet.read("A2").display_value   # "20"

Every edit runs to completion, including recomputation of the edited
cell's dependents, before the next edit or read is admitted.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from sheetcalc._address import AddressError, CellAddress, as_address
from sheetcalc._cell import DataType, Scalar
from sheetcalc._config import EngineSettings
from sheetcalc._errors import (
    CellReferenceError,
    CellValidationError,
    CircularReferenceError,
    FormulaParseError,
)
from sheetcalc._validation import infer_type, is_date, literal_value, validate_literal
from sheetcalc._worksheet import Worksheet
from sheetcalc.calc._evaluator import Evaluator, values_differ
from sheetcalc.calc._functions import CalcError, FunctionRegistry, coerce_string
from sheetcalc.calc._graph import DependencyGraph
from sheetcalc.calc._parser import Expression, FormulaParser, all_references
from sheetcalc.calc._protocol import CellDelta, EvaluationSnapshot

logger = logging.getLogger(__name__)

_Result = tuple[Scalar | None, CalcError | None]


def format_value(value: Any) -> str:
    """Display text for a computed value."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return coerce_string(value)


def _classify_value(value: Any) -> DataType:
    if value is None:
        return DataType.AUTO
    if isinstance(value, bool):
        # no declared type describes TRUE/FALSE
        return DataType.AUTO
    if isinstance(value, (int, float)):
        return DataType.NUMBER
    if is_date(value):
        return DataType.DATE
    return DataType.TEXT


@dataclass(frozen=True)
class CellView:
    """What a collaborator needs to display one cell."""

    address: CellAddress
    display_value: str
    value: Scalar | None
    error: CalcError | None
    declared_type: DataType
    inferred_type: DataType
    content: str | None = None
    is_formula: bool = False


class Spreadsheet:
    """Formula evaluation and dependency engine for one grid."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        functions: FunctionRegistry | None = None,
    ) -> None:
        self._settings = settings if settings is not None else EngineSettings()
        self._functions = functions if functions is not None else FunctionRegistry()
        self._parser = FormulaParser(self._functions)
        self._evaluator = Evaluator(self._functions)
        self._sheet = Worksheet(self._settings)
        self._graph = DependencyGraph()
        self._formulas: dict[CellAddress, Expression] = {}
        self._lock = threading.RLock()

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    def __contains__(self, address: object) -> bool:
        try:
            addr = as_address(address)  # type: ignore[arg-type]
        except (AddressError, TypeError):
            return False
        with self._lock:
            return addr in self._sheet

    def __len__(self) -> int:
        with self._lock:
            return len(self._sheet)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def commit_edit(self, address: str | CellAddress, raw_text: str) -> EvaluationSnapshot:
        """Write *raw_text* to a cell and bring every dependent up to date.

        Text starting with the formula prefix is parsed as a formula; any
        other text is a literal.  Empty text clears the cell.

        Raises FormulaParseError, CircularReferenceError, CellValidationError
        or CellReferenceError; in every such case nothing has changed.
        """
        addr = self._target(address)
        prefix = self._settings.formula_prefix
        with self._lock:
            before = self._sheet.result_of(addr)
            if raw_text.startswith(prefix):
                self._commit_formula(addr, raw_text[len(prefix):])
            else:
                self._commit_literal(addr, raw_text)
            snapshot = self._recalculate(
                self._graph.dirty_set({addr}), edited=addr, prior={addr: before},
            )
        logger.info(
            "Committed %s (%d cell(s) recomputed, %d changed)",
            addr, len(snapshot.recomputed), len(snapshot.deltas),
        )
        return snapshot

    def _commit_formula(self, addr: CellAddress, source: str) -> None:
        try:
            expr = self._parser.parse(source)
        except FormulaParseError as e:
            e.address = addr
            logger.warning("Rejected formula for %s: %s", addr, e)
            raise

        refs = all_references(expr, self._settings.in_bounds)
        cycle = self._graph.find_cycle(addr, refs)
        if cycle is not None:
            path = " -> ".join(str(c) for c in cycle)
            logger.warning("Rejected formula for %s: circular reference %s", addr, path)
            raise CircularReferenceError(
                f"Circular reference: {path}", address=addr, cycle=cycle,
            )

        cell = self._sheet[addr]
        cell.content = source
        cell.is_formula = True
        self._graph.set_dependencies(addr, refs)
        self._formulas[addr] = expr

    def _commit_literal(self, addr: CellAddress, text: str) -> None:
        existing = self._sheet.get(addr)
        declared = existing.declared_type if existing is not None else DataType.AUTO
        try:
            validate_literal(addr, text, declared)
        except CellValidationError as e:
            logger.warning("Rejected literal for %s: %s", addr, e)
            raise

        if addr in self._graph:
            self._graph.clear_dependencies(addr)
        self._formulas.pop(addr, None)

        if not text.strip():
            if existing is not None:
                existing.clear()
                self._sheet.discard_if_empty(addr)
            return
        cell = self._sheet[addr]
        cell.content = text
        cell.is_formula = False

    def set_declared_type(self, address: str | CellAddress, data_type: DataType | str) -> None:
        """Change a cell's declared type without touching its content.

        Raises CellValidationError if the type is unknown or the cell's
        current literal does not satisfy it.
        """
        addr = self._target(address)
        try:
            dtype = DataType.coerce(data_type)
        except ValueError as e:
            raise CellValidationError(str(e), address=addr) from None
        with self._lock:
            cell = self._sheet.get(addr)
            if cell is not None and not cell.is_formula and cell.content:
                validate_literal(addr, cell.content, dtype)
            self._sheet[addr].declared_type = dtype
            self._sheet.discard_if_empty(addr)
        logger.debug("Declared %s as %s", addr, dtype.value)

    def recalculate(self) -> EvaluationSnapshot:
        """Recompute every stored cell in dependency order."""
        with self._lock:
            return self._recalculate(set(self._sheet), edited=None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def read(self, address: str | CellAddress) -> CellView:
        addr = self._target(address)
        with self._lock:
            cell = self._sheet.get(addr)
            if cell is None:
                return CellView(addr, "", None, None, DataType.AUTO, DataType.AUTO)
            value, error = cell.result
            if cell.is_formula:
                inferred = DataType.AUTO if error is not None else _classify_value(value)
            else:
                inferred = infer_type(cell.content)
            return CellView(
                address=addr,
                display_value=error.code if error is not None else format_value(value),
                value=value,
                error=error,
                declared_type=cell.declared_type,
                inferred_type=inferred,
                content=cell.content,
                is_formula=cell.is_formula,
            )

    def formula_text(self, address: str | CellAddress) -> str:
        """The text as the user entered it, formula prefix included."""
        addr = self._target(address)
        with self._lock:
            cell = self._sheet.get(addr)
            if cell is None or cell.content is None:
                return ""
            if cell.is_formula:
                return f"{self._settings.formula_prefix}{cell.content}"
            return cell.content

    def dependencies_of(self, address: str | CellAddress) -> tuple[CellAddress, ...]:
        addr = self._target(address)
        with self._lock:
            return tuple(sorted(self._graph.dependencies.get(addr, ())))

    def dependents_of(self, address: str | CellAddress) -> tuple[CellAddress, ...]:
        addr = self._target(address)
        with self._lock:
            return tuple(sorted(self._graph.dependents.get(addr, ())))

    # ------------------------------------------------------------------
    # Recalculation
    # ------------------------------------------------------------------

    def _target(self, address: str | CellAddress) -> CellAddress:
        try:
            addr = as_address(address)
        except AddressError as e:
            raise CellReferenceError(str(e)) from None
        if not self._settings.in_bounds(addr):
            raise CellReferenceError(
                f"{addr} is outside the grid (A1:{self._settings.last_cell})", address=addr,
            )
        return addr

    def _compute(self, addr: CellAddress) -> _Result:
        cell = self._sheet.get(addr)
        if cell is None or cell.is_empty:
            return (None, None)
        if not cell.is_formula:
            return (literal_value(cell.content or ""), None)
        result = self._evaluator.evaluate(self._formulas[addr], self._sheet)
        if isinstance(result, CalcError):
            logger.debug("%s = %s (%s)", addr, result.code, result.message)
            return (None, result)
        logger.debug("%s = %r", addr, result)
        return (result, None)

    def _evaluate_tier(self, tier: list[CellAddress], pool: ThreadPoolExecutor | None) -> list[_Result]:
        if pool is None or len(tier) == 1:
            return [self._compute(addr) for addr in tier]
        return list(pool.map(self._compute, tier))

    def _recalculate(
        self,
        dirty: set[CellAddress],
        edited: CellAddress | None,
        prior: dict[CellAddress, _Result] | None = None,
    ) -> EvaluationSnapshot:
        """Recompute *dirty* tier by tier.

        *prior* holds results captured before the edit touched the store;
        deltas are measured against them.

        A tier's results are written back only once the whole tier has been
        computed, so no cell ever reads a result from its own tier.
        """
        tiers = self._graph.tiers(dirty)
        old = {addr: self._sheet.result_of(addr) for addr in dirty}
        if prior:
            old.update(prior)

        workers = self._settings.max_workers
        pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
        try:
            for tier in tiers:
                results = self._evaluate_tier(tier, pool)
                for addr, (value, error) in zip(tier, results):
                    cell = self._sheet.get(addr)
                    if cell is not None:
                        cell.set_result(value, error)
        finally:
            if pool is not None:
                pool.shutdown(wait=True)

        deltas: list[CellDelta] = []
        for tier in tiers:
            for addr in tier:
                old_value, old_error = old[addr]
                new_value, new_error = self._sheet.result_of(addr)
                if old_error != new_error or values_differ(old_value, new_value):
                    cell = self._sheet.get(addr)
                    deltas.append(CellDelta(
                        address=addr,
                        old_value=old_value,
                        new_value=new_value,
                        old_error=old_error,
                        new_error=new_error,
                        formula=cell.content if cell is not None and cell.is_formula else None,
                    ))

        return EvaluationSnapshot(
            edited=edited,
            tiers=tuple(tuple(tier) for tier in tiers),
            deltas=tuple(deltas),
            max_chain_depth=self._graph.max_depth({edited}) if edited is not None else 0,
        )
