"""Engine configuration.

Settings come from keyword arguments, ``SHEETCALC_``-prefixed environment
variables, or a ``.env`` file, in that order of precedence.

Environment Variables:
    SHEETCALC_MAX_ROWS: Number of addressable rows (default: 100)
    SHEETCALC_MAX_COLUMNS: Number of addressable columns (default: 26, A-Z)
    SHEETCALC_FORMULA_PREFIX: Trigger marking an edit as a formula (default: =)
    SHEETCALC_MAX_WORKERS: Threads used to evaluate one dependency tier
        (default: 1, evaluate sequentially)
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetcalc._address import CellAddress
from sheetcalc._utils import column_index_to_letter

# Columns are limited to three letters (ZZZ).
_MAX_ADDRESSABLE_COLUMNS = 18278


class EngineSettings(BaseSettings):
    """Grid bounds and recalculation options for one spreadsheet."""

    model_config = SettingsConfigDict(
        env_prefix="SHEETCALC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_rows: int = 100
    """Rows 1..max_rows are addressable."""

    max_columns: int = 26
    """Columns A..(max_columns) are addressable."""

    formula_prefix: str = "="
    """Leading character that marks edit text as formula source."""

    max_workers: int = 1
    """Worker threads per dependency tier; 1 evaluates in the calling thread."""

    @field_validator("max_rows", "max_workers")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("max_columns")
    @classmethod
    def _columns_in_range(cls, v: int) -> int:
        if not 1 <= v <= _MAX_ADDRESSABLE_COLUMNS:
            raise ValueError(f"must be between 1 and {_MAX_ADDRESSABLE_COLUMNS}")
        return v

    @field_validator("formula_prefix")
    @classmethod
    def _single_char(cls, v: str) -> str:
        if len(v) != 1 or v.isspace():
            raise ValueError("must be a single non-blank character")
        return v

    def in_bounds(self, address: CellAddress) -> bool:
        return address.row <= self.max_rows and address.column < self.max_columns

    @property
    def last_cell(self) -> str:
        return f"{column_index_to_letter(self.max_columns - 1)}{self.max_rows}"
