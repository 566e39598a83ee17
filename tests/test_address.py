"""Tests for sheetcalc cell addresses and ranges."""

from __future__ import annotations

import pytest

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
from sheetcalc._utils import a1_to_rowcol, column_index_to_letter, column_letter_to_index, rowcol_to_a1


class TestColumnLetters:
    @pytest.mark.parametrize(
        ("letters", "index"),
        [("A", 0), ("Z", 25), ("AA", 26), ("AZ", 51), ("BA", 52), ("ZZ", 701), ("AAA", 702)],
    )
    def test_bijective_base26(self, letters: str, index: int) -> None:
        assert column_letter_to_index(letters) == index
        assert column_index_to_letter(index) == letters

    def test_lowercase_accepted(self) -> None:
        assert column_letter_to_index("aa") == 26

    def test_invalid_label(self) -> None:
        with pytest.raises(ValueError, match="Invalid column label"):
            column_letter_to_index("A1")

    def test_negative_index(self) -> None:
        with pytest.raises(ValueError):
            column_index_to_letter(-1)

    def test_rowcol_helpers(self) -> None:
        assert a1_to_rowcol("C7") == (7, 2)
        assert rowcol_to_a1(7, 2) == "C7"


class TestParseAddress:
    def test_simple(self) -> None:
        addr = parse_address("A1")
        assert addr == CellAddress(row=1, column=0)

    def test_multi_letter(self) -> None:
        addr = parse_address("AA12")
        assert addr.column == 26
        assert addr.row == 12

    def test_case_insensitive(self) -> None:
        assert parse_address("b3") == parse_address("B3")

    @pytest.mark.parametrize("text", ["", "A", "1", "A0", "A01", "1A", "A1B", "A-1", "ABCD1", "A1:B2"])
    def test_rejects_malformed(self, text: str) -> None:
        with pytest.raises(AddressError):
            parse_address(text)

    def test_address_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            parse_address("??")

    def test_constructor_validates(self) -> None:
        with pytest.raises(AddressError):
            CellAddress(row=0, column=0)
        with pytest.raises(AddressError):
            CellAddress(row=1, column=-1)


class TestAddressOrdering:
    def test_row_major_order(self) -> None:
        addrs = [parse_address(t) for t in ["B2", "A2", "C1", "A1"]]
        assert [str(a) for a in sorted(addrs)] == ["A1", "C1", "A2", "B2"]

    def test_hashable(self) -> None:
        assert len({parse_address("A1"), parse_address("a1")}) == 1


class TestRoundTrip:
    @pytest.mark.parametrize("text", ["A1", "Z100", "AA12", "ZZ9", "AAA1", "XFD1048576"])
    def test_address(self, text: str) -> None:
        assert format_address(parse_address(text)) == text

    def test_address_normalizes_case(self) -> None:
        assert format_address(parse_address("aa12")) == "AA12"

    @pytest.mark.parametrize("text", ["A1:B5", "A1:A1", "C3:AA10"])
    def test_range(self, text: str) -> None:
        assert format_range(parse_range(text)) == text

    @pytest.mark.parametrize(
        ("text", "normalized"),
        [("B5:A1", "A1:B5"), ("A5:B1", "A1:B5"), ("B1:A5", "A1:B5"), ("b2:a1", "A1:B2")],
    )
    def test_range_normalizes_order(self, text: str, normalized: str) -> None:
        assert format_range(parse_range(text)) == normalized


class TestParseRange:
    @pytest.mark.parametrize("text", ["A1", "A1:", ":B2", "A1:B2:C3", "A1-B2", "A0:B2", "A1:B0"])
    def test_rejects_malformed(self, text: str) -> None:
        with pytest.raises(AddressError):
            parse_range(text)

    def test_constructor_normalizes(self) -> None:
        rng = CellRange(parse_address("C3"), parse_address("A1"))
        assert rng.start == parse_address("A1")
        assert rng.end == parse_address("C3")

    def test_equal_regardless_of_input_order(self) -> None:
        assert parse_range("B2:A1") == parse_range("A1:B2")

    def test_shape(self) -> None:
        rng = parse_range("B2:D5")
        assert rng.n_rows == 4
        assert rng.n_cols == 3
        assert len(rng) == 12

    def test_contains(self) -> None:
        rng = parse_range("B2:C3")
        assert parse_address("C3") in rng
        assert parse_address("A1") not in rng
        assert "B2" not in rng


class TestCellsIn:
    def test_row_major(self) -> None:
        cells = [str(a) for a in cells_in(parse_range("A1:B2"))]
        assert cells == ["A1", "B1", "A2", "B2"]

    def test_column_range(self) -> None:
        cells = [str(a) for a in cells_in(parse_range("A1:A5"))]
        assert cells == ["A1", "A2", "A3", "A4", "A5"]

    def test_size_is_rows_times_cols(self) -> None:
        view = cells_in(parse_range("A1:C4"))
        assert len(view) == 12
        assert len(list(view)) == 12

    def test_restartable(self) -> None:
        view = cells_in(parse_range("A1:C3"))
        assert list(view) == list(view)

    def test_single_cell_range(self) -> None:
        assert list(cells_in(parse_range("D4:D4"))) == [parse_address("D4")]

    def test_matches_sorted_order(self) -> None:
        cells = list(cells_in(parse_range("B2:D4")))
        assert cells == sorted(cells)
