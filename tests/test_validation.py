"""Tests for sheetcalc literal validation and type inference."""

from __future__ import annotations

import pytest

from sheetcalc._address import parse_address
from sheetcalc._cell import DataType
from sheetcalc._errors import CellValidationError, ErrorKind
from sheetcalc._validation import infer_type, is_date, is_number, literal_value, validate_literal

A1 = parse_address("A1")


class TestIsNumber:
    @pytest.mark.parametrize("text", ["0", "42", "-3.5", "+7", ".25", "7.", " 12 ", "007"])
    def test_accepts(self, text: str) -> None:
        assert is_number(text)

    @pytest.mark.parametrize("text", ["", "abc", "1e5", "1,000", "1.2.3", "--1", "$5", ".", "+", "9" * 400])
    def test_rejects(self, text: str) -> None:
        assert not is_number(text)


class TestIsDate:
    @pytest.mark.parametrize("text", ["01/31/2024", "2024/01/31", "02/29/2024", "12/01/1999"])
    def test_accepts(self, text: str) -> None:
        assert is_date(text)

    @pytest.mark.parametrize(
        "text",
        ["1/31/2024", "2024-01-31", "02/30/2024", "02/29/2023", "13/01/2024", "31/01/2024", "2024/13/01", "today"],
    )
    def test_rejects(self, text: str) -> None:
        assert not is_date(text)


class TestInferType:
    def test_blank(self) -> None:
        assert infer_type(None) is DataType.AUTO
        assert infer_type("  ") is DataType.AUTO

    def test_number(self) -> None:
        assert infer_type("3.14") is DataType.NUMBER

    def test_date(self) -> None:
        assert infer_type("2024/05/06") is DataType.DATE

    def test_text(self) -> None:
        assert infer_type("hello") is DataType.TEXT


class TestValidateLiteral:
    def test_auto_accepts_anything(self) -> None:
        validate_literal(A1, "whatever", DataType.AUTO)

    def test_text_accepts_numbers(self) -> None:
        validate_literal(A1, "42", DataType.TEXT)

    def test_number_accepts_decimal(self) -> None:
        validate_literal(A1, "-1.5", DataType.NUMBER)

    def test_number_rejects_text(self) -> None:
        with pytest.raises(CellValidationError) as exc_info:
            validate_literal(A1, "abc", DataType.NUMBER)
        err = exc_info.value
        assert err.kind is ErrorKind.VALIDATION
        assert err.address == A1
        assert err.declared_type == "Number"

    def test_date_rejects_impossible_day(self) -> None:
        with pytest.raises(CellValidationError, match="not a valid Date"):
            validate_literal(A1, "02/30/2024", DataType.DATE)

    def test_number_rejects_value_past_float_range(self) -> None:
        with pytest.raises(CellValidationError, match="not a valid Number"):
            validate_literal(A1, "9" * 400, DataType.NUMBER)

    def test_blank_always_accepted(self) -> None:
        validate_literal(A1, "", DataType.NUMBER)
        validate_literal(A1, "   ", DataType.DATE)


class TestLiteralValue:
    def test_integer(self) -> None:
        value = literal_value("42")
        assert value == 42
        assert isinstance(value, int)

    def test_float(self) -> None:
        assert literal_value("-2.5") == -2.5

    def test_surrounding_whitespace(self) -> None:
        assert literal_value(" 7 ") == 7

    def test_text_kept_verbatim(self) -> None:
        assert literal_value("  hello ") == "  hello "

    def test_date_stays_text(self) -> None:
        assert literal_value("01/02/2024") == "01/02/2024"

    def test_blank_is_none(self) -> None:
        assert literal_value("") is None

    def test_negative_integer(self) -> None:
        assert literal_value("-007") == -7

    def test_long_run_of_leading_zeros(self) -> None:
        assert literal_value("0" * 5000 + "7") == 7

    def test_value_past_float_range_stays_text(self) -> None:
        assert literal_value("9" * 400) == "9" * 400
