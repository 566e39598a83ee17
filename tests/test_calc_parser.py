"""Tests for sheetcalc.calc formula parser and reference extraction."""

from __future__ import annotations

import pytest

from sheetcalc._address import CellRange, parse_address, parse_range
from sheetcalc._errors import FormulaParseError
from sheetcalc.calc._functions import FunctionRegistry
from sheetcalc.calc._parser import (
    BinaryOp,
    Boolean,
    CellRef,
    FormulaParser,
    FunctionCall,
    Number,
    RangeRef,
    String,
    UnaryOp,
    all_references,
    expand_range,
    parse_formula,
    references,
    tokenize,
)


def _a(text: str):
    return parse_address(text)


class TestTokenize:
    def test_kinds(self) -> None:
        kinds = [t.kind for t in tokenize('SUM(A1:B2)+C3&"x"')]
        assert kinds == ["name", "op", "range", "op", "op", "cell", "op", "string", "end"]

    def test_whitespace_dropped(self) -> None:
        assert [t.text for t in tokenize(" 1 +  2 ")] == ["1", "+", "2", ""]

    def test_range_with_spaces_around_colon(self) -> None:
        tok = tokenize("A1 : B2")[0]
        assert tok.kind == "range"

    def test_cell_followed_by_paren_is_a_name(self) -> None:
        assert tokenize("LOG10(1)")[0].kind == "name"

    def test_unterminated_string(self) -> None:
        with pytest.raises(FormulaParseError, match="Unterminated string"):
            tokenize('"abc')

    def test_unexpected_character(self) -> None:
        with pytest.raises(FormulaParseError, match="Unexpected character"):
            tokenize("A1 # 2")


class TestLiterals:
    def test_integer(self) -> None:
        assert parse_formula("42") == Number(42)

    def test_float(self) -> None:
        assert parse_formula("2.5") == Number(2.5)

    def test_scientific(self) -> None:
        assert parse_formula("1E3") == Number(1000.0)

    def test_integer_beyond_float_range_is_inf(self) -> None:
        expr = parse_formula("9" * 400)
        assert isinstance(expr, Number)
        assert expr.value == float("inf")

    def test_large_integer_in_float_range_stays_int(self) -> None:
        assert parse_formula("9" * 300) == Number(int("9" * 300))

    def test_long_run_of_leading_zeros(self) -> None:
        assert parse_formula("0" * 5000 + "7") == Number(7)

    def test_string(self) -> None:
        assert parse_formula('"hello"') == String("hello")

    def test_string_escaped_quote(self) -> None:
        assert parse_formula('"say ""hi"""') == String('say "hi"')

    def test_boolean_case_insensitive(self) -> None:
        assert parse_formula("true") == Boolean(True)
        assert parse_formula("FALSE") == Boolean(False)


class TestReferences:
    def test_cell(self) -> None:
        assert parse_formula("A1") == CellRef(_a("A1"))

    def test_lowercase_cell(self) -> None:
        assert parse_formula("b2") == CellRef(_a("B2"))

    def test_dollar_signs_stripped(self) -> None:
        assert parse_formula("$A$1") == CellRef(_a("A1"))

    def test_range(self) -> None:
        assert parse_formula("A1:B5") == RangeRef(parse_range("A1:B5"))

    def test_reversed_range_normalized(self) -> None:
        assert parse_formula("B5:A1") == RangeRef(parse_range("A1:B5"))

    def test_row_zero_rejected(self) -> None:
        with pytest.raises(FormulaParseError, match="Invalid cell reference"):
            parse_formula("A0+1")


class TestPrecedence:
    def test_mul_binds_tighter_than_add(self) -> None:
        assert parse_formula("1+2*3") == BinaryOp("+", Number(1), BinaryOp("*", Number(2), Number(3)))

    def test_left_associative(self) -> None:
        assert parse_formula("10-4-3") == BinaryOp("-", BinaryOp("-", Number(10), Number(4)), Number(3))

    def test_parentheses(self) -> None:
        assert parse_formula("(1+2)*3") == BinaryOp("*", BinaryOp("+", Number(1), Number(2)), Number(3))

    def test_concat_same_level_as_add(self) -> None:
        expr = parse_formula('A1&"x"+1')
        assert expr == BinaryOp("+", BinaryOp("&", CellRef(_a("A1")), String("x")), Number(1))

    def test_comparison_lowest(self) -> None:
        expr = parse_formula("A1+1>=B1*2")
        assert isinstance(expr, BinaryOp)
        assert expr.op == ">="

    def test_unary_minus(self) -> None:
        assert parse_formula("-A1*2") == BinaryOp("*", UnaryOp("-", CellRef(_a("A1"))), Number(2))

    def test_scientific_notation_not_split(self) -> None:
        assert parse_formula("2.5e-1+1") == BinaryOp("+", Number(0.25), Number(1))


class TestFunctionCalls:
    def test_canonical_uppercase(self) -> None:
        expr = parse_formula("sum(A1:A3)")
        assert expr == FunctionCall("SUM", (RangeRef(parse_range("A1:A3")),))

    def test_nested(self) -> None:
        expr = parse_formula('UPPER(TRIM("  hi  "))')
        assert expr == FunctionCall("UPPER", (FunctionCall("TRIM", (String("  hi  "),)),))

    def test_no_arguments(self) -> None:
        assert parse_formula("SUM()") == FunctionCall("SUM", ())

    def test_argument_count_not_checked_at_parse_time(self) -> None:
        expr = parse_formula("SUM(A1:A2, B1:B2)")
        assert isinstance(expr, FunctionCall)
        assert len(expr.args) == 2

    def test_unknown_function_fails_fast(self) -> None:
        with pytest.raises(FormulaParseError, match="Unknown function FOO"):
            parse_formula("FOO(A1)")

    def test_custom_function_known_after_registration(self) -> None:
        reg = FunctionRegistry()
        reg.register("DOUBLE", lambda args: args[0] * 2)
        expr = FormulaParser(reg).parse("double(A1)")
        assert expr == FunctionCall("DOUBLE", (CellRef(_a("A1")),))

    def test_function_name_inside_string_is_text(self) -> None:
        expr = parse_formula('A1&"SUM(B1)"')
        assert expr == BinaryOp("&", CellRef(_a("A1")), String("SUM(B1)"))
        assert references(expr) == [_a("A1")]


class TestParseErrors:
    @pytest.mark.parametrize(
        "text",
        ["", "   ", "1+", "(1+2", "1+2)", "SUM(A1:A3", "SUM(,)", "1 2", "foo", "A1 B1", "*3", "SUM A1"],
    )
    def test_malformed(self, text: str) -> None:
        with pytest.raises(FormulaParseError):
            parse_formula(text)

    def test_bare_identifier_rejected(self) -> None:
        with pytest.raises(FormulaParseError, match="Unknown name"):
            parse_formula("total+1")

    def test_position_reported(self) -> None:
        with pytest.raises(FormulaParseError) as exc_info:
            parse_formula("1+)")
        assert exc_info.value.position == 2

    def test_deep_nesting(self) -> None:
        with pytest.raises(FormulaParseError, match="nested too deeply"):
            parse_formula("(" * 5000 + "1" + ")" * 5000)


class TestDeterminism:
    def test_same_text_same_tree(self) -> None:
        text = 'SUM(A1:B3)*2-UPPER(C1)&"x"'
        assert parse_formula(text) == parse_formula(text)

    def test_trees_are_hashable(self) -> None:
        assert hash(parse_formula("A1+B1")) == hash(parse_formula("A1+B1"))


class TestReferenceExtraction:
    def test_source_order_deduplicated(self) -> None:
        refs = references(parse_formula("B2+A1+B2+SUM(C1:C3)"))
        assert refs == [_a("B2"), _a("A1"), parse_range("C1:C3")]

    def test_string_literal_ignored(self) -> None:
        assert references(parse_formula('A1&"Hello A2"')) == [_a("A1")]

    def test_long_operator_chain(self) -> None:
        expr = parse_formula("+".join(["A1", *(["1"] * 2998), "B2"]))
        assert references(expr) == [_a("A1"), _a("B2")]
        assert all_references(expr) == [_a("A1"), _a("B2")]

    def test_all_references_expands_ranges(self) -> None:
        cells = all_references(parse_formula("SUM(A1:A3)+B1"))
        assert cells == [_a("A1"), _a("A2"), _a("A3"), _a("B1")]

    def test_no_duplicates_across_types(self) -> None:
        cells = all_references(parse_formula("A1+SUM(A1:A3)"))
        assert cells.count(_a("A1")) == 1

    def test_bounds_filter(self) -> None:
        def in_bounds(addr) -> bool:
            return addr.row <= 10

        cells = all_references(parse_formula("A1+A50+SUM(B1:B100)+SUM(C1:C2)"), in_bounds)
        assert cells == [_a("A1"), _a("C1"), _a("C2")]

    def test_references_through_parser(self) -> None:
        refs = references(FormulaParser().parse("SUM(A1:A3)+B1"))
        assert refs == [parse_range("A1:A3"), _a("B1")]


class TestExpandRange:
    def test_block_range(self) -> None:
        cells = expand_range(parse_range("A1:B2"))
        assert [str(c) for c in cells] == ["A1", "B1", "A2", "B2"]

    def test_returns_list(self) -> None:
        assert isinstance(expand_range(CellRange(_a("A1"), _a("A3"))), list)
