"""Formula parser: regex tokenizer + recursive descent into an expression tree.

Formula text arrives without its trigger character.  Grammar, lowest
precedence first::

    comparison := expression (('=' | '<>' | '<' | '>' | '<=' | '>=') expression)*
    expression := term (('+' | '-' | '&') term)*
    term       := unary (('*' | '/') unary)*
    unary      := ('-' | '+') unary | factor
    factor     := number | string | TRUE | FALSE | cell | range
                | NAME '(' [comparison (',' comparison)*] ')'
                | '(' comparison ')'

Parsing never touches cell storage, and the same text always produces an
equal tree, so reference sets can be diffed between edits.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Union

from sheetcalc._address import AddressError, CellAddress, CellRange
from sheetcalc._errors import FormulaParseError
from sheetcalc.calc._functions import FunctionRegistry

# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class String:
    value: str


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class CellRef:
    address: CellAddress


@dataclass(frozen=True)
class RangeRef:
    range: CellRange


@dataclass(frozen=True)
class FunctionCall:
    name: str  # canonical uppercase
    args: tuple[Expression, ...]


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Expression


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: Expression
    right: Expression


Expression = Union[Number, String, Boolean, CellRef, RangeRef, FunctionCall, UnaryOp, BinaryOp]
Reference = Union[CellAddress, CellRange]

COMPARISON_OPS = frozenset({"=", "<>", "<", ">", "<=", ">="})
ADDITIVE_OPS = frozenset({"+", "-", "&"})
MULTIPLICATIVE_OPS = frozenset({"*", "/"})

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

_REF = r"\$?[A-Za-z]{1,3}\$?[0-9]+"
# A reference must not run into more name characters or an opening paren:
# "LOG10(" is a function name, "A1" alone is a cell.
_REF_END = r"(?![A-Za-z0-9_.(])"

_TOKEN_RE = re.compile(
    rf"""
    (?P<ws>\s+)
    |(?P<string>"(?:[^"]|"")*")
    |(?P<number>(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)
    |(?P<range>{_REF}\s*:\s*{_REF}){_REF_END}
    |(?P<cell>{_REF}){_REF_END}
    |(?P<name>[A-Za-z_][A-Za-z0-9_.]*)
    |(?P<op><>|<=|>=|[-+*/&=<>(),])
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    pos: int


def tokenize(text: str) -> list[Token]:
    """Split formula text into tokens, dropping whitespace."""
    tokens: list[Token] = []
    pos = 0
    length = len(text)
    while pos < length:
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            if text[pos] == '"':
                raise FormulaParseError(f"Unterminated string at position {pos}", position=pos)
            raise FormulaParseError(
                f"Unexpected character {text[pos]!r} at position {pos}", position=pos,
            )
        kind = m.lastgroup or ""
        if kind != "ws":
            tokens.append(Token(kind, m.group(kind), pos))
        pos = m.end()
    tokens.append(Token("end", "", length))
    return tokens


def _to_address(text: str, pos: int) -> CellAddress:
    try:
        return CellAddress.parse(text.replace("$", ""))
    except AddressError:
        raise FormulaParseError(f"Invalid cell reference {text!r} at position {pos}", position=pos) from None


def _to_range(text: str, pos: int) -> CellRange:
    start, end = (part.strip() for part in text.split(":"))
    return CellRange(_to_address(start, pos), _to_address(end, pos))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    """One-shot recursive descent over a token list."""

    def __init__(self, tokens: list[Token], has_function: Callable[[str], bool]) -> None:
        self._tokens = tokens
        self._i = 0
        self._has_function = has_function

    @property
    def _current(self) -> Token:
        return self._tokens[self._i]

    def _advance(self) -> Token:
        tok = self._tokens[self._i]
        self._i += 1
        return tok

    def _is_op(self, ops: frozenset[str] | str) -> bool:
        tok = self._current
        if tok.kind != "op":
            return False
        return tok.text == ops if isinstance(ops, str) else tok.text in ops

    def _expect(self, op: str) -> Token:
        if not self._is_op(op):
            tok = self._current
            found = "end of formula" if tok.kind == "end" else repr(tok.text)
            raise FormulaParseError(f"Expected {op!r} at position {tok.pos}, found {found}", position=tok.pos)
        return self._advance()

    def parse(self) -> Expression:
        if self._current.kind == "end":
            raise FormulaParseError("Empty formula", position=0)
        expr = self._comparison()
        tok = self._current
        if tok.kind != "end":
            raise FormulaParseError(f"Unexpected {tok.text!r} at position {tok.pos}", position=tok.pos)
        return expr

    def _comparison(self) -> Expression:
        left = self._expression()
        while self._is_op(COMPARISON_OPS):
            op = self._advance().text
            left = BinaryOp(op, left, self._expression())
        return left

    def _expression(self) -> Expression:
        left = self._term()
        while self._is_op(ADDITIVE_OPS):
            op = self._advance().text
            left = BinaryOp(op, left, self._term())
        return left

    def _term(self) -> Expression:
        left = self._unary()
        while self._is_op(MULTIPLICATIVE_OPS):
            op = self._advance().text
            left = BinaryOp(op, left, self._unary())
        return left

    def _unary(self) -> Expression:
        if self._is_op("-") or self._is_op("+"):
            op = self._advance().text
            return UnaryOp(op, self._unary())
        return self._factor()

    def _factor(self) -> Expression:
        tok = self._current
        if tok.kind == "number":
            self._advance()
            value = float(tok.text)
            # out-of-range literals stay inf; the evaluator reports overflow
            if re.fullmatch(r"\d+", tok.text) and math.isfinite(value):
                return Number(int(tok.text.lstrip("0") or "0"))
            return Number(value)
        if tok.kind == "string":
            self._advance()
            return String(tok.text[1:-1].replace('""', '"'))
        if tok.kind == "range":
            self._advance()
            return RangeRef(_to_range(tok.text, tok.pos))
        if tok.kind == "cell":
            self._advance()
            return CellRef(_to_address(tok.text, tok.pos))
        if tok.kind == "name":
            return self._name()
        if self._is_op("("):
            self._advance()
            inner = self._comparison()
            self._expect(")")
            return inner
        if tok.kind == "end":
            raise FormulaParseError("Unexpected end of formula", position=tok.pos)
        raise FormulaParseError(f"Unexpected {tok.text!r} at position {tok.pos}", position=tok.pos)

    def _name(self) -> Expression:
        tok = self._advance()
        name = tok.text.upper()
        if not self._is_op("("):
            if name in ("TRUE", "FALSE"):
                return Boolean(name == "TRUE")
            raise FormulaParseError(f"Unknown name {tok.text!r} at position {tok.pos}", position=tok.pos)
        if not self._has_function(name):
            raise FormulaParseError(f"Unknown function {name} at position {tok.pos}", position=tok.pos)
        self._advance()  # '('
        args: list[Expression] = []
        if not self._is_op(")"):
            args.append(self._comparison())
            while self._is_op(","):
                self._advance()
                args.append(self._comparison())
        self._expect(")")
        return FunctionCall(name, tuple(args))


class FormulaParser:
    """Parses formula text against a function registry.

    Unknown function names are rejected here, at parse time, so a bad
    formula never reaches the dependency graph.
    """

    def __init__(self, functions: FunctionRegistry | None = None) -> None:
        self._functions = functions if functions is not None else FunctionRegistry()

    def parse(self, text: str) -> Expression:
        tokens = tokenize(text)
        try:
            return _Parser(tokens, self._functions.has).parse()
        except RecursionError:
            raise FormulaParseError("Formula is nested too deeply") from None


def parse_formula(text: str, functions: FunctionRegistry | None = None) -> Expression:
    return FormulaParser(functions).parse(text)


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def _walk(expr: Expression) -> Iterator[Expression]:
    """Pre-order, left to right, on an explicit stack.

    A chain like ``1+1+...+1`` nests one BinaryOp per operand, far deeper
    than the interpreter's recursion limit allows.
    """
    stack: list[Expression] = [expr]
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, FunctionCall):
            stack.extend(reversed(node.args))
        elif isinstance(node, UnaryOp):
            stack.append(node.operand)
        elif isinstance(node, BinaryOp):
            stack.append(node.right)
            stack.append(node.left)


def references(expr: Expression) -> list[Reference]:
    """Cells and ranges an expression reads, in source order, de-duplicated."""
    refs: list[Reference] = []
    seen: set[Reference] = set()
    for node in _walk(expr):
        ref: Reference | None = None
        if isinstance(node, CellRef):
            ref = node.address
        elif isinstance(node, RangeRef):
            ref = node.range
        if ref is not None and ref not in seen:
            refs.append(ref)
            seen.add(ref)
    return refs


def expand_range(rng: CellRange) -> list[CellAddress]:
    """Expand a range into its cells, row-major."""
    return list(rng.cells())


def all_references(
    expr: Expression,
    in_bounds: Callable[[CellAddress], bool] | None = None,
) -> list[CellAddress]:
    """Every cell an expression reads, with ranges fully expanded.

    When *in_bounds* is given, references falling outside the grid are left
    out; the evaluator reports them as ``RefError`` instead.
    """
    cells: list[CellAddress] = []
    seen: set[CellAddress] = set()
    for ref in references(expr):
        if isinstance(ref, CellRange):
            if in_bounds is not None and not in_bounds(ref.end):
                continue
            expanded = expand_range(ref)
        else:
            if in_bounds is not None and not in_bounds(ref):
                continue
            expanded = [ref]
        for addr in expanded:
            if addr not in seen:
                cells.append(addr)
                seen.add(addr)
    return cells
