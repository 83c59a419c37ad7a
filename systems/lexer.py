"""
Scanner for the systems language.

Text is scanned one line at a time into a tree of immutable tokens. Each token
kind is its own frozen dataclass, so a token tree can only be assembled from
well-formed pieces.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar, Union

from .errors import DeferLineInfo, IllegalStockName, InvalidFormula, InvalidParameters, ParseError, SystemsError

logger = logging.getLogger(__name__)

NEWLINE = "\n"
WHITESPACE = " "
START_INFINITE_STOCK = "["
END_INFINITE_STOCK = "]"
START_PAREN = "("
START_PARAMETER_SET = START_PAREN
END_PAREN = ")"
END_PARAMETER_SET = END_PAREN
PARAMETER_SEPARATOR = ","
FLOW_DIRECTION = ">"
FLOW_DELIMITER = "@"
COMMENT = "#"
INFINITY = "inf"

LEGAL_STOCK_NAME = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*")
PARAM_WHOLE = re.compile(r"-?[0-9]+")
PARAM_DECIMAL = re.compile(r"[0-9]+\.[0-9]+")
OPERATIONS = frozenset("/+-*")


class TokenKind(IntEnum):
    """Kinds of tokens produced by the scanner."""

    WHOLE = 0
    DECIMAL = 1
    INFINITY = 2
    REFERENCE = 3
    OPERATION = 4
    FORMULA = 5
    PARAMS = 6
    STOCK = 7
    INFINITE_STOCK = 8
    FLOW = 9
    FLOW_DIRECTION = 10
    FLOW_DELIMITER = 11
    COMMENT = 12
    LINE = 13
    LINES = 14


@dataclass(frozen=True)
class Whole:
    """An integer literal, optionally negative."""

    kind: ClassVar[TokenKind] = TokenKind.WHOLE

    text: str


@dataclass(frozen=True)
class Decimal:
    """A decimal literal such as ``0.25``."""

    kind: ClassVar[TokenKind] = TokenKind.DECIMAL

    text: str


@dataclass(frozen=True)
class Infinity:
    """The ``inf`` literal."""

    kind: ClassVar[TokenKind] = TokenKind.INFINITY

    text: str = INFINITY


@dataclass(frozen=True)
class Reference:
    """A reference to a stock by name."""

    kind: ClassVar[TokenKind] = TokenKind.REFERENCE

    text: str


@dataclass(frozen=True)
class Operation:
    """One of the four binary operators."""

    kind: ClassVar[TokenKind] = TokenKind.OPERATION

    text: str


@dataclass(frozen=True)
class FormulaToken:
    """
    A lexed expression.

    Leaves alternate between operands and operations; a parenthesized group
    is a nested FormulaToken in operand position.
    """

    kind: ClassVar[TokenKind] = TokenKind.FORMULA

    tokens: tuple[FormulaLeaf, ...] = ()


@dataclass(frozen=True)
class Params:
    """The comma separated parameters of a stock or flow declaration."""

    kind: ClassVar[TokenKind] = TokenKind.PARAMS

    formulas: tuple[FormulaToken, ...] = ()


@dataclass(frozen=True)
class StockToken:
    """A stock declaration: ``Name``, ``Name(initial, maximum)`` or ``[Name]``."""

    name: str
    params: Params = Params()
    infinite: bool = False

    @property
    def kind(self) -> TokenKind:
        return TokenKind.INFINITE_STOCK if self.infinite else TokenKind.STOCK


@dataclass(frozen=True)
class FlowToken:
    """A flow declaration; ``label`` is empty for unlabeled flows."""

    kind: ClassVar[TokenKind] = TokenKind.FLOW

    label: str
    params: Params = Params()


@dataclass(frozen=True)
class FlowDirection:
    kind: ClassVar[TokenKind] = TokenKind.FLOW_DIRECTION

    text: str = FLOW_DIRECTION


@dataclass(frozen=True)
class FlowDelimiter:
    kind: ClassVar[TokenKind] = TokenKind.FLOW_DELIMITER

    text: str = FLOW_DELIMITER


@dataclass(frozen=True)
class Comment:
    """Comment text following the comment marker."""

    kind: ClassVar[TokenKind] = TokenKind.COMMENT

    text: str


@dataclass(frozen=True)
class Line:
    """The tokens of one non-blank source line."""

    kind: ClassVar[TokenKind] = TokenKind.LINE

    number: int
    """1-based line number"""

    tokens: tuple[LineToken, ...]

    text: str = ""
    """Raw source text of the line"""


@dataclass(frozen=True)
class Lines:
    kind: ClassVar[TokenKind] = TokenKind.LINES

    lines: tuple[Line, ...] = ()


ValueToken = Union[Whole, Decimal, Infinity, Reference]
FormulaLeaf = Union[Whole, Decimal, Infinity, Reference, Operation, FormulaToken]
LineToken = Union[StockToken, FlowToken, FlowDirection, FlowDelimiter, Comment]
Token = Union[FormulaLeaf, Params, LineToken, Line, Lines]


def lex_value(txt: str) -> ValueToken:
    """Lex a single value: whole, decimal, infinity or reference."""
    txt = txt.strip()
    if txt == INFINITY:
        return Infinity(txt)
    elif PARAM_WHOLE.fullmatch(txt):
        return Whole(txt)
    elif PARAM_DECIMAL.fullmatch(txt):
        return Decimal(txt)
    else:
        return Reference(txt)


def lex_formula(txt: str) -> FormulaToken:
    """
    Lex a formula expression.

    Raises:
        InvalidFormula: If parentheses are unbalanced
    """
    groups: list[list[FormulaLeaf]] = []
    tokens: list[FormulaLeaf] = []
    acc = ""

    for c in txt.strip() + NEWLINE:
        if c == START_PAREN:
            if acc:
                tokens.append(lex_value(acc))
                acc = ""
            groups.append(tokens)
            tokens = []
        elif c == END_PAREN:
            if acc:
                tokens.append(lex_value(acc))
                acc = ""
            if not groups:
                raise InvalidFormula(txt, "unmatched closing parenthesis")
            outer = groups.pop()
            outer.append(FormulaToken(tuple(tokens)))
            tokens = outer
        elif c.isspace():
            if acc:
                tokens.append(lex_value(acc))
                acc = ""
        elif c in OPERATIONS:
            if acc:
                tokens.append(lex_value(acc))
                acc = ""
            tokens.append(Operation(c))
        else:
            acc += c

    if groups:
        raise InvalidFormula(txt, "unclosed parenthesis")
    return FormulaToken(tuple(tokens))


def lex_parameters(txt: str) -> Params:
    """
    Lex the parameter set of a stock or flow, including its parentheses.

    Raises:
        InvalidParameters: If the text is not wrapped in parentheses
    """
    if txt == "":
        return Params()
    if txt.startswith(START_PARAMETER_SET) and txt.endswith(END_PARAMETER_SET):
        params = txt[1:-1].split(PARAMETER_SEPARATOR)
        return Params(tuple(lex_formula(x) for x in params))
    raise InvalidParameters(txt)


def _lex_caller(txt: str) -> tuple[str, Params]:
    """Split ``Name(params)`` into its name and lexed parameters."""
    txt = txt.strip()
    match = LEGAL_STOCK_NAME.match(txt)
    if not match:
        raise IllegalStockName(txt, LEGAL_STOCK_NAME.pattern)

    name = match.group(0)
    rest = txt[match.end():]
    if rest != "" and not (rest.startswith(START_PARAMETER_SET) and rest.endswith(END_PARAMETER_SET)):
        raise IllegalStockName(txt, LEGAL_STOCK_NAME.pattern)

    return name, lex_parameters(rest)


def lex_stock(txt: str) -> StockToken:
    """Lex a stock declaration."""
    txt = txt.strip()
    if txt.startswith(START_INFINITE_STOCK) and txt.endswith(END_INFINITE_STOCK):
        name = txt[1:-1].strip()
        if not LEGAL_STOCK_NAME.fullmatch(name):
            raise IllegalStockName(name, LEGAL_STOCK_NAME.pattern)
        return StockToken(name, Params(), infinite=True)
    name, params = _lex_caller(txt)
    return StockToken(name, params)


def lex_flow(txt: str) -> FlowToken:
    """
    Lex a flow declaration.

    ``Label(params)`` is a labeled flow; any other text becomes the single
    parameter of an unlabeled flow.
    """
    txt = txt.strip()
    match = LEGAL_STOCK_NAME.match(txt)
    if match and txt[match.end():].startswith(START_PARAMETER_SET) and txt.endswith(END_PARAMETER_SET):
        label, params = _lex_caller(txt)
        return FlowToken(label, params)
    return FlowToken("", lex_parameters(START_PARAMETER_SET + txt + END_PARAMETER_SET))


def _flush(parsing: TokenKind, buff: str) -> LineToken:
    if parsing == TokenKind.FLOW:
        return lex_flow(buff)
    return lex_stock(buff)


def _lex_line(txt: str) -> list[LineToken]:
    tokens: list[LineToken] = []
    buff = ""
    parsing = TokenKind.STOCK

    for c in txt + NEWLINE:
        if parsing == TokenKind.COMMENT:
            if c == NEWLINE:
                tokens.append(Comment(buff))
                buff = ""
            else:
                buff += c
        elif c == COMMENT:
            # Whatever precedes an inline comment is still code
            if buff:
                tokens.append(_flush(parsing, buff))
            buff = ""
            parsing = TokenKind.COMMENT
        elif c == FLOW_DIRECTION and parsing == TokenKind.STOCK:
            tokens.append(lex_stock(buff))
            tokens.append(FlowDirection())
            buff = ""
        elif c == FLOW_DELIMITER and parsing == TokenKind.STOCK:
            tokens.append(lex_stock(buff))
            tokens.append(FlowDelimiter())
            buff = ""
            parsing = TokenKind.FLOW
        elif c == NEWLINE:
            if buff:
                tokens.append(_flush(parsing, buff))
            buff = ""
        elif c.isspace() or c == FLOW_DIRECTION:
            continue
        else:
            buff += c

    if buff:
        raise RuntimeError(f"unused char buffer: {buff!r}")
    return tokens


def lex(txt: str) -> Lines:
    """
    Lex an entire spec.

    Blank lines are dropped. Failures are reported with the number and text
    of the line that caused them.

    Raises:
        ParseError: If a line cannot be scanned
    """
    lines: list[Line] = []
    for number, text in enumerate(txt.split(NEWLINE), start=1):
        try:
            tokens = _lex_line(text)
        except DeferLineInfo as e:
            e.annotate(text, number)
            raise
        except SystemsError as e:
            raise ParseError(text, number, e) from e

        if tokens:
            lines.append(Line(number, tuple(tokens), text))

    logger.debug("scanned %d line(s)", len(lines))
    return Lines(tuple(lines))


def readable(token: Token, labeled: bool = False) -> str:
    """Create a human-readable rendering of a token tree."""
    if isinstance(token, Lines):
        return NEWLINE.join(readable(x) for x in token.lines)
    elif isinstance(token, Line):
        return WHITESPACE.join(readable(x) for x in token.tokens)
    elif isinstance(token, FormulaToken):
        parts = []
        for leaf in token.tokens:
            if isinstance(leaf, FormulaToken):
                parts.append(START_PAREN + readable(leaf) + END_PAREN)
            else:
                parts.append(readable(leaf))
        return WHITESPACE.join(parts)
    elif isinstance(token, Params):
        if not token.formulas:
            return ""
        joined = ", ".join(readable(x) for x in token.formulas)
        if not labeled:
            return joined
        return START_PARAMETER_SET + joined + END_PARAMETER_SET
    elif isinstance(token, StockToken):
        if token.infinite:
            return START_INFINITE_STOCK + token.name + END_INFINITE_STOCK
        return token.name + readable(token.params, labeled=True)
    elif isinstance(token, FlowToken):
        return token.label + readable(token.params, labeled=bool(token.label))
    elif isinstance(token, Comment):
        return COMMENT + token.text
    elif isinstance(token, (Whole, Decimal, Infinity, Reference, Operation, FlowDirection, FlowDelimiter)):
        return token.text
    else:
        return f"[unexpected token: '{token}']"
