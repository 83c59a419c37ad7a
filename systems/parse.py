"""Build models from systems specs."""

from __future__ import annotations

import logging
from typing import Optional

from . import lexer
from .errors import DeferLineInfo, ParseError
from .formula import Formula
from .lexer import Decimal, FlowToken, StockToken
from .model import Model, ModelBuilder
from .rates import FlowKind, RateRule
from .types import Stock

logger = logging.getLogger(__name__)


def build_stock(builder: ModelBuilder, token: StockToken) -> Stock:
    """
    Declare the stock described by a token, merging into an existing one.

    Raises:
        ConflictingValues: If the stock exists with a different value
    """
    if token.infinite:
        return builder.infinite_stock(token.name)

    formulas = token.params.formulas
    initial = Formula(formulas[0]) if len(formulas) > 0 else None
    maximum = Formula(formulas[1]) if len(formulas) > 1 else None
    return builder.stock(token.name, initial, maximum)


def parse_stock(builder: ModelBuilder, txt: str) -> Stock:
    """Declare a stock from its text, such as ``Engineers(5, 20)``."""
    return build_stock(builder, lexer.lex_stock(txt))


def _flow_kind(token: FlowToken) -> FlowKind:
    if token.label:
        return FlowKind.from_label(token.label)

    # An unlabeled lone decimal is a conversion factor
    formulas = token.params.formulas
    if formulas and len(formulas[0].tokens) == 1 and isinstance(formulas[0].tokens[0], Decimal):
        return FlowKind.CONVERSION
    return FlowKind.RATE


def build_flow(builder: ModelBuilder, src: Stock, dest: Stock, token: FlowToken) -> None:
    """
    Add the flow described by a token between two stocks.

    Raises:
        UnknownFlowType: If the label is not rate, conversion or leak
        IllegalSourceStock: If the rule cannot drain the source
    """
    kind = _flow_kind(token)
    formulas = token.params.formulas
    formula = Formula(formulas[0]) if formulas else Formula("")
    builder.flow(src, dest, RateRule(kind, formula))


def parse_flow(builder: ModelBuilder, src: Stock, dest: Stock, txt: str) -> None:
    """Add a flow from its text, such as ``Leak(0.2)`` or ``5``."""
    build_flow(builder, src, dest, lexer.lex_flow(txt))


def parse(txt: str, tracebacks: bool = True, name: str = "") -> Model:
    """
    Parse a complete spec into a model.

    Each line declares up to two stocks; when it also holds a flow, the flow
    runs from the first stock to the second. The model is not validated
    until it is run.

    Args:
        txt: The spec text
        tracebacks: Log line failures, with traceback, before raising
        name: Name given to the model

    Returns:
        The parsed model

    Raises:
        ParseError: If a line cannot be processed; carries the line's text
            and number
    """
    builder = ModelBuilder(name)

    for line in lexer.lex(txt).lines:
        first: Optional[Stock] = None
        second: Optional[Stock] = None

        try:
            for token in line.tokens:
                if isinstance(token, StockToken):
                    if first is None:
                        first = build_stock(builder, token)
                    elif second is None:
                        second = build_stock(builder, token)
                elif isinstance(token, FlowToken):
                    if first is not None and second is not None:
                        build_flow(builder, first, second, token)
        except DeferLineInfo as e:
            e.annotate(line.text, line.number)
            if tracebacks:
                logger.exception("line %d could not be parsed", line.number)
            raise
        except Exception as e:
            if tracebacks:
                logger.exception("line %d could not be parsed", line.number)
            raise ParseError(line.text, line.number, e) from e

    model = builder.build()
    logger.debug("parsed %d stock(s) and %d flow(s)", len(model.stocks), len(model.flows))
    return model
