"""Formulas: validated arithmetic over literals and stock references."""

from __future__ import annotations

import math
from typing import Mapping, Optional, Union

import numpy as np

from . import lexer
from .errors import InvalidFormula
from .lexer import Decimal, FormulaToken, Infinity, Operation, Reference, Whole

FormulaDefinition = Union[str, int, float, FormulaToken]

_OPERATIONS = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.true_divide,
}


def _lex_number(value: Union[int, float]) -> FormulaToken:
    """Lex a python number without round-tripping through exponent notation."""
    if isinstance(value, float) and math.isnan(value):
        raise ValueError("cannot build a formula from NaN")

    if math.isinf(value):
        leaf: lexer.ValueToken = Infinity()
    elif isinstance(value, int):
        return FormulaToken((Whole(str(value)),))
    else:
        leaf = Decimal(np.format_float_positional(abs(value), trim="0"))

    if value < 0:
        return FormulaToken((Whole("0"), Operation("-"), leaf))
    return FormulaToken((leaf,))


class Formula:
    """
    Formulas are the core unit of computation in models.

    They serve as the interface between lexed formula definitions and the
    models using them. Evaluation is strictly left to right with no operator
    precedence, so ``10 + 5 * 2`` is 30.
    """

    def __init__(self, definition: FormulaDefinition, default: float = 0) -> None:
        if isinstance(definition, FormulaToken):
            self.lexed = definition
        elif isinstance(definition, str):
            self.lexed = lexer.lex_formula(definition)
        elif isinstance(definition, (int, float)) and not isinstance(definition, bool):
            self.lexed = _lex_number(definition)
        else:
            raise TypeError(f"cannot build a formula from {type(definition).__name__}")

        self.default = default
        self.validate()

        # Parenthesized groups are formulas in their own right
        self._groups: dict[int, Formula] = {
            i: Formula(leaf, default)
            for i, leaf in enumerate(self.lexed.tokens)
            if isinstance(leaf, FormulaToken)
        }

    def validate(self) -> None:
        """
        Ensure the formula is mathematically coherent.

        Raises:
            InvalidFormula: If the formula is empty, starts or ends with an
                operation, or does not alternate operands and operations
        """
        tokens = self.lexed.tokens
        if not tokens:
            raise InvalidFormula(self, "formula is empty. must specify a number or a reference")

        prev: Optional[lexer.FormulaLeaf] = None
        for token in tokens:
            if isinstance(token, Operation):
                if prev is None:
                    raise InvalidFormula(self, "can't start with an operation")
                elif isinstance(prev, Operation):
                    raise InvalidFormula(self, "operation can't be preceded by an operation")
            elif prev is not None and not isinstance(prev, Operation):
                raise InvalidFormula(self, "must have an operation between values or references")
            prev = token

        if isinstance(prev, Operation):
            raise InvalidFormula(self, "formula cannot end with an operation")

    def references(self) -> list[str]:
        """Return all stock names referenced, in order of appearance."""
        refs: list[str] = []
        for i, token in enumerate(self.lexed.tokens):
            if isinstance(token, Reference):
                refs.append(token.text)
            elif isinstance(token, FormulaToken):
                refs.extend(self._groups[i].references())
        return refs

    def compute(self, state: Optional[Mapping[str, float]] = None) -> float:
        """
        Compute the value of the formula against a state.

        References missing from the state evaluate to NaN, which then
        propagates through the arithmetic.
        """
        if state is None:
            state = {}

        acc: Optional[float] = None
        op: Optional[str] = None

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            for i, token in enumerate(self.lexed.tokens):
                if isinstance(token, Operation):
                    op = token.text
                    continue

                if isinstance(token, Whole):
                    val = float(int(token.text))
                elif isinstance(token, Decimal):
                    val = float(token.text)
                elif isinstance(token, Infinity):
                    val = math.inf
                elif isinstance(token, Reference):
                    val = float(state.get(token.text, math.nan))
                else:
                    val = self._groups[i].compute(state)

                if acc is None or op is None:
                    acc = val
                else:
                    acc = float(_OPERATIONS[op](acc, val))

        if acc is None:
            return self.default
        return acc

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formula):
            return NotImplemented
        return self.lexed == other.lexed

    def __hash__(self) -> int:
        return hash(self.lexed)

    def __str__(self) -> str:
        return f"F({lexer.readable(self.lexed)})"

    def __repr__(self) -> str:
        return f"<Formula {lexer.readable(self.lexed)!r}>"
