"""
Flow rate rules.

A rule is one of a closed set of kinds. Each kind has a single calculation
function, selected by :attr:`RateRule.kind`; adding a kind means extending
:class:`FlowKind` and :data:`_CALCULATIONS` together.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Callable, Mapping

import numpy as np

from .errors import IllegalSourceStock, UnknownFlowType
from .formula import Formula, FormulaDefinition

if TYPE_CHECKING:
    from .types import Stock


class FlowKind(IntEnum):
    """The built-in flow kinds."""

    RATE = 0
    """Moves a fixed amount per round"""

    CONVERSION = 1
    """Consumes source and produces a scaled amount at the destination"""

    LEAK = 2
    """Moves a fraction of the source per round"""

    def __str__(self) -> str:
        return self.name.title()

    @classmethod
    def from_label(cls, label: str) -> "FlowKind":
        """
        Look up a kind by its label, ignoring case.

        Raises:
            UnknownFlowType: If the label names no kind
        """
        try:
            return cls[label.upper()]
        except KeyError:
            raise UnknownFlowType(label) from None

    @property
    def percentage_based(self) -> bool:
        """Whether the kind scales with the source value."""
        return self in (FlowKind.CONVERSION, FlowKind.LEAK)


Change = tuple[float, float]


def _rate(evaluated: float, src: float, dest: float, capacity: float) -> Change:
    if src > 0:
        change = evaluated if src - evaluated >= 0 else src
        change = max(0.0, min(capacity, change))
        return change, change
    return 0.0, 0.0


def _conversion(evaluated: float, src: float, dest: float, capacity: float) -> Change:
    if math.isinf(dest) or math.isinf(capacity):
        max_src_change = src
    else:
        with np.errstate(divide="ignore", invalid="ignore"):
            max_src_change = float(np.floor(np.true_divide(capacity - dest, evaluated)))
        max_src_change = min(src, max_src_change)
    if not max_src_change > 0:
        return 0.0, 0.0

    with np.errstate(invalid="ignore", over="ignore"):
        change = float(np.floor(max_src_change * evaluated))
    # covers zero, negative factors and NaN
    if not change > 0:
        return 0.0, 0.0
    return max_src_change, change


def _leak(evaluated: float, src: float, dest: float, capacity: float) -> Change:
    with np.errstate(invalid="ignore", over="ignore"):
        change = float(np.floor(src * evaluated))
    if not math.isnan(capacity):
        change = min(capacity, change)
    change = max(0.0, min(src, change))
    return change, change


_CALCULATIONS: dict[FlowKind, Callable[[float, float, float, float], Change]] = {
    FlowKind.RATE: _rate,
    FlowKind.CONVERSION: _conversion,
    FlowKind.LEAK: _leak,
}


@dataclass(frozen=True)
class RateRule:
    """A flow kind paired with the formula that parameterizes it."""

    kind: FlowKind
    formula: Formula

    @classmethod
    def rate(cls, definition: FormulaDefinition) -> "RateRule":
        return cls(FlowKind.RATE, Formula(definition))

    @classmethod
    def conversion(cls, definition: FormulaDefinition) -> "RateRule":
        return cls(FlowKind.CONVERSION, Formula(definition))

    @classmethod
    def leak(cls, definition: FormulaDefinition) -> "RateRule":
        return cls(FlowKind.LEAK, Formula(definition))

    def calculate(self, state: Mapping[str, float], src: float, dest: float, capacity: float) -> Change:
        """
        Compute one round of transfer.

        Args:
            state: Current values of all stocks
            src: Current source value
            dest: Current destination value
            capacity: Room left at the destination

        Returns:
            (amount removed from the source, amount added to the destination)
        """
        evaluated = self.formula.compute(state)
        return _CALCULATIONS[self.kind](evaluated, src, dest, capacity)

    def validate_source(self, source: "Stock") -> None:
        """
        Raises:
            IllegalSourceStock: If a percentage based rule drains an infinite stock
        """
        if self.kind.percentage_based and source.is_infinite:
            raise IllegalSourceStock(self, source)

    def __str__(self) -> str:
        return f"{self.kind}({self.formula})"
