"""Data structures for the systems package."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Optional

from .errors import ErrorCode
from .formula import Formula

if TYPE_CHECKING:
    from .rates import Change, RateRule


def _default_initial() -> Formula:
    return Formula(0)


def _default_maximum() -> Formula:
    return Formula(math.inf)


@dataclass
class Stock:
    """
    A stock: a named numeric container.

    Stocks only change through flows. A stock's initial and maximum values
    are formulas, so they may reference other stocks.

    Mutable only while a model is being built, when a redeclaration may fill
    in a value still left at its default.
    """

    name: str
    """Stock name, unique within a model"""

    initial: Formula = field(default_factory=_default_initial)
    """Initial value formula"""

    maximum: Formula = field(default_factory=_default_maximum)
    """Maximum value formula; unbounded by default"""

    show: bool = True
    """Whether the stock is displayed in rendered output"""

    @classmethod
    def infinite(cls, name: str) -> "Stock":
        """An unbounded, hidden stock fixed at positive infinity."""
        return cls(name, Formula(math.inf), show=False)

    @property
    def is_infinite(self) -> bool:
        return self.initial.compute() == math.inf

    def __str__(self) -> str:
        return f"Stock({self.name})"


@dataclass(frozen=True)
class Flow:
    """
    A directed transfer between two stocks.

    The rate rule is checked against the source when the flow is created,
    so an illegal flow can never be part of a model.
    """

    source: Stock
    """Stock the flow drains"""

    destination: Stock
    """Stock the flow fills"""

    rate: "RateRule"
    """Rule computing how much moves each round"""

    def __post_init__(self) -> None:
        self.rate.validate_source(self.source)

    def capacity(self, state: Mapping[str, float], dest: float) -> float:
        """Room left at the destination given its current value."""
        maximum = self.destination.maximum.compute(state)
        if math.isinf(dest):
            return maximum
        return maximum - dest

    def change(self, state: Mapping[str, float], src: float, dest: float) -> "Change":
        """
        Compute one round of transfer for this flow.

        Returns:
            (amount removed from the source, amount added to the destination)
        """
        return self.rate.calculate(state, src, dest, self.capacity(state, dest))

    def __str__(self) -> str:
        return f"Flow({self.source.name} > {self.destination.name} @ {self.rate})"


@dataclass(frozen=True)
class ModelIssue:
    """An issue found during model checking."""

    severity: str
    """Issue severity: 'error' or 'warning'"""

    message: str
    """Human-readable description of the issue"""

    variable: Optional[str] = None
    """Name of the stock with the issue (if applicable)"""

    code: Optional[ErrorCode] = None
    """Error code of the underlying failure (if any)"""


@dataclass(frozen=True)
class RunSpec:
    """Settings for running and rendering a model."""

    rounds: int = 10
    """Number of rounds to simulate"""

    sep: str = "\t"
    """Column separator for rendered tables"""

    pad: bool = True
    """Whether to left-justify values to their column header width"""

    output: str = "table"
    """Output format: 'table' or 'json'"""
