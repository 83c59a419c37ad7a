"""Model classes for building and running stock and flow models."""

from __future__ import annotations

import copy
import dataclasses
import logging
from typing import TYPE_CHECKING, Iterator, Mapping, Optional, Sequence, Union

from ._rounds import validate_rounds
from .analysis import Link, LinkKind, find_cycles, reference_graph
from .errors import (
    CircularReferences,
    ConflictingValues,
    ErrorCode,
    SystemsError,
    SystemsRuntimeError,
    UnresolvedReference,
)
from .formula import Formula, FormulaDefinition
from .rates import RateRule
from .run import render_table
from .types import Flow, ModelIssue, Stock

if TYPE_CHECKING:
    from .run import Run
    from .sim import State

logger = logging.getLogger(__name__)

FormulaLike = Union[Formula, FormulaDefinition]
StockLike = Union[Stock, str]

_DEFAULTS = {
    "initial": Stock("").initial,
    "maximum": Stock("").maximum,
}


def _as_formula(value: Optional[FormulaLike]) -> Optional[Formula]:
    if value is None or isinstance(value, Formula):
        return value
    return Formula(value)


class ModelBuilder:
    """
    Accumulates stocks and flows before producing a read-only Model.

    The builder owns its collections exclusively. Redeclaring a stock is
    allowed only to fill in a value still at its default.
    """

    def __init__(self, name: str = "") -> None:
        self._name = name
        self._stocks: dict[str, Stock] = {}
        self._flows: list[Flow] = []

    @property
    def name(self) -> str:
        return self._name

    def get_stock(self, name: str) -> Optional[Stock]:
        return self._stocks.get(name)

    def stock(
        self,
        name: str,
        initial: Optional[FormulaLike] = None,
        maximum: Optional[FormulaLike] = None,
    ) -> Stock:
        """
        Declare a stock, or merge values into an existing one.

        Args:
            name: Stock name
            initial: Initial value; None leaves it unspecified
            maximum: Maximum value; None leaves it unspecified

        Returns:
            The declared or existing stock

        Raises:
            ConflictingValues: If the stock already has a different
                non-default value for a field being set
            IllegalSourceStock: If filling in the initial value makes the
                stock infinite while it drains through a percentage based flow
        """
        values = {"initial": _as_formula(initial), "maximum": _as_formula(maximum)}

        existing = self._stocks.get(name)
        if existing is None:
            stock = Stock(name)
            for attr, value in values.items():
                if value is not None:
                    setattr(stock, attr, value)
            self._stocks[name] = stock
            logger.debug("declared %s", stock)
            return stock

        for attr, value in values.items():
            if value is None or value == _DEFAULTS[attr]:
                continue
            current = getattr(existing, attr)
            if current == _DEFAULTS[attr]:
                if attr == "initial":
                    self._revalidate_sources(dataclasses.replace(existing, initial=value))
                setattr(existing, attr, value)
            elif current != value:
                raise ConflictingValues(name, current, value)
        return existing

    def infinite_stock(self, name: str) -> Stock:
        """
        Declare an infinite stock, reusing an existing infinite one.

        Raises:
            ConflictingValues: If a finite stock of that name exists
        """
        stock = Stock.infinite(name)
        existing = self._stocks.get(name)
        if existing is None:
            self._stocks[name] = stock
            logger.debug("declared infinite %s", stock)
            return stock
        if not existing.is_infinite:
            raise ConflictingValues(name, existing.initial, stock.initial)
        return existing

    def _revalidate_sources(self, candidate: Stock) -> None:
        for flow in self._flows:
            if flow.source.name == candidate.name:
                flow.rate.validate_source(candidate)

    def _resolve(self, stock: StockLike) -> Stock:
        name = stock.name if isinstance(stock, Stock) else stock
        found = self._stocks.get(name)
        # only stocks this builder declared, never look-alikes
        if found is None or (isinstance(stock, Stock) and found is not stock):
            raise SystemsRuntimeError(f"stock '{name}' has not been declared", ErrorCode.DOES_NOT_EXIST)
        return found

    def flow(self, source: StockLike, destination: StockLike, rate: RateRule) -> Flow:
        """
        Add a flow between two declared stocks.

        Raises:
            IllegalSourceStock: If the rate rule cannot drain the source
            SystemsRuntimeError: If either stock has not been declared
        """
        flow = Flow(self._resolve(source), self._resolve(destination), rate)
        self._flows.append(flow)
        logger.debug("declared %s", flow)
        return flow

    def build(self) -> "Model":
        """Produce a Model from independent copies of the declarations."""
        stocks, flows = copy.deepcopy((list(self._stocks.values()), self._flows))
        return Model(stocks, flows, self._name)


class Model:
    """
    A validated-on-demand collection of stocks and flows.

    Stock order is declaration order and determines rendering; flow order is
    declaration order and determines how each round is applied. Models are
    read-only: simulation state lives in :class:`~systems.sim.State`.
    """

    def __init__(self, stocks: Sequence[Stock], flows: Sequence[Flow], name: str = "") -> None:
        self._name = name
        self._stocks = tuple(stocks)
        self._flows = tuple(flows)
        self._by_name = {stock.name: stock for stock in self._stocks}
        self._initial_path: Optional[tuple[str, ...]] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def stocks(self) -> tuple[Stock, ...]:
        """All stocks in declaration order."""
        return self._stocks

    @property
    def flows(self) -> tuple[Flow, ...]:
        """All flows in declaration order."""
        return self._flows

    @property
    def columns(self) -> tuple[str, ...]:
        """Names of the displayed stocks, in declaration order."""
        return tuple(stock.name for stock in self._stocks if stock.show)

    @property
    def validated(self) -> bool:
        return self._initial_path is not None

    def get_stock(self, name: str) -> Stock:
        """
        Raises:
            SystemsRuntimeError: If the stock doesn't exist
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise SystemsRuntimeError(f"stock '{name}' not found in model", ErrorCode.DOES_NOT_EXIST) from None

    def _unresolved(self) -> Iterator[tuple[str, Formula, str]]:
        """Yield (owner, formula, missing name) for every dangling reference."""
        for stock in self._stocks:
            for formula in (stock.initial, stock.maximum):
                for ref in formula.references():
                    if ref not in self._by_name:
                        yield stock.name, formula, ref
        for flow in self._flows:
            for ref in flow.rate.formula.references():
                if ref not in self._by_name:
                    yield flow.destination.name, flow.rate.formula, ref

    def validate_existing_stocks(self) -> None:
        """
        Raises:
            UnresolvedReference: If any formula references an unknown stock
        """
        for _, formula, ref in self._unresolved():
            raise UnresolvedReference(formula, ref)

    def validate_initial_cycles(self) -> tuple[str, ...]:
        """
        Compute the initialization order of stocks with initial references.

        Raises:
            CircularReferences: If initial values reference each other in a cycle
        """
        inward, outward = reference_graph((s.name for s in self._stocks), self.get_links())
        result = find_cycles(inward, outward)
        if result.has_cycle:
            raise CircularReferences(result.residual(), outward)
        return tuple(result.initial_path)

    def validate(self) -> None:
        """
        Check references and compute the initialization order.

        Safe to call repeatedly; the order is computed once.

        Raises:
            UnresolvedReference: If any formula references an unknown stock
            CircularReferences: If initial values reference each other in a cycle
        """
        if self._initial_path is not None:
            return
        self.validate_existing_stocks()
        self._initial_path = self.validate_initial_cycles()
        logger.debug("validated %r; initialization order %s", self._name, list(self._initial_path))

    @property
    def initial_path(self) -> tuple[str, ...]:
        """Safe initialization order; validates the model on first access."""
        self.validate()
        assert self._initial_path is not None
        return self._initial_path

    def get_links(self) -> list[Link]:
        """
        Get every reference between stocks.

        Rate links point at the destination of the flow holding the rate.
        """
        links = []
        for stock in self._stocks:
            for ref in stock.initial.references():
                links.append(Link(ref, stock.name, LinkKind.INITIAL))
            for ref in stock.maximum.references():
                links.append(Link(ref, stock.name, LinkKind.MAXIMUM))
        for flow in self._flows:
            for ref in flow.rate.formula.references():
                links.append(Link(ref, flow.destination.name, LinkKind.RATE))
        return links

    def get_incoming_links(self, name: str) -> list[str]:
        """
        Get the stocks a stock's initial value depends on.

        Raises:
            SystemsRuntimeError: If the stock doesn't exist
        """
        stock = self.get_stock(name)
        return list(dict.fromkeys(stock.initial.references()))

    def simulate(self, overrides: Optional[Mapping[str, float]] = None) -> "State":
        """
        Create a simulation state for step-by-step execution.

        Args:
            overrides: Initial values replacing those computed for the named stocks

        Returns:
            A freshly initialized State

        Example:
            >>> state = model.simulate()
            >>> state.advance()
            >>> state.get_value("Engineers")
        """
        from .sim import State

        self.validate()
        return State(self, overrides)

    def run(self, rounds: int = 10, overrides: Optional[Mapping[str, float]] = None) -> list[dict[str, float]]:
        """
        Simulate the model.

        Returns:
            The initial snapshot followed by one snapshot per round
        """
        rounds = validate_rounds(rounds)
        state = self.simulate(overrides)
        snapshots = [state.snapshot()]
        for _ in range(rounds):
            state.advance()
            snapshots.append(state.snapshot())
        return snapshots

    def get_run(self, rounds: int = 10, overrides: Optional[Mapping[str, float]] = None) -> "Run":
        """
        Simulate the model and wrap the snapshots in a Run.

        Example:
            >>> run = model.get_run(rounds=5)
            >>> run.results["Engineers"].plot()
        """
        from .run import Run

        return Run(self.run(rounds, overrides), self.columns)

    def render(self, results: Sequence[Mapping[str, float]], sep: str = "\t", pad: bool = True) -> str:
        """Render snapshots as a table of the displayed stocks."""
        return render_table(results, self.columns, sep, pad)

    def check(self) -> tuple[ModelIssue, ...]:
        """
        Check model for common issues without raising.

        Returns:
            Tuple of ModelIssue objects, or empty tuple if no issues

        Example:
            >>> for issue in model.check():
            ...     print(f"{issue.severity}: {issue.message}")
        """
        issues = []
        for owner, formula, ref in self._unresolved():
            err = UnresolvedReference(formula, ref)
            issues.append(ModelIssue("error", str(err), owner, err.code))

        try:
            self.validate_initial_cycles()
        except CircularReferences as err:
            for name in err.cycle:
                issues.append(ModelIssue("error", str(err), name, err.code))

        if issues:
            return tuple(issues)

        try:
            initial = self.simulate().snapshot()
        except SystemsError as err:
            return (ModelIssue("error", str(err), None, err.code),)

        for stock in self._stocks:
            maximum = stock.maximum.compute(initial)
            if initial[stock.name] > maximum:
                issues.append(
                    ModelIssue(
                        "warning",
                        f"initial value {initial[stock.name]} of '{stock.name}' exceeds its maximum {maximum}",
                        stock.name,
                    )
                )
        return tuple(issues)

    def explain(self, name: str) -> str:
        """
        Get a human-readable explanation of a stock.

        Example:
            >>> print(model.explain("Engineers"))
            Engineers is a stock with initial value F(0), maximum F(inf), increased by Rate(F(1)) from Candidates, decreased by nothing

        Raises:
            SystemsRuntimeError: If the stock doesn't exist
        """
        stock = self.get_stock(name)
        if stock.is_infinite:
            kind = "an infinite stock"
        else:
            kind = f"a stock with initial value {stock.initial}, maximum {stock.maximum}"

        inflows = [f"{f.rate} from {f.source.name}" for f in self._flows if f.destination.name == name]
        outflows = [f"{f.rate} to {f.destination.name}" for f in self._flows if f.source.name == name]
        inflows_str = ", ".join(inflows) if inflows else "nothing"
        outflows_str = ", ".join(outflows) if outflows else "nothing"
        return f"{name} is {kind}, increased by {inflows_str}, decreased by {outflows_str}"

    def __repr__(self) -> str:
        name = f" '{self._name}'" if self._name else ""
        return f"<Model{name} with {len(self._stocks)} stock(s) and {len(self._flows)} flow(s)>"
