"""Simulation state for stepping a model round by round."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping, Optional

from .errors import SystemsRuntimeError

if TYPE_CHECKING:
    from .model import Model

logger = logging.getLogger(__name__)


class State:
    """
    The live values of one simulation run.

    A State is created from a validated model and owns the only mutable copy
    of the stock values. Several States may run against the same model at
    once; none of them modify it.
    """

    def __init__(self, model: "Model", overrides: Optional[Mapping[str, float]] = None) -> None:
        """
        Initialize every stock from its initial formula.

        Args:
            model: The model to simulate; validated if it was not already
            overrides: Values replacing the computed initial value of the
                named stocks. Stocks depending on an overridden stock see
                the overridden value.

        Raises:
            SystemsRuntimeError: If an override names an unknown stock
        """
        self._model = model
        self._overrides: dict[str, float] = dict(overrides or {})
        self._round = 0

        names = {stock.name for stock in model.stocks}
        for name in self._overrides:
            if name not in names:
                raise SystemsRuntimeError(f"cannot override unknown stock '{name}'")

        self._state: dict[str, float] = {}
        ordered = model.initial_path
        pending = set(ordered)

        for stock in model.stocks:
            if stock.name not in pending:
                self._initialize(stock.name)
        for name in ordered:
            self._initialize(name)

        logger.debug("initialized state for %r: %s", model.name, self._state)

    def _initialize(self, name: str) -> None:
        if name in self._overrides:
            self._state[name] = float(self._overrides[name])
        else:
            self._state[name] = self._model.get_stock(name).initial.compute(self._state)

    @property
    def model(self) -> "Model":
        return self._model

    @property
    def round(self) -> int:
        """Number of rounds advanced so far."""
        return self._round

    def get_value(self, name: str) -> float:
        """
        Get the current value of a stock.

        Raises:
            SystemsRuntimeError: If the stock doesn't exist
        """
        try:
            return self._state[name]
        except KeyError:
            raise SystemsRuntimeError(f"stock '{name}' not found in state") from None

    def advance(self) -> None:
        """
        Advance the simulation by one round.

        Flows are applied in reverse declaration order. Removals from a
        source take effect at once, so later flows sharing that source see
        the depletion; additions are held until every flow has been applied.
        Each flow sizes its transfer against the destination value plus the
        additions already pending for it, so several inflows together never
        fill a stock past its maximum.
        """
        pending: dict[str, float] = {}
        for flow in reversed(self._model.flows):
            name = flow.destination.name
            src = self._state[flow.source.name]
            dest = self._state[name] + pending.get(name, 0.0)
            remove, add = flow.change(self._state, src, dest)
            self._state[flow.source.name] = src - remove
            pending[name] = pending.get(name, 0.0) + add

        for name, add in pending.items():
            self._state[name] += add

        self._round += 1
        logger.debug("advanced to round %d", self._round)

    def run_to(self, round: int) -> None:
        """
        Advance until the given round has completed.

        Raises:
            SystemsRuntimeError: If the round has already passed
        """
        if round < self._round:
            raise SystemsRuntimeError(f"cannot run to round {round}: already at round {self._round}")
        while self._round < round:
            self.advance()

    def snapshot(self) -> dict[str, float]:
        """Return an independent copy of the current stock values."""
        return dict(self._state)

    def __repr__(self) -> str:
        return f"<State round {self._round} with {len(self._state)} stock(s)>"
