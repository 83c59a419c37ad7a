"""Simulation run results."""

from __future__ import annotations

import math
from typing import Mapping, Sequence

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from .errors import SystemsRuntimeError


def _format_value(value: float) -> str:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def render_table(
    snapshots: Sequence[Mapping[str, float]],
    columns: Sequence[str],
    sep: str = "\t",
    pad: bool = True,
) -> str:
    """
    Render snapshots as a delimited table.

    The header row is the separator followed by the column names; each
    following row is the round index and that round's values.

    Args:
        snapshots: One mapping of stock values per round
        columns: Names of the stocks to show, in display order
        sep: Column separator
        pad: Left-justify each value to the width of its column name

    Returns:
        The table, one line per row
    """
    lines = [sep + sep.join(columns)]
    widths = [len(name) for name in columns]

    for i, snapshot in enumerate(snapshots):
        row = str(i)
        for name, width in zip(columns, widths):
            num = _format_value(snapshot[name])
            if pad:
                num = num.ljust(width)
            row += sep + num
        lines.append(row)

    return "\n".join(lines)


class Run:
    """
    Results of a single simulation run.

    Holds one snapshot per round, starting with the initial state. Use the
    pandas and numpy views to analyze results rather than custom methods.

    Example:
        >>> run = model.get_run(rounds=5)
        >>> run.results["Engineers"].plot()
        >>> print(f"Final value: {run.final['Engineers']}")
    """

    def __init__(self, snapshots: Sequence[Mapping[str, float]], columns: Sequence[str]) -> None:
        self._snapshots = tuple(dict(s) for s in snapshots)
        self._columns = tuple(columns)

    @property
    def snapshots(self) -> tuple[dict[str, float], ...]:
        """Snapshot of every stock per round, the initial state first."""
        return self._snapshots

    @property
    def columns(self) -> tuple[str, ...]:
        """Names of the displayed stocks, in declaration order."""
        return self._columns

    @property
    def rounds(self) -> int:
        """Number of rounds advanced past the initial state."""
        return len(self._snapshots) - 1

    @property
    def results(self) -> pd.DataFrame:
        """
        Displayed stock values as a DataFrame.

        Indexed by round, one column per displayed stock.
        """
        frame = pd.DataFrame(
            [[s[name] for name in self._columns] for s in self._snapshots],
            columns=list(self._columns),
            dtype=np.float64,
        )
        frame.index.name = "round"
        return frame

    def get_series(self, name: str) -> NDArray[np.float64]:
        """
        Get the values of any stock, hidden ones included, over all rounds.

        Raises:
            SystemsRuntimeError: If the stock doesn't exist
        """
        if self._snapshots and name not in self._snapshots[0]:
            raise SystemsRuntimeError(f"stock '{name}' not found in run")
        return np.array([s[name] for s in self._snapshots], dtype=np.float64)

    @property
    def final(self) -> dict[str, float]:
        """The last snapshot."""
        if not self._snapshots:
            return {}
        return dict(self._snapshots[-1])

    def render(self, sep: str = "\t", pad: bool = True) -> str:
        return render_table(self._snapshots, self._columns, sep, pad)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __repr__(self) -> str:
        return f"<Run with {self.rounds} round(s) of {len(self._columns)} stock(s)>"
