"""Reference analysis: links between stocks and initialization ordering."""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Iterable, Mapping

Graph = dict[str, list[str]]


class LinkKind(IntEnum):
    """Which formula of the dependent stock or flow holds a reference."""

    INITIAL = 0
    MAXIMUM = 1
    RATE = 2

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Link:
    """A reference from one formula to a stock."""

    from_var: str
    """The referenced stock"""

    to_var: str
    """The stock whose formula holds the reference, or the flow's destination for rate links"""

    kind: LinkKind = LinkKind.INITIAL

    def __str__(self) -> str:
        return f"{self.from_var} --{self.kind}--> {self.to_var}"


@dataclass
class CycleResult:
    """Outcome of :func:`find_cycles`."""

    has_cycle: bool
    cycles: Graph = field(default_factory=dict)
    """Edges that could not be peeled away; empty lists for resolved nodes"""

    initial_path: list[str] = field(default_factory=list)
    """Safe initialization order for nodes that have dependencies"""

    def residual(self) -> Graph:
        """Only the nodes still holding edges."""
        return {node: edges for node, edges in self.cycles.items() if edges}


def reference_graph(nodes: Iterable[str], links: Iterable[Link]) -> tuple[Graph, Graph]:
    """
    Build inward and outward edge maps from initial-value links.

    The outward map lists, for each node, the stocks its initial value
    references; the inward map lists who references each node.
    """
    inward: Graph = {}
    outward: Graph = {}
    for node in nodes:
        inward[node] = []
        outward[node] = []

    for link in links:
        if link.kind != LinkKind.INITIAL:
            continue
        outward.setdefault(link.to_var, []).append(link.from_var)
        inward.setdefault(link.from_var, []).append(link.to_var)
        inward.setdefault(link.to_var, [])
        outward.setdefault(link.from_var, [])

    return inward, outward


def find_cycles(in_graph: Mapping[str, list[str]], out_graph: Mapping[str, list[str]]) -> CycleResult:
    """
    Find cycles in a directed graph by repeatedly peeling away sources.

    Any node nobody points at that still points at others has its edges
    removed, until a pass changes nothing. Leftover edges mean a cycle. The
    caller's graphs are never modified.

    Args:
        in_graph: For each node, the nodes pointing at it
        out_graph: For each node, the nodes it points at

    Returns:
        CycleResult with the residual edges and, when acyclic, an order in
        which every node follows the nodes it points at
    """
    inward: Graph = {node: list(edges) for node, edges in in_graph.items()}
    cycles: Graph = {node: list(edges) for node, edges in out_graph.items()}

    deps: list[str] = []
    changed = True
    while changed:
        changed = False
        for node in list(cycles):
            edges = cycles[node]
            if not inward.get(node) and edges:
                for edge in edges:
                    targets = inward.get(edge, [])
                    if node in targets:
                        targets.remove(node)
                cycles[node] = []
                deps.append(node)
                changed = True

    has_cycle = any(edges for edges in cycles.values())
    deps.reverse()
    return CycleResult(has_cycle=has_cycle, cycles=cycles, initial_path=deps)
