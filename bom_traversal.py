"""
bom_traversal.py

Traversal helpers shared by explosion and costing.

Cycles are allowed in the stored edge set; they are only fatal when a walk
reaches a component that is already one of its own ancestors.
"""

from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Optional, Set

import networkx as nx

from bom_errors import CycleDetected


class AncestorPath:
    """
    The chain of components from the traversal root to the node being visited.

    ``visiting(node)`` pushes the node for the duration of a ``with`` block and
    raises ``CycleDetected`` if the node is already on the chain.
    """

    def __init__(self):
        self._stack: List[str] = []
        self._members: Set[str] = set()

    def __contains__(self, node: str) -> bool:
        return node in self._members

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def nodes(self) -> List[str]:
        return list(self._stack)

    def check(self, node: str) -> None:
        if node in self._members:
            start = self._stack.index(node)
            raise CycleDetected(self._stack[start:] + [node])

    @contextmanager
    def visiting(self, node: str) -> Iterator[None]:
        self.check(node)
        self._stack.append(node)
        self._members.add(node)
        try:
            yield
        finally:
            self._stack.pop()
            self._members.discard(node)


def find_cycle(graph: nx.DiGraph, source: Optional[str] = None) -> Optional[List[str]]:
    """
    Return one cycle as a closed ID path (first ID repeated at the end), or None.

    With ``source`` only cycles reachable from that component are searched.
    """
    try:
        edges = nx.find_cycle(graph, source=source, orientation="original")
    except nx.NetworkXNoCycle:
        return None
    path = [edges[0][0]] + [edge[1] for edge in edges]
    return path


def ancestors_by_level(parents_of: Callable[[str], Iterable[str]], node: str) -> List[List[str]]:
    """
    Breadth-first walk up a reverse index (``parents_of``).

    Returns a list of levels: index 0 holds the direct parents, index 1 the
    grandparents not already seen, and so on. Each ancestor appears once, at
    its shortest distance. Terminates on cyclic graphs.
    """
    levels: List[List[str]] = []
    seen = {node}
    frontier = [node]
    while frontier:
        next_level: List[str] = []
        for current in frontier:
            for parent in parents_of(current):
                if parent not in seen:
                    seen.add(parent)
                    next_level.append(parent)
        if next_level:
            levels.append(next_level)
        frontier = next_level
    return levels
