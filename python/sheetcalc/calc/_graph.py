"""Dependency graph for formula cells with tiered topological ordering."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

from sheetcalc._address import CellAddress


class DependencyGraph:
    """Tracks formula cell dependencies for evaluation ordering.

    An edge ``A -> B`` (``B in dependencies[A]``) means A's formula reads B.
    ``dependents`` holds the same edges reversed.
    """

    __slots__ = ("dependencies", "dependents")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[CellAddress, set[CellAddress]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[CellAddress, set[CellAddress]] = {}

    def __contains__(self, cell: object) -> bool:
        return cell in self.dependencies

    def set_dependencies(self, cell: CellAddress, refs: Iterable[CellAddress]) -> None:
        """Replace all outgoing edges of *cell* with *refs*.

        Only the difference against the previous edge set is touched, and no
        other cell's edges change.
        """
        new = set(refs)
        old = self.dependencies.get(cell, set())

        for ref in old - new:
            readers = self.dependents.get(ref)
            if readers is not None:
                readers.discard(cell)
                if not readers:
                    del self.dependents[ref]
        for ref in new - old:
            self.dependents.setdefault(ref, set()).add(cell)

        self.dependencies[cell] = new

    def clear_dependencies(self, cell: CellAddress) -> None:
        """Drop *cell*'s outgoing edges; other formulas may still read it."""
        self.set_dependencies(cell, ())
        del self.dependencies[cell]

    def find_cycle(
        self, cell: CellAddress, refs: Iterable[CellAddress],
    ) -> tuple[CellAddress, ...] | None:
        """Path ``cell -> ... -> cell`` that giving *cell* these *refs* would close.

        Walks existing dependency edges from each new ref looking for *cell*.
        *cell*'s own current edges are never followed because reaching *cell*
        ends the search.  Returns None when the edit keeps the graph acyclic.
        """
        parent: dict[CellAddress, CellAddress] = {}
        stack: list[CellAddress] = []
        for ref in sorted(set(refs)):
            if ref == cell:
                return (cell, cell)
            if ref not in parent:
                parent[ref] = cell
                stack.append(ref)

        while stack:
            node = stack.pop()
            for dep in sorted(self.dependencies.get(node, ())):
                if dep == cell:
                    chain = [node]
                    while parent[chain[-1]] != cell:
                        chain.append(parent[chain[-1]])
                    chain.reverse()
                    return (cell, *chain, cell)
                if dep not in parent:
                    parent[dep] = node
                    stack.append(dep)
        return None

    def dirty_set(self, changed: Iterable[CellAddress]) -> set[CellAddress]:
        """*changed* plus every cell that transitively reads from it (BFS)."""
        dirty: set[CellAddress] = set(changed)
        queue: deque[CellAddress] = deque(dirty)

        while queue:
            cell = queue.popleft()
            for dep in self.dependents.get(cell, ()):
                if dep not in dirty:
                    dirty.add(dep)
                    queue.append(dep)

        return dirty

    def tiers(self, dirty: Iterable[CellAddress]) -> list[list[CellAddress]]:
        """Group *dirty* cells into evaluation tiers (Kahn's algorithm).

        A cell lands in the first tier after all of its dirty dependencies.
        Cells within a tier do not read each other.  Each tier is sorted so
        runs are deterministic.

        Raises ValueError if a circular reference is detected.
        """
        pending = set(dirty)
        if not pending:
            return []

        in_degree: dict[CellAddress, int] = {
            cell: len(self.dependencies.get(cell, set()) & pending) for cell in pending
        }
        current = sorted(cell for cell, n in in_degree.items() if n == 0)
        result: list[list[CellAddress]] = []
        placed = 0

        while current:
            result.append(current)
            placed += len(current)
            nxt: list[CellAddress] = []
            for cell in current:
                for dep in self.dependents.get(cell, ()):
                    if dep in in_degree:
                        in_degree[dep] -= 1
                        if in_degree[dep] == 0:
                            nxt.append(dep)
            current = sorted(nxt)

        if placed != len(pending):
            missing = sorted(cell for cell, n in in_degree.items() if n > 0)
            raise ValueError(f"Circular reference detected involving: {[str(c) for c in missing]}")

        return result

    def max_depth(self, roots: Iterable[CellAddress]) -> int:
        """Longest dependency chain from root cells through formula cells."""
        depth: dict[CellAddress, int] = {r: 0 for r in roots}
        if not depth:
            return 0
        queue: deque[CellAddress] = deque(depth)
        max_d = 0

        while queue:
            cell = queue.popleft()
            current_depth = depth[cell]
            for dep in self.dependents.get(cell, ()):
                new_depth = current_depth + 1
                if dep not in depth or new_depth > depth[dep]:
                    depth[dep] = new_depth
                    max_d = max(max_d, new_depth)
                    queue.append(dep)

        return max_d
