"""Reverse-dependency discovery by breadth-first traversal."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from brewshard.graph.dependency_graph import DependencyGraph


def neighbors_for(
    name: str,
    graph: DependencyGraph,
    *,
    include_build: bool,
    include_test: bool,
) -> list[str]:
    """Return the sorted immediate dependents of *name*.

    Runtime dependents are always included; build and test dependents
    only when the matching flag is set.
    """
    neighbors = set(graph.reverse_runtime.get(name, ()))
    if include_build:
        neighbors.update(graph.reverse_build.get(name, ()))
    if include_test:
        neighbors.update(graph.reverse_test.get(name, ()))
    return sorted(neighbors)


def discover_dependents(
    target: str,
    graph: DependencyGraph,
    *,
    recursive: bool,
    include_build: bool,
    include_test: bool,
) -> list[str]:
    """Find the formulae that depend on *target*.

    With ``recursive=False`` only one-hop dependents are returned; otherwise
    the full transitive closure over the selected reverse edges.  *target*
    itself is never part of the result.  An unknown *target* simply has no
    dependents.

    Returns:
        Sorted list of dependent names.
    """
    if target not in graph:
        return []

    visited = {target}
    discovered: set[str] = set()
    queue = deque([target])

    while queue:
        current = queue.popleft()
        for neighbor in neighbors_for(
            current, graph, include_build=include_build, include_test=include_test
        ):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            discovered.add(neighbor)
            if recursive:
                queue.append(neighbor)

    return sorted(discovered)
