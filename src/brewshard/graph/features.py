"""Transitive forward-dependency ("feature") sets.

A formula's features are every formula reachable through its forward
dependency edges: runtime always, build and test when enabled.  The
assigner uses them as a similarity signal to colocate formulae that pull
in the same infrastructure.

Resolution walks an explicit stack instead of recursing, so long chains
do not run into the interpreter's recursion limit.  Completed closures are
memoized per ``(name, include_build, include_test)`` and reused by later
lookups; a memo hit for a dependency contributes that dependency's whole
closure without expanding it again.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from brewshard.graph.dependency_graph import DependencyGraph

FeatureMemo = dict[tuple[str, bool, bool], tuple[str, ...]]
"""Cache of completed feature sets keyed by ``(name, include_build, include_test)``."""


def feature_set_for(
    name: str,
    graph: DependencyGraph,
    *,
    include_build: bool,
    include_test: bool,
    memo: FeatureMemo | None = None,
    seen: Iterable[str] | None = None,
) -> list[str]:
    """Return the sorted feature set of *name*.

    Args:
        name: Formula to resolve.
        graph: Graph providing forward dependencies.
        include_build: Follow build dependencies.
        include_test: Follow test dependencies.
        memo: Shared cache; filled with every unrestricted result.
        seen: Names already on the caller's path.  They are neither added
            nor expanded, and a path-restricted result is not memoized.

    A formula absent from *graph* has no features.  The result never
    contains *name*, even when a dependency cycle leads back to it.
    """
    if memo is None:
        memo = {}
    path = set(seen or ())
    use_memo = not path
    key = (name, include_build, include_test)

    if use_memo and key in memo:
        return list(memo[key])
    if name not in graph:
        return []

    visited = path | {name}
    features: set[str] = set()
    stack = [name]

    while stack:
        formula = graph.get(stack.pop())
        if formula is None:
            continue
        deps = formula.forward_deps(include_build=include_build, include_test=include_test)
        for dep in sorted(deps):
            if dep in visited:
                continue
            visited.add(dep)
            features.add(dep)
            cached = memo.get((dep, include_build, include_test)) if use_memo else None
            if cached is not None:
                features.update(cached)
                visited.update(cached)
            else:
                stack.append(dep)

    features.discard(name)
    result = sorted(features)
    if use_memo:
        memo[key] = tuple(result)
    return result


class FeatureResolver:
    """Feature-set lookups bound to one graph, edge configuration and memo."""

    def __init__(
        self,
        graph: DependencyGraph,
        *,
        include_build: bool,
        include_test: bool,
        memo: FeatureMemo | None = None,
    ) -> None:
        self.graph = graph
        self.include_build = include_build
        self.include_test = include_test
        self.memo: FeatureMemo = {} if memo is None else memo

    def features(self, name: str) -> list[str]:
        return feature_set_for(
            name,
            self.graph,
            include_build=self.include_build,
            include_test=self.include_test,
            memo=self.memo,
        )

    def resolve_all(self, names: Iterable[str]) -> dict[str, list[str]]:
        """Resolve every name in *names*, keyed in input order."""
        return {name: self.features(name) for name in names}
