"""Forward lookup and reverse-edge indices over normalized formulae."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from brewshard.models.formula import Formula, normalize_formulae

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)


@dataclass
class DependencyGraph:
    """Read-only view of a formula set.

    Each reverse index maps a dependency name to the sorted, deduplicated
    list of formulae that declare it as that kind of dependency.  Keys may
    name formulae absent from ``by_name``.
    """

    by_name: dict[str, Formula] = field(default_factory=dict)
    reverse_runtime: dict[str, list[str]] = field(default_factory=dict)
    reverse_build: dict[str, list[str]] = field(default_factory=dict)
    reverse_test: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> DependencyGraph:
        """Normalize raw API records and build the graph from them."""
        return build_graph(normalize_formulae(records))

    def get(self, name: str) -> Formula | None:
        return self.by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.by_name

    def __len__(self) -> int:
        return len(self.by_name)

    def __iter__(self) -> Iterator[Formula]:
        return iter(self.by_name.values())


def _add_reverse_edges(
    reverse_map: dict[str, list[str]], source_name: str, dependency_names: Iterable[str]
) -> None:
    for dep in dependency_names:
        reverse_map.setdefault(dep, []).append(source_name)


def _finalize(reverse_map: dict[str, list[str]]) -> None:
    for dep, dependents in reverse_map.items():
        reverse_map[dep] = sorted(set(dependents))


def build_graph(formulae: Iterable[Formula]) -> DependencyGraph:
    """Build forward and reverse indices from normalized formulae.

    Duplicate names resolve last-write-wins in ``by_name``; every
    occurrence still contributes its reverse edges before deduplication.
    """
    graph = DependencyGraph()

    for formula in formulae:
        name = formula.name
        if name in graph.by_name:
            logger.debug("Duplicate formula %s; keeping the later record", name)
        graph.by_name[name] = formula
        _add_reverse_edges(graph.reverse_runtime, name, formula.runtime_deps)
        _add_reverse_edges(graph.reverse_build, name, formula.build_deps)
        _add_reverse_edges(graph.reverse_test, name, formula.test_deps)

    for reverse_map in (graph.reverse_runtime, graph.reverse_build, graph.reverse_test):
        _finalize(reverse_map)

    logger.debug(
        "Built dependency graph: %d formulae, %d runtime / %d build / %d test reverse keys",
        len(graph.by_name),
        len(graph.reverse_runtime),
        len(graph.reverse_build),
        len(graph.reverse_test),
    )
    return graph
