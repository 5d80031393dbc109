"""Sharding simulation: discover, filter, resolve features, assign, estimate.

Ties the graph, feature resolver and assigner together into one
deterministic run and assembles the payload rendered by the reporters.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from brewshard.graph.discovery import discover_dependents
from brewshard.graph.features import FeatureResolver
from brewshard.sharding.assigner import (
    FEATURE_LOAD_DEFINITION,
    TIE_BREAKERS,
    AssignmentResult,
    assign_shards,
)

if TYPE_CHECKING:
    from brewshard.graph.dependency_graph import DependencyGraph
    from brewshard.models.formula import Formula

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────

ALL_RUNNERS_TAG = "all"
"""Runner tag (and bottle tag) meaning "every platform"."""

EXPLAIN_ASSIGNMENT_LIMIT = 30
"""Assignment traces are only produced below this many compatible dependents."""

DEFAULT_FORMULA = "openssl@3"
DEFAULT_MAX_RUNNERS = 4
DEFAULT_MIN_PER_RUNNER = 200
DEFAULT_RUNNER_TAG = "x86_64_linux"

# ── Data models ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SimulationOptions:
    """Parameters of one simulation run."""

    formula: str = DEFAULT_FORMULA
    """Target formula whose dependents are sharded."""

    max_runners: int = DEFAULT_MAX_RUNNERS
    """Upper bound on the number of shards."""

    min_per_runner: int = DEFAULT_MIN_PER_RUNNER
    """Dependents a runner must receive before another shard is added."""

    recursive: bool = True
    """Follow reverse edges transitively instead of one hop."""

    include_build: bool = True
    """Treat build dependencies as edges."""

    include_test: bool = True
    """Treat test dependencies as edges."""

    runner_tag: str = DEFAULT_RUNNER_TAG
    """Bottle tag the runners provide; ``all`` disables filtering."""

    core_compat: bool = False
    """Model legacy behavior where every shard re-runs the full set."""

    def clamped(self) -> SimulationOptions:
        """Return a copy with runner bounds raised to at least 1."""
        return replace(
            self,
            max_runners=max(self.max_runners, 1),
            min_per_runner=max(self.min_per_runner, 1),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ShardSummary:
    """One shard in the simulation output."""

    shard_index: int
    member_count: int
    feature_load: int
    members: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class SimulationResult:
    """Complete output of a successful simulation run."""

    formula: str
    runner_tag: str
    options: SimulationOptions
    discovered_count: int
    shard_count: int
    shards: list[ShardSummary] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    """Compatible dependents, sorted."""

    filtered_dependents: list[str] = field(default_factory=list)
    """Discovered dependents rejected by the runner tag, sorted."""

    total_tests_executed_estimate: int = 0
    duplicate_work_estimate: int = 0
    generated_at: str = ""
    assignment: AssignmentResult | None = None
    """Set only when the run is small enough to explain."""

    @property
    def compatible_count(self) -> int:
        return len(self.dependents)

    @property
    def filtered_count(self) -> int:
        return len(self.filtered_dependents)

    @property
    def includes_explanation(self) -> bool:
        return self.assignment is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON payload shape."""
        payload: dict[str, Any] = {
            "generated_at": self.generated_at,
            "formula": self.formula,
            "runner_tag": self.runner_tag,
            "options": self.options.to_dict(),
            "discovered_dependents_count": self.discovered_count,
            "compatible_dependents_count": self.compatible_count,
            "filtered_dependents_count": self.filtered_count,
            "shard_count": self.shard_count,
            "shards": [s.to_dict() for s in self.shards],
            "dependents": list(self.dependents),
            "filtered_dependents": list(self.filtered_dependents),
            "total_tests_executed_estimate": self.total_tests_executed_estimate,
            "duplicate_work_estimate": self.duplicate_work_estimate,
        }
        if self.assignment is not None:
            payload["assignment_explanation"] = {
                "limit": EXPLAIN_ASSIGNMENT_LIMIT,
                "feature_load_definition": FEATURE_LOAD_DEFINITION,
                "tie_breakers": list(TIE_BREAKERS),
                "max_shard_size": self.assignment.max_shard_size,
                "sorted_dependents": [d.to_dict() for d in self.assignment.sorted_dependents],
                "assignment_steps": [s.to_dict() for s in self.assignment.steps],
            }
        return payload


@dataclass(frozen=True)
class SimulationError:
    """Returned in place of a result when the target formula is unknown."""

    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


# ── Helpers ───────────────────────────────────────────────────────


def compute_shard_count(compatible_count: int, min_per_runner: int, max_runners: int) -> int:
    """``clamp(compatible_count // min_per_runner, 1, max_runners)``."""
    raw_count = compatible_count // max(min_per_runner, 1)
    return min(max(raw_count, 1), max(max_runners, 1))


def is_compatible_with_runner(formula: Formula, runner_tag: str) -> bool:
    """Whether *formula* can be tested on a runner providing *runner_tag*."""
    if runner_tag == ALL_RUNNERS_TAG:
        return True
    tags = formula.bottle_tags
    return not tags or runner_tag in tags or ALL_RUNNERS_TAG in tags


def estimate_test_work(
    compatible_count: int, shard_count: int, *, core_compat: bool
) -> tuple[int, int]:
    """Return ``(total_tests_executed, duplicate_work)`` estimates."""
    if core_compat and shard_count > 1:
        total = compatible_count * shard_count
    else:
        total = compatible_count
    return total, max(total - compatible_count, 0)


# ── Public API ────────────────────────────────────────────────────


def run_simulation(
    graph: DependencyGraph,
    options: SimulationOptions,
    *,
    generated_at: datetime | None = None,
) -> SimulationResult | SimulationError:
    """Simulate sharding the dependents of ``options.formula``.

    Runner bounds are clamped to at least 1 before use.  An unknown target
    yields a ``SimulationError`` and nothing else.
    """
    opts = options.clamped()
    if opts.formula not in graph:
        logger.info("Formula %s not found in %d formulae", opts.formula, len(graph))
        return SimulationError(error=f"Formula '{opts.formula}' not found in Homebrew API data.")

    discovered = discover_dependents(
        opts.formula,
        graph,
        recursive=opts.recursive,
        include_build=opts.include_build,
        include_test=opts.include_test,
    )

    compatible: list[str] = []
    filtered: list[str] = []
    for name in discovered:
        formula = graph.get(name)
        if formula is not None and is_compatible_with_runner(formula, opts.runner_tag):
            compatible.append(name)
        else:
            filtered.append(name)

    shard_count = compute_shard_count(len(compatible), opts.min_per_runner, opts.max_runners)
    logger.info(
        "%s: %d dependents discovered, %d compatible with %s, %d shard(s)",
        opts.formula,
        len(discovered),
        len(compatible),
        opts.runner_tag,
        shard_count,
    )

    resolver = FeatureResolver(
        graph, include_build=opts.include_build, include_test=opts.include_test
    )
    feature_sets = resolver.resolve_all(compatible)

    explain = len(compatible) < EXPLAIN_ASSIGNMENT_LIMIT
    assignment = assign_shards(compatible, feature_sets, shard_count, include_trace=explain)

    total, duplicate = estimate_test_work(
        len(compatible), shard_count, core_compat=opts.core_compat
    )

    return SimulationResult(
        formula=opts.formula,
        runner_tag=opts.runner_tag,
        options=opts,
        discovered_count=len(discovered),
        shard_count=shard_count,
        shards=[
            ShardSummary(
                shard_index=idx + 1,
                member_count=len(members),
                feature_load=assignment.shard_loads[idx],
                members=members,
            )
            for idx, members in enumerate(assignment.shards)
        ],
        dependents=compatible,
        filtered_dependents=filtered,
        total_tests_executed_estimate=total,
        duplicate_work_estimate=duplicate,
        generated_at=(generated_at or datetime.now(UTC)).isoformat(),
        assignment=assignment if explain else None,
    )
