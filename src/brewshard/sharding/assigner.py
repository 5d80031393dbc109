"""Greedy, capacity-aware shard assignment.

Dependents are placed heaviest-first (most features first, ties by name)
into the eligible shard that already shares the most features with them.
Ties prefer the shard with the lower feature load, then fewer members,
then the lower index, which makes every run with the same inputs produce
the same shards.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────

TIE_BREAKERS = (
    "maximize overlap first",
    "then pick lower feature load",
    "then pick fewer members",
    "then pick lower shard index",
)
"""Human-readable selection order, in the order it is applied."""

FEATURE_LOAD_DEFINITION = (
    "Feature load is the sum of feature_count values for dependents assigned to a shard."
)

# ── Data models ───────────────────────────────────────────────────


@dataclass
class _ShardState:
    """Running accumulators for one shard during assignment."""

    members: list[str] = field(default_factory=list)
    features: set[str] = field(default_factory=set)
    feature_load: int = 0

    @property
    def size(self) -> int:
        return len(self.members)


@dataclass(frozen=True)
class CandidateScore:
    """How one shard scored for one placement."""

    shard_index: int
    """1-based shard index."""

    overlap: int
    """Features shared between the formula and the shard."""

    feature_load_before: int
    member_count_before: int
    eligible: bool
    """Whether the shard was below capacity (or capacity was lifted)."""

    def sort_key(self) -> tuple[int, int, int, int]:
        return (
            -self.overlap,
            self.feature_load_before,
            self.member_count_before,
            self.shard_index,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "shard_index": self.shard_index,
            "overlap": self.overlap,
            "feature_load_before": self.feature_load_before,
            "member_count_before": self.member_count_before,
            "eligible": self.eligible,
        }


@dataclass(frozen=True)
class AssignmentStep:
    """One recorded placement decision."""

    step: int
    formula: str
    feature_count: int
    weight: int
    selected_shard_index: int
    candidates: tuple[CandidateScore, ...]
    max_shard_size: int
    capacity_constrained: bool
    """At least one shard was full when this formula was placed."""

    forced_by_capacity: bool
    """A full shard had strictly higher overlap than the one chosen."""

    capacity_lifted: bool
    """Every shard was full, so the cap was ignored for this placement."""

    loads_before: tuple[int, ...]
    loads_after: tuple[int, ...]
    sizes_before: tuple[int, ...]
    sizes_after: tuple[int, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "step": self.step,
            "formula": self.formula,
            "feature_count": self.feature_count,
            "weight": self.weight,
            "selected_shard_index": self.selected_shard_index,
            "candidates": [c.to_dict() for c in self.candidates],
            "max_shard_size": self.max_shard_size,
            "capacity_constrained": self.capacity_constrained,
            "forced_by_capacity": self.forced_by_capacity,
            "capacity_lifted": self.capacity_lifted,
            "loads_before": list(self.loads_before),
            "loads_after": list(self.loads_after),
            "sizes_before": list(self.sizes_before),
            "sizes_after": list(self.sizes_after),
        }


@dataclass(frozen=True)
class SortedDependent:
    """A dependent in placement order."""

    name: str
    feature_count: int

    @property
    def weight(self) -> int:
        return max(self.feature_count, 1)

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "feature_count": self.feature_count, "weight": self.weight}


@dataclass
class AssignmentResult:
    """Outcome of ``assign_shards``."""

    shards: list[list[str]] = field(default_factory=list)
    """Members per shard, each list sorted by name."""

    shard_loads: list[int] = field(default_factory=list)
    """Feature load per shard, same order as ``shards``."""

    max_shard_size: int = 1
    sorted_dependents: list[SortedDependent] = field(default_factory=list)
    steps: list[AssignmentStep] = field(default_factory=list)
    """Decision trace; empty unless requested."""


# ── Public API ────────────────────────────────────────────────────


def max_shard_size_for(item_count: int, shard_count: int) -> int:
    """Return the per-shard member cap: ``ceil(items / shards)``, at least 1."""
    return max(math.ceil(item_count / shard_count), 1)


def placement_order(
    names: Sequence[str], feature_sets_by_name: Mapping[str, Sequence[str]]
) -> list[str]:
    """Sort names by feature count descending, then by name ascending."""
    return sorted(names, key=lambda n: (-len(feature_sets_by_name.get(n, ())), n))


def assign_shards(
    names: Sequence[str],
    feature_sets_by_name: Mapping[str, Sequence[str]],
    shard_count: int,
    *,
    include_trace: bool = False,
) -> AssignmentResult:
    """Partition *names* into *shard_count* shards.

    Every name ends up in exactly one shard.  A shard is eligible while it
    holds fewer than ``max_shard_size`` members.  When every shard is full
    the cap is lifted for that placement only; ``max_shard_size`` is never
    recomputed, so such a shard stays above it for the rest of the run.

    Args:
        names: Dependents to place.
        feature_sets_by_name: Feature set per name; missing names count as
            having no features.
        shard_count: Number of shards (>= 1).
        include_trace: Record an ``AssignmentStep`` per placement.

    Raises:
        ValueError: If shard_count is less than 1.
    """
    if shard_count < 1:
        msg = f"shard_count must be >= 1, got {shard_count}"
        raise ValueError(msg)

    shards = [_ShardState() for _ in range(shard_count)]
    max_size = max_shard_size_for(len(names), shard_count)
    ordered = placement_order(names, feature_sets_by_name)
    steps: list[AssignmentStep] = []

    for step_index, name in enumerate(ordered, start=1):
        features = feature_sets_by_name.get(name, ())
        feature_count = len(features)

        eligible = [s.size < max_size for s in shards]
        capacity_lifted = not any(eligible)
        if capacity_lifted:
            logger.debug("All shards at capacity %d; placing %s without cap", max_size, name)
            eligible = [True] * shard_count

        candidates = tuple(
            CandidateScore(
                shard_index=idx + 1,
                overlap=sum(1 for feature in features if feature in shard.features),
                feature_load_before=shard.feature_load,
                member_count_before=shard.size,
                eligible=eligible[idx],
            )
            for idx, shard in enumerate(shards)
        )
        best = min((c for c in candidates if c.eligible), key=CandidateScore.sort_key)
        chosen = shards[best.shard_index - 1]

        loads_before = tuple(s.feature_load for s in shards)
        sizes_before = tuple(s.size for s in shards)

        chosen.members.append(name)
        chosen.feature_load += feature_count
        chosen.features.update(features)

        logger.debug(
            "Step %d: %s (%d features) -> shard %d (overlap %d)",
            step_index,
            name,
            feature_count,
            best.shard_index,
            best.overlap,
        )

        if not include_trace:
            continue

        steps.append(
            AssignmentStep(
                step=step_index,
                formula=name,
                feature_count=feature_count,
                weight=max(feature_count, 1),
                selected_shard_index=best.shard_index,
                candidates=candidates,
                max_shard_size=max_size,
                capacity_constrained=any(not c.eligible for c in candidates),
                forced_by_capacity=any(
                    not c.eligible and c.overlap > best.overlap for c in candidates
                ),
                capacity_lifted=capacity_lifted,
                loads_before=loads_before,
                loads_after=tuple(s.feature_load for s in shards),
                sizes_before=sizes_before,
                sizes_after=tuple(s.size for s in shards),
            )
        )

    return AssignmentResult(
        shards=[sorted(s.members) for s in shards],
        shard_loads=[s.feature_load for s in shards],
        max_shard_size=max_size,
        sorted_dependents=[
            SortedDependent(name=n, feature_count=len(feature_sets_by_name.get(n, ())))
            for n in ordered
        ],
        steps=steps,
    )
