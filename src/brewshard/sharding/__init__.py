"""Shard assignment and sharding simulation."""

from brewshard.sharding.assigner import (
    AssignmentResult,
    AssignmentStep,
    CandidateScore,
    assign_shards,
    max_shard_size_for,
    placement_order,
)
from brewshard.sharding.simulator import (
    EXPLAIN_ASSIGNMENT_LIMIT,
    SimulationError,
    SimulationOptions,
    SimulationResult,
    compute_shard_count,
    estimate_test_work,
    is_compatible_with_runner,
    run_simulation,
)

__all__ = [
    "EXPLAIN_ASSIGNMENT_LIMIT",
    "AssignmentResult",
    "AssignmentStep",
    "CandidateScore",
    "SimulationError",
    "SimulationOptions",
    "SimulationResult",
    "assign_shards",
    "compute_shard_count",
    "estimate_test_work",
    "is_compatible_with_runner",
    "max_shard_size_for",
    "placement_order",
    "run_simulation",
]
