"""Tests for brewshard.sharding.assigner."""

from __future__ import annotations

import pytest

from brewshard.sharding.assigner import (
    CandidateScore,
    assign_shards,
    max_shard_size_for,
    placement_order,
)

CAPACITY_CASE = {
    "p": ["x", "y", "z"],
    "q": ["x", "y"],
    "r": ["x"],
    "s": ["w"],
}


class TestMaxShardSize:
    @pytest.mark.parametrize(
        ("items", "shards", "expected"),
        [(8, 2, 4), (9, 2, 5), (1, 4, 1), (0, 3, 1), (40, 3, 14)],
    )
    def test_ceil_with_floor_of_one(self, items: int, shards: int, expected: int) -> None:
        assert max_shard_size_for(items, shards) == expected


class TestPlacementOrder:
    def test_feature_count_descending_then_name(self) -> None:
        features = {"b": ["x"], "a": ["x"], "c": ["x", "y"], "d": []}
        assert placement_order(["d", "b", "a", "c"], features) == ["c", "a", "b", "d"]

    def test_missing_feature_set_counts_as_empty(self) -> None:
        assert placement_order(["z", "a"], {"z": ["q"]}) == ["z", "a"]


class TestCandidateScore:
    def test_sort_key_prefers_overlap_then_load_then_size_then_index(self) -> None:
        scores = [
            CandidateScore(1, 1, 0, 0, eligible=True),
            CandidateScore(2, 2, 9, 3, eligible=True),
            CandidateScore(3, 2, 9, 2, eligible=True),
            CandidateScore(4, 2, 9, 2, eligible=True),
        ]
        assert min(scores, key=CandidateScore.sort_key).shard_index == 3


class TestAssignShards:
    def test_rejects_zero_shards(self) -> None:
        with pytest.raises(ValueError, match="shard_count must be >= 1"):
            assign_shards(["a"], {"a": []}, 0)

    def test_empty_input_gives_empty_shards(self) -> None:
        result = assign_shards([], {}, 3)
        assert result.shards == [[], [], []]
        assert result.shard_loads == [0, 0, 0]
        assert result.max_shard_size == 1

    def test_single_shard_takes_everything(self) -> None:
        result = assign_shards(["b", "a"], {"a": ["x"], "b": []}, 1)
        assert result.shards == [["a", "b"]]
        assert result.shard_loads == [1]

    def test_lower_feature_load_breaks_overlap_tie(self) -> None:
        features = {"a": ["x", "y"], "b": ["z"], "c": ["q"]}
        result = assign_shards(["a", "b", "c"], features, 2)
        assert result.shards == [["a"], ["b", "c"]]
        assert result.shard_loads == [2, 2]

    def test_fewer_members_then_lower_index_break_ties(self) -> None:
        features: dict[str, list[str]] = {"a": [], "b": [], "c": []}
        result = assign_shards(["a", "b", "c"], features, 2)
        assert result.shards == [["a", "c"], ["b"]]

    def test_overlap_colocates_shared_features(self) -> None:
        features = {"a": ["x", "y"], "b": ["x", "y"], "c": ["q"], "d": ["q"]}
        result = assign_shards(list(features), features, 2)
        assert result.shards == [["a", "b"], ["c", "d"]]

    def test_capacity_forces_second_shard(self) -> None:
        result = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2)
        assert result.max_shard_size == 2
        assert result.shards == [["p", "q"], ["r", "s"]]
        assert result.shard_loads == [5, 2]

    def test_every_name_assigned_exactly_once(self) -> None:
        names = [f"n{i}" for i in range(23)]
        features = {n: [f"f{i % 5}", f"g{i % 3}"] for i, n in enumerate(names)}
        result = assign_shards(names, features, 4)
        flat = [m for shard in result.shards for m in shard]
        assert sorted(flat) == sorted(names)
        assert len(flat) == len(set(flat))
        assert all(len(shard) <= result.max_shard_size for shard in result.shards)

    def test_shard_members_are_sorted(self) -> None:
        features = {"zz": ["a", "b"], "aa": ["a"], "mm": ["a"]}
        result = assign_shards(list(features), features, 1)
        assert result.shards == [["aa", "mm", "zz"]]

    def test_deterministic_regardless_of_input_order(self) -> None:
        names = [f"n{i}" for i in range(12)]
        features = {n: [f"f{i % 4}"] * (1 + i % 3) for i, n in enumerate(names)}
        forward = assign_shards(names, features, 3)
        backward = assign_shards(list(reversed(names)), features, 3)
        assert forward.shards == backward.shards
        assert forward.shard_loads == backward.shard_loads

    def test_sorted_dependents_follow_placement_order(self) -> None:
        result = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2)
        assert [d.name for d in result.sorted_dependents] == ["p", "q", "r", "s"]
        assert [d.feature_count for d in result.sorted_dependents] == [3, 2, 1, 1]

    def test_weight_is_at_least_one(self) -> None:
        result = assign_shards(["a"], {"a": []}, 1)
        assert result.sorted_dependents[0].weight == 1


class TestAssignmentTrace:
    def test_no_steps_unless_requested(self) -> None:
        assert assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2).steps == []

    def test_step_per_placement(self) -> None:
        result = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True)
        assert [s.step for s in result.steps] == [1, 2, 3, 4]
        assert [s.formula for s in result.steps] == ["p", "q", "r", "s"]
        assert [s.selected_shard_index for s in result.steps] == [1, 1, 2, 2]

    def test_forced_by_capacity(self) -> None:
        steps = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True).steps
        r_step = steps[2]
        assert r_step.capacity_constrained is True
        assert r_step.forced_by_capacity is True
        assert r_step.capacity_lifted is False
        assert [c.eligible for c in r_step.candidates] == [False, True]
        assert [c.overlap for c in r_step.candidates] == [1, 0]

    def test_constrained_but_not_forced(self) -> None:
        steps = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True).steps
        s_step = steps[3]
        assert s_step.capacity_constrained is True
        assert s_step.forced_by_capacity is False

    def test_unconstrained_steps(self) -> None:
        steps = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True).steps
        assert steps[0].capacity_constrained is False
        assert steps[1].capacity_constrained is False

    def test_loads_and_sizes_snapshots(self) -> None:
        steps = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True).steps
        q_step = steps[1]
        assert q_step.loads_before == (3, 0)
        assert q_step.loads_after == (5, 0)
        assert q_step.sizes_before == (1, 0)
        assert q_step.sizes_after == (2, 0)

    def test_step_to_dict(self) -> None:
        steps = assign_shards(list(CAPACITY_CASE), CAPACITY_CASE, 2, include_trace=True).steps
        data = steps[2].to_dict()
        assert data["formula"] == "r"
        assert data["weight"] == 1
        assert data["max_shard_size"] == 2
        assert data["loads_before"] == [5, 0]
        assert data["candidates"][0] == {
            "shard_index": 1,
            "overlap": 1,
            "feature_load_before": 5,
            "member_count_before": 2,
            "eligible": False,
        }
