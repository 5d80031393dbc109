"""Tests for the JSON reporter."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from brewshard.reporters.json_reporter import JSONReporter
from brewshard.sharding.simulator import (
    SimulationError,
    SimulationOptions,
    SimulationResult,
    run_simulation,
)

if TYPE_CHECKING:
    from pathlib import Path

    from brewshard.graph.dependency_graph import DependencyGraph


def _zlib_outcome(graph: DependencyGraph) -> SimulationResult | SimulationError:
    options = SimulationOptions(formula="zlib", min_per_runner=3)
    return run_simulation(graph, options, generated_at=datetime(2024, 5, 6, tzinfo=UTC))


class TestJSONReporter:
    def test_error_payload(self) -> None:
        text = JSONReporter().generate_string(SimulationError(error="Formula 'x' not found"))
        assert json.loads(text) == {"error": "Formula 'x' not found"}

    def test_result_payload(self, sample_graph: DependencyGraph) -> None:
        outcome = _zlib_outcome(sample_graph)
        data = json.loads(JSONReporter().generate_string(outcome))
        assert data["formula"] == "zlib"
        assert data["shard_count"] == 2
        assert data["generated_at"] == "2024-05-06T00:00:00+00:00"
        assert "assignment_explanation" in data

    def test_indent_none_is_compact(self) -> None:
        text = JSONReporter(indent=None).generate_string(SimulationError(error="e"))
        assert "\n" not in text

    def test_generate_writes_file(self, tmp_path: Path, sample_graph: DependencyGraph) -> None:
        output = tmp_path / "reports" / "simulation.json"
        outcome = _zlib_outcome(sample_graph)
        written = JSONReporter().generate(outcome, output)
        assert written == output
        content = output.read_text(encoding="utf-8")
        assert content.endswith("\n")
        assert json.loads(content)["compatible_dependents_count"] == 8
