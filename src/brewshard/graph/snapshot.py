"""Graph snapshot export: write normalized formulae and reverse indices to JSON."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

    from brewshard.graph.dependency_graph import DependencyGraph

logger = logging.getLogger(__name__)


def build_snapshot(
    graph: DependencyGraph,
    *,
    source: str,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Convert *graph* to a JSON-serializable snapshot payload.

    Formulae are listed in name order so snapshots of the same feed are
    byte-identical apart from the timestamp.
    """
    timestamp = (generated_at or datetime.now(UTC)).isoformat()
    formulae = [graph.by_name[name].to_dict() for name in sorted(graph.by_name)]
    return {
        "generated_at": timestamp,
        "source": source,
        "formula_count": len(formulae),
        "formulae": formulae,
        "reverse_runtime": dict(sorted(graph.reverse_runtime.items())),
        "reverse_build": dict(sorted(graph.reverse_build.items())),
        "reverse_test": dict(sorted(graph.reverse_test.items())),
    }


def write_snapshot(
    graph: DependencyGraph,
    output_path: Path,
    *,
    source: str,
    generated_at: datetime | None = None,
) -> Path:
    """Write the graph snapshot to *output_path*, creating parent directories."""
    payload = build_snapshot(graph, source=source, generated_at=generated_at)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload), encoding="utf-8")
    logger.info(
        "Graph snapshot written to %s (%d formulae)", output_path, payload["formula_count"]
    )
    return output_path
