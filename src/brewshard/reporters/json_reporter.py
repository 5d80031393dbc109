"""JSON reporter that serializes simulation payloads.

Produces the machine-readable document consumed by visualization and CI
tooling: either the full simulation payload or a single-field error.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from brewshard.sharding.simulator import SimulationError, SimulationResult

logger = logging.getLogger(__name__)


class JSONReporter:
    """Render simulation outcomes as JSON."""

    def __init__(self, *, indent: int | None = 2) -> None:
        self.indent = indent

    def generate_string(self, outcome: SimulationResult | SimulationError) -> str:
        """Return the JSON document for *outcome*."""
        return json.dumps(outcome.to_dict(), indent=self.indent, ensure_ascii=False)

    def generate(self, outcome: SimulationResult | SimulationError, output_path: Path) -> Path:
        """Write the JSON document for *outcome* to *output_path*.

        Returns:
            The path to the generated JSON file.
        """
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.generate_string(outcome) + "\n", encoding="utf-8")
        logger.info("JSON report written to %s", output_path)
        return output_path
