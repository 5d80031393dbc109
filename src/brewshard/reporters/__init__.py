"""Output reporters for simulation results."""

from brewshard.reporters.json_reporter import JSONReporter
from brewshard.reporters.terminal import CLIReporter, reporter

__all__ = ["CLIReporter", "JSONReporter", "reporter"]
