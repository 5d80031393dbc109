"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from brewshard.sharding.assigner import AssignmentStep
    from brewshard.sharding.simulator import SimulationResult

console = Console()

# Display limits for truncation
_MAX_MEMBERS_DISPLAY = 8
_MAX_FILTERED_DISPLAY = 10


def _truncate_names(names: list[str], limit: int) -> str:
    if len(names) <= limit:
        return ", ".join(names)
    return f"{', '.join(names[:limit])}, … (+{len(names) - limit} more)"


class CLIReporter:
    """Rich terminal output for simulation results."""

    def __init__(self, output: Console | None = None) -> None:
        """Initialize the CLI reporter."""
        self.console = output or console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    # ── Simulation output ──────────────────────────────────────────────

    def print_simulation(self, result: SimulationResult) -> None:
        """Print the summary panel, shard table and, if present, the trace."""
        opts = result.options
        mode = "transitive" if opts.recursive else "direct"
        edges = ["runtime"]
        if opts.include_build:
            edges.append("build")
        if opts.include_test:
            edges.append("test")

        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{result.formula}[/bold white]  "
                f"[dim]{mode} dependents via {'/'.join(edges)} edges, "
                f"runner tag {result.runner_tag}[/dim]",
                border_style="cyan",
                padding=(0, 2),
            )
        )
        self.console.print(
            f"  Discovered [bold]{result.discovered_count}[/bold]  "
            f"compatible [bold green]{result.compatible_count}[/bold green]  "
            f"filtered [bold yellow]{result.filtered_count}[/bold yellow]  "
            f"shards [bold cyan]{result.shard_count}[/bold cyan]"
        )

        self.console.print(self._shard_table(result))

        dup_style = "red" if result.duplicate_work_estimate else "green"
        self.console.print(
            f"  Tests executed (estimate): [bold]{result.total_tests_executed_estimate}[/bold]  "
            f"duplicate work: [bold {dup_style}]{result.duplicate_work_estimate}"
            f"[/bold {dup_style}]"
        )
        if opts.core_compat and result.shard_count > 1:
            self.print_warning("core-compat mode: every shard re-runs the full dependent set")

        if result.filtered_dependents:
            self.print_info(
                "Filtered for runner tag: "
                + _truncate_names(result.filtered_dependents, _MAX_FILTERED_DISPLAY)
            )

        if result.assignment is not None and result.assignment.steps:
            self.print_assignment_trace(result.assignment.steps)

    def _shard_table(self, result: SimulationResult) -> Table:
        table = Table(title="Shards", show_lines=False)
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Members", justify="right")
        table.add_column("Feature load", justify="right")
        table.add_column("Dependents")
        for shard in result.shards:
            table.add_row(
                str(shard.shard_index),
                str(shard.member_count),
                str(shard.feature_load),
                _truncate_names(shard.members, _MAX_MEMBERS_DISPLAY) or "[dim]-[/dim]",
            )
        return table

    def print_assignment_trace(self, steps: list[AssignmentStep]) -> None:
        """Print one row per placement decision."""
        table = Table(title="Assignment trace")
        table.add_column("Step", justify="right")
        table.add_column("Formula", style="bold")
        table.add_column("Features", justify="right")
        table.add_column("Shard", justify="right", style="cyan")
        table.add_column("Overlaps")
        table.add_column("Capacity")
        for step in steps:
            overlaps = " ".join(
                f"{c.shard_index}:{c.overlap}" + ("" if c.eligible else "✗")
                for c in step.candidates
            )
            if step.forced_by_capacity:
                capacity = "[red]forced[/red]"
            elif step.capacity_lifted:
                capacity = "[yellow]lifted[/yellow]"
            elif step.capacity_constrained:
                capacity = "[yellow]constrained[/yellow]"
            else:
                capacity = ""
            table.add_row(
                str(step.step),
                step.formula,
                str(step.feature_count),
                str(step.selected_shard_index),
                overlaps,
                capacity,
            )
        self.console.print(table)


reporter = CLIReporter()
