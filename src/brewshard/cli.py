"""brewshard command-line interface."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, TypedDict, Unpack

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from brewshard import __version__
from brewshard.config import BrewshardConfig, load_config, validate_config
from brewshard.graph.dependency_graph import DependencyGraph
from brewshard.graph.snapshot import write_snapshot
from brewshard.models.formula import MissingFieldError
from brewshard.reporters.json_reporter import JSONReporter
from brewshard.reporters.terminal import reporter
from brewshard.sharding.simulator import SimulationError, run_simulation
from brewshard.utils.cache import JsonFileCache
from brewshard.utils.formula_client import FormulaFetchError, load_formulae

logger = logging.getLogger(__name__)
console = Console()

_PATH_OPTION_KWARGS: dict[str, Any] = {
    "default": ".",
    "type": click.Path(exists=True, file_okay=False, resolve_path=True),
    "help": "Project root directory (where .brewshard.yml lives).",
}


class _SimulateKwargs(TypedDict):
    """Keyword arguments for the simulate CLI command."""

    path: str
    formula: str | None
    max_runners: int | None
    min_per_runner: int | None
    recursive: bool | None
    include_build: bool | None
    include_test: bool | None
    runner_tag: str | None
    core_compat: bool | None
    data_file: str | None
    refresh: bool
    as_json: bool
    output_path: str | None


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _read_records_file(data_file: str) -> list[dict[str, Any]]:
    try:
        parsed = json.loads(Path(data_file).read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        reporter.print_error(f"Failed to read formula data from {data_file}: {e}")
        raise click.Abort from e
    if not isinstance(parsed, list):
        reporter.print_error(f"{data_file} must contain a JSON array of formula records")
        raise click.Abort
    return parsed


def _load_graph(
    config: BrewshardConfig, data_file: str | None, *, refresh: bool
) -> DependencyGraph:
    """Load raw records (local file or cached feed) and build the graph."""
    if data_file:
        records = _read_records_file(data_file)
    else:
        try:
            records = load_formulae(
                config.resolved_cache_path,
                source_url=config.source.url,
                ttl_seconds=config.source.cache_ttl_seconds,
                refresh=refresh,
                timeout_seconds=config.source.timeout_seconds,
            )
        except FormulaFetchError as e:
            reporter.print_error(str(e))
            raise click.Abort from e
        except OSError as e:
            reporter.print_error(
                f"Failed to write formula cache {config.resolved_cache_path}: {e}"
            )
            raise click.Abort from e

    try:
        return DependencyGraph.from_records(records)
    except MissingFieldError as e:
        reporter.print_error(f"Invalid formula data: {e}")
        raise click.Abort from e


def _load_config_or_abort(path: str) -> BrewshardConfig:
    try:
        return load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging on stderr.")
@click.version_option(version=__version__, prog_name="brewshard")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """brewshard: simulate sharding a formula's dependents across test runners."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


@cli.command()
@click.option("--path", **_PATH_OPTION_KWARGS)
@click.option("--formula", default=None, help="Target formula (default: from config).")
@click.option("--max-runners", type=int, default=None, help="Maximum number of shards.")
@click.option(
    "--min-per-runner",
    type=int,
    default=None,
    help="Dependents per runner before another shard is added.",
)
@click.option(
    "--recursive",
    type=bool,
    default=None,
    help="true: transitive dependents; false: direct dependents only.",
)
@click.option("--include-build", type=bool, default=None, help="Follow build dependency edges.")
@click.option("--include-test", type=bool, default=None, help="Follow test dependency edges.")
@click.option("--runner-tag", default=None, help="Runner bottle tag ('all' disables filtering).")
@click.option(
    "--core-compat",
    type=bool,
    default=None,
    help="Model every shard re-running the full dependent set.",
)
@click.option(
    "--data",
    "data_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Read formula records from a local JSON file instead of the API.",
)
@click.option("--refresh", is_flag=True, help="Ignore the cached feed and download it again.")
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of tables.")
@click.option(
    "--output",
    "output_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Also write the JSON payload to this file.",
)
def simulate(**kwargs: Unpack[_SimulateKwargs]) -> None:
    """Simulate sharding the dependents of a formula.

    Example:
      brewshard simulate --formula zlib --max-runners 3 --runner-tag all
    """
    config = _load_config_or_abort(kwargs["path"])
    options = config.simulation.to_options(
        formula=kwargs["formula"],
        max_runners=kwargs["max_runners"],
        min_per_runner=kwargs["min_per_runner"],
        recursive=kwargs["recursive"],
        include_build=kwargs["include_build"],
        include_test=kwargs["include_test"],
        runner_tag=kwargs["runner_tag"],
        core_compat=kwargs["core_compat"],
    )
    graph = _load_graph(config, kwargs["data_file"], refresh=kwargs["refresh"])
    outcome = run_simulation(graph, options)

    json_reporter = JSONReporter()
    output_path = kwargs["output_path"]
    if output_path:
        json_reporter.generate(outcome, Path(output_path))

    if kwargs["as_json"]:
        click.echo(json_reporter.generate_string(outcome))
    elif isinstance(outcome, SimulationError):
        reporter.print_error(outcome.error)
    else:
        reporter.print_simulation(outcome)

    if isinstance(outcome, SimulationError):
        raise SystemExit(1)


@cli.group("graph")
def graph_group() -> None:
    """Inspect and export the formula dependency graph."""


@graph_group.command("export")
@click.option("--path", **_PATH_OPTION_KWARGS)
@click.option(
    "--output",
    "output_path",
    default="formula-graph.json",
    show_default=True,
    type=click.Path(dir_okay=False),
    help="Snapshot file to write.",
)
@click.option(
    "--data",
    "data_file",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Read formula records from a local JSON file instead of the API.",
)
@click.option("--refresh", is_flag=True, help="Ignore the cached feed and download it again.")
def graph_export(path: str, output_path: str, data_file: str | None, *, refresh: bool) -> None:
    """Write normalized formulae and reverse-dependency indices to JSON."""
    config = _load_config_or_abort(path)
    graph = _load_graph(config, data_file, refresh=refresh)
    source = data_file or config.source.url
    written = write_snapshot(graph, Path(output_path), source=source)
    reporter.print_success(f"Wrote {written} ({len(graph)} formulae)")


@cli.group("cache")
def cache_group() -> None:
    """Manage the cached formula feed."""


@cache_group.command("clear")
@click.option("--path", **_PATH_OPTION_KWARGS)
def cache_clear(path: str) -> None:
    """Delete the cached formula feed."""
    config = _load_config_or_abort(path)
    cache_path = config.resolved_cache_path
    if JsonFileCache(cache_path).clear():
        reporter.print_success(f"Removed {cache_path}")
    else:
        reporter.print_info(f"No cache at {cache_path}")


@cli.group("config")
def config_group() -> None:
    """Inspect `.brewshard.yml` configuration."""


@config_group.command("show")
@click.option("--path", **_PATH_OPTION_KWARGS)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
def config_show(path: str, *, as_json: bool) -> None:
    """Display the resolved configuration."""
    config = _load_config_or_abort(path)
    config_dict = asdict(config)
    config_dict.pop("raw", None)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option("--path", **_PATH_OPTION_KWARGS)
def config_validate(path: str) -> None:
    """Validate `.brewshard.yml` values.

    Out-of-range runner bounds are reported even though simulations clamp
    them to 1.
    """
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    raise click.Abort
