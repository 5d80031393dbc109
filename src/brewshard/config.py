"""Configuration parsing from ``.brewshard.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from brewshard.sharding.simulator import (
    DEFAULT_FORMULA,
    DEFAULT_MAX_RUNNERS,
    DEFAULT_MIN_PER_RUNNER,
    DEFAULT_RUNNER_TAG,
    SimulationOptions,
)
from brewshard.utils.formula_client import DEFAULT_CACHE_TTL_SECONDS, DEFAULT_SOURCE_URL

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".brewshard.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TRUE_VALUES = {True, "true", "1", "yes"}


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    if value is None or isinstance(value, bool | int):
        return value in _TRUE_VALUES
    msg = f"expected a boolean, got {type(value).__name__}"
    raise ValueError(msg)


@dataclass
class SimulationDefaults:
    """Default simulation parameters; CLI flags override them."""

    formula: str = DEFAULT_FORMULA
    """Target formula whose dependents are sharded."""

    max_runners: int = DEFAULT_MAX_RUNNERS
    """Maximum number of shards."""

    min_per_runner: int = DEFAULT_MIN_PER_RUNNER
    """Dependents each runner must receive before another shard is opened."""

    recursive: bool = True
    """Discover transitive dependents instead of direct ones only."""

    include_build: bool = True
    """Follow build dependency edges."""

    include_test: bool = True
    """Follow test dependency edges."""

    runner_tag: str = DEFAULT_RUNNER_TAG
    """Bottle tag provided by the simulated runners (``all`` = any)."""

    core_compat: bool = False
    """Assume every shard re-runs the full dependent set."""

    def to_options(self, **overrides: Any) -> SimulationOptions:
        """Build ``SimulationOptions``, applying non-``None`` *overrides*."""
        values: dict[str, Any] = {
            "formula": self.formula,
            "max_runners": self.max_runners,
            "min_per_runner": self.min_per_runner,
            "recursive": self.recursive,
            "include_build": self.include_build,
            "include_test": self.include_test,
            "runner_tag": self.runner_tag,
            "core_compat": self.core_compat,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return SimulationOptions(**values)


@dataclass
class SourceConfig:
    """Upstream metadata feed and cache configuration."""

    url: str = DEFAULT_SOURCE_URL
    """Formula feed URL."""

    cache_path: str = ".brewshard/formula-cache.json"
    """Cache file, relative to the project root unless absolute."""

    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    """How long a cached feed is reused (0 = forever)."""

    timeout_seconds: float = 60.0
    """HTTP timeout for the feed download."""


@dataclass
class BrewshardConfig:
    """Complete brewshard configuration from ``.brewshard.yml``."""

    root: str
    """Project root directory."""

    simulation: SimulationDefaults = field(default_factory=SimulationDefaults)
    """Simulation defaults."""

    source: SourceConfig = field(default_factory=SourceConfig)
    """Metadata source configuration."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    @property
    def resolved_cache_path(self) -> Path:
        path = Path(self.source.cache_path)
        return path if path.is_absolute() else Path(self.root) / path


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _setting(section: dict[str, Any], key: str, default: Any, env_var: str | None = None) -> Any:
    """Return the file value, else the environment variable, else *default*.

    A key left empty in YAML (``max_runners:``) loads as ``None`` and counts
    as unset, as does an empty environment variable.
    """
    value = section.get(key)
    if value is None and env_var:
        value = os.environ.get(env_var) or None
    return default if value is None else value


def _coerce(name: str, value: Any, convert: Callable[[Any], Any]) -> Any:
    """Apply *convert*, reporting failures as ``ValueError`` naming the key."""
    try:
        return convert(value)
    except (TypeError, ValueError) as e:
        msg = f"{name} has an invalid value {value!r}: {e}"
        raise ValueError(msg) from e


def _parse_simulation_config(raw: dict[str, Any]) -> SimulationDefaults:
    """Parse simulation defaults from raw YAML and ``BREWSHARD_*`` variables."""
    sim = _section(raw, "simulation")

    def _get(key: str, default: Any, convert: Callable[[Any], Any]) -> Any:
        value = _setting(sim, key, default, f"BREWSHARD_{key.upper()}")
        return _coerce(f"simulation.{key}", value, convert)

    return SimulationDefaults(
        formula=_get("formula", DEFAULT_FORMULA, str),
        max_runners=_get("max_runners", DEFAULT_MAX_RUNNERS, int),
        min_per_runner=_get("min_per_runner", DEFAULT_MIN_PER_RUNNER, int),
        recursive=_get("recursive", True, _as_bool),
        include_build=_get("include_build", True, _as_bool),
        include_test=_get("include_test", True, _as_bool),
        runner_tag=_get("runner_tag", DEFAULT_RUNNER_TAG, str),
        core_compat=_get("core_compat", False, _as_bool),
    )


def _parse_source_config(raw: dict[str, Any]) -> SourceConfig:
    """Parse source/cache configuration from raw YAML."""
    source = _section(raw, "source")
    defaults = SourceConfig()

    def _get(key: str, convert: Callable[[Any], Any], env_var: str | None = None) -> Any:
        value = _setting(source, key, getattr(defaults, key), env_var)
        return _coerce(f"source.{key}", value, convert)

    return SourceConfig(
        url=_get("url", str, "BREWSHARD_SOURCE_URL"),
        cache_path=_get("cache_path", str),
        cache_ttl_seconds=_get("cache_ttl_seconds", int),
        timeout_seconds=_get("timeout_seconds", float),
    )


def load_config(root: str | Path) -> BrewshardConfig:
    """Load and parse ``.brewshard.yml`` from *root*.

    Falls back to defaults and environment variables when the file is
    missing or incomplete.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        parsed = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)

    return BrewshardConfig(
        root=str(root_path),
        simulation=_parse_simulation_config(raw),
        source=_parse_source_config(raw),
        raw=raw,
    )


def validate_config(config: BrewshardConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Runner bounds below 1 are reported here even though a simulation run
    clamps them instead of failing.
    """
    errors: list[str] = []
    sim = config.simulation

    if not sim.formula:
        errors.append("simulation.formula must not be empty")
    if sim.max_runners < 1:
        errors.append(
            f"simulation.max_runners must be at least 1 (got: {sim.max_runners}; clamped to 1)"
        )
    if sim.min_per_runner < 1:
        errors.append(
            f"simulation.min_per_runner must be at least 1 "
            f"(got: {sim.min_per_runner}; clamped to 1)"
        )
    if not sim.runner_tag:
        errors.append("simulation.runner_tag must not be empty (use 'all' for any runner)")

    if not config.source.url.startswith(("http://", "https://")):
        errors.append(f"source.url must be an http(s) URL (got: {config.source.url})")
    if config.source.cache_ttl_seconds < 0:
        errors.append(
            f"source.cache_ttl_seconds must be non-negative "
            f"(got: {config.source.cache_ttl_seconds})"
        )
    if config.source.timeout_seconds <= 0:
        errors.append(
            f"source.timeout_seconds must be positive (got: {config.source.timeout_seconds})"
        )

    return errors
