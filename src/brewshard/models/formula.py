"""Formula model and normalization of raw Homebrew API records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable


class MissingFieldError(ValueError):
    """Raised when a raw formula record lacks a required field."""

    def __init__(self, field_name: str, index: int | None = None) -> None:
        self.field_name = field_name
        self.index = index
        where = f"record {index}" if index is not None else "formula record"
        super().__init__(f"{where} is missing required field '{field_name}'")


@dataclass(frozen=True)
class Formula:
    """A normalized formula with its declared dependencies."""

    name: str
    """Unique formula name (e.g. ``openssl@3``)."""

    runtime_deps: frozenset[str] = field(default_factory=frozenset)
    """Names declared under ``dependencies``."""

    build_deps: frozenset[str] = field(default_factory=frozenset)
    """Names declared under ``build_dependencies``."""

    test_deps: frozenset[str] = field(default_factory=frozenset)
    """Names declared under ``test_dependencies``."""

    bottle_tags: frozenset[str] = field(default_factory=frozenset)
    """Platform tags with a stable bottle. Empty means compatible with every runner."""

    full_name: str = ""
    """Tap-qualified name; falls back to ``name`` when the feed omits it."""

    deprecated: bool = False
    """Whether upstream marks the formula as deprecated."""

    disabled: bool = False
    """Whether upstream marks the formula as disabled."""

    def forward_deps(self, *, include_build: bool, include_test: bool) -> set[str]:
        """Return the dependency names followed for the given edge kinds."""
        deps = set(self.runtime_deps)
        if include_build:
            deps.update(self.build_deps)
        if include_test:
            deps.update(self.test_deps)
        return deps

    def to_dict(self) -> dict[str, object]:
        """Serialize to JSON-compatible dict with sorted name lists."""
        return {
            "name": self.name,
            "full_name": self.full_name or self.name,
            "runtime_deps": sorted(self.runtime_deps),
            "build_deps": sorted(self.build_deps),
            "test_deps": sorted(self.test_deps),
            "bottle_tags": sorted(self.bottle_tags),
            "deprecated": self.deprecated,
            "disabled": self.disabled,
        }


def _name_list(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    return frozenset(str(item) for item in value)


def _bottle_tags(raw: Mapping[str, Any]) -> frozenset[str]:
    bottle = raw.get("bottle")
    if not isinstance(bottle, Mapping):
        return frozenset()
    stable = bottle.get("stable")
    if not isinstance(stable, Mapping):
        return frozenset()
    files = stable.get("files")
    if not isinstance(files, Mapping):
        return frozenset()
    return frozenset(str(tag) for tag in files)


def normalize_formula(raw: Mapping[str, Any], *, index: int | None = None) -> Formula:
    """Convert one raw API record into a ``Formula``.

    Args:
        raw: Record as decoded from the upstream ``formula.json`` feed.
        index: Position of the record in its feed, used in error messages.

    Raises:
        MissingFieldError: If the record has no usable ``name``.
    """
    if not isinstance(raw, Mapping):
        raise MissingFieldError("name", index)
    name = raw.get("name")
    if not name:
        raise MissingFieldError("name", index)

    name = str(name)
    return Formula(
        name=name,
        runtime_deps=_name_list(raw.get("dependencies")),
        build_deps=_name_list(raw.get("build_dependencies")),
        test_deps=_name_list(raw.get("test_dependencies")),
        bottle_tags=_bottle_tags(raw),
        full_name=str(raw.get("full_name") or name),
        deprecated=bool(raw.get("deprecated")),
        disabled=bool(raw.get("disabled")),
    )


def normalize_formulae(records: Iterable[Mapping[str, Any]]) -> list[Formula]:
    """Normalize a sequence of raw records, preserving their order."""
    return [normalize_formula(raw, index=i) for i, raw in enumerate(records)]
