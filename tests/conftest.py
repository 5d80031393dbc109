"""Shared fixtures: a small formula feed shaped like the Homebrew API."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from brewshard.graph.dependency_graph import DependencyGraph

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def bottle(*tags: str) -> dict[str, Any]:
    """Build the nested ``bottle.stable.files`` structure for *tags*."""
    files = {tag: {"url": f"https://example.invalid/{tag}"} for tag in tags}
    return {"stable": {"files": files}}


SAMPLE_RECORDS: list[dict[str, Any]] = [
    {"name": "zlib", "bottle": bottle("arm64_sonoma", "x86_64_linux")},
    {"name": "ca-certificates"},
    {"name": "openssl@3", "dependencies": ["ca-certificates"]},
    {"name": "readline"},
    {"name": "sqlite", "dependencies": ["readline", "zlib"]},
    {"name": "pkgconf"},
    {"name": "libpng", "dependencies": ["zlib"], "bottle": bottle("x86_64_linux")},
    {"name": "freetype", "dependencies": ["libpng"], "build_dependencies": ["pkgconf"]},
    {"name": "curl", "dependencies": ["openssl@3", "zlib"], "test_dependencies": None},
    {
        "name": "python@3.12",
        "dependencies": ["openssl@3", "sqlite", "zlib"],
        "build_dependencies": ["pkgconf"],
    },
    {"name": "cmake", "build_dependencies": ["zlib"]},
    {"name": "zstd-tests", "test_dependencies": ["zlib"]},
    {"name": "mac-only", "dependencies": ["zlib"], "bottle": bottle("arm64_sonoma")},
    {"name": "universal", "dependencies": ["libpng"], "bottle": bottle("all")},
]


def fan_out_records(count: int, target: str = "base") -> list[dict[str, Any]]:
    """A *target* formula with *count* direct dependents ``dep00``, ``dep01``, ..."""
    records: list[dict[str, Any]] = [{"name": target}]
    records.extend(
        {"name": f"dep{i:02d}", "dependencies": [target]} for i in range(count)
    )
    return records


_ENV_VARS = (
    "BREWSHARD_FORMULA",
    "BREWSHARD_MAX_RUNNERS",
    "BREWSHARD_MIN_PER_RUNNER",
    "BREWSHARD_RECURSIVE",
    "BREWSHARD_INCLUDE_BUILD",
    "BREWSHARD_INCLUDE_TEST",
    "BREWSHARD_RUNNER_TAG",
    "BREWSHARD_CORE_COMPAT",
    "BREWSHARD_SOURCE_URL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's BREWSHARD_* variables out of every test."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def sample_records() -> list[dict[str, Any]]:
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture()
def sample_graph(sample_records: list[dict[str, Any]]) -> DependencyGraph:
    return DependencyGraph.from_records(sample_records)


@pytest.fixture()
def fan_out_graph() -> Callable[[int], DependencyGraph]:
    """Factory for a graph where ``base`` has the requested number of dependents."""

    def _build(count: int) -> DependencyGraph:
        return DependencyGraph.from_records(fan_out_records(count))

    return _build


@pytest.fixture()
def sample_data_file(tmp_path: Path, sample_records: list[dict[str, Any]]) -> Path:
    path = tmp_path / "formulae.json"
    path.write_text(json.dumps(sample_records), encoding="utf-8")
    return path
