"""Dependency graph construction, dependent discovery and feature resolution."""

from brewshard.graph.dependency_graph import DependencyGraph, build_graph
from brewshard.graph.discovery import discover_dependents, neighbors_for
from brewshard.graph.features import FeatureMemo, FeatureResolver, feature_set_for
from brewshard.graph.snapshot import build_snapshot, write_snapshot

__all__ = [
    "DependencyGraph",
    "FeatureMemo",
    "FeatureResolver",
    "build_graph",
    "build_snapshot",
    "discover_dependents",
    "feature_set_for",
    "neighbors_for",
    "write_snapshot",
]
