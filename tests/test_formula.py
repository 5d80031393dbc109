"""Tests for brewshard.models.formula."""

from __future__ import annotations

import pytest

from brewshard.models.formula import (
    Formula,
    MissingFieldError,
    normalize_formula,
    normalize_formulae,
)


class TestNormalizeFormula:
    def test_maps_dependency_fields(self) -> None:
        formula = normalize_formula(
            {
                "name": "python@3.12",
                "dependencies": ["openssl@3", "sqlite"],
                "build_dependencies": ["pkgconf"],
                "test_dependencies": ["pytest"],
            }
        )
        assert formula.name == "python@3.12"
        assert formula.runtime_deps == frozenset({"openssl@3", "sqlite"})
        assert formula.build_deps == frozenset({"pkgconf"})
        assert formula.test_deps == frozenset({"pytest"})

    def test_absent_and_null_fields_default_to_empty(self) -> None:
        formula = normalize_formula({"name": "zlib", "build_dependencies": None})
        assert formula.runtime_deps == frozenset()
        assert formula.build_deps == frozenset()
        assert formula.test_deps == frozenset()
        assert formula.bottle_tags == frozenset()

    def test_bottle_tags_from_stable_files(self) -> None:
        raw = {
            "name": "zlib",
            "bottle": {"stable": {"files": {"arm64_sonoma": {}, "x86_64_linux": {}}}},
        }
        assert normalize_formula(raw).bottle_tags == frozenset({"arm64_sonoma", "x86_64_linux"})

    @pytest.mark.parametrize(
        "bottle",
        [None, {}, {"stable": None}, {"stable": {}}, {"stable": {"files": None}}],
    )
    def test_partial_bottle_structure_yields_no_tags(self, bottle: object) -> None:
        assert normalize_formula({"name": "x", "bottle": bottle}).bottle_tags == frozenset()

    def test_missing_name_raises(self) -> None:
        with pytest.raises(MissingFieldError, match="missing required field 'name'"):
            normalize_formula({"dependencies": ["zlib"]})

    def test_null_name_raises(self) -> None:
        with pytest.raises(MissingFieldError):
            normalize_formula({"name": None})

    def test_non_mapping_record_raises(self) -> None:
        with pytest.raises(MissingFieldError):
            normalize_formula(["zlib"])  # type: ignore[arg-type]

    def test_missing_field_error_is_value_error(self) -> None:
        assert issubclass(MissingFieldError, ValueError)

    def test_snapshot_fields(self) -> None:
        formula = normalize_formula(
            {"name": "foo", "full_name": "org/tap/foo", "deprecated": True}
        )
        assert formula.full_name == "org/tap/foo"
        assert formula.deprecated is True
        assert formula.disabled is False

    def test_full_name_defaults_to_name(self) -> None:
        assert normalize_formula({"name": "foo"}).full_name == "foo"

    def test_formula_is_immutable(self) -> None:
        formula = normalize_formula({"name": "zlib"})
        with pytest.raises(AttributeError):
            formula.name = "other"  # type: ignore[misc]


class TestNormalizeFormulae:
    def test_preserves_order(self) -> None:
        result = normalize_formulae([{"name": "b"}, {"name": "a"}])
        assert [f.name for f in result] == ["b", "a"]

    def test_error_names_record_index(self) -> None:
        with pytest.raises(MissingFieldError, match="record 1") as exc_info:
            normalize_formulae([{"name": "ok"}, {"full_name": "broken"}])
        assert exc_info.value.index == 1
        assert exc_info.value.field_name == "name"


class TestFormula:
    def test_forward_deps_respects_flags(self) -> None:
        formula = Formula(
            name="f",
            runtime_deps=frozenset({"r"}),
            build_deps=frozenset({"b"}),
            test_deps=frozenset({"t"}),
        )
        assert formula.forward_deps(include_build=False, include_test=False) == {"r"}
        assert formula.forward_deps(include_build=True, include_test=False) == {"r", "b"}
        assert formula.forward_deps(include_build=True, include_test=True) == {"r", "b", "t"}

    def test_to_dict_sorts_lists(self) -> None:
        formula = Formula(name="f", runtime_deps=frozenset({"z", "a"}))
        data = formula.to_dict()
        assert data["runtime_deps"] == ["a", "z"]
        assert data["full_name"] == "f"
