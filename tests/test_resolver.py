"""Tests for dependency constraint parsing and load-order resolution."""

import random

import pytest

from termkit.plugins.errors import (
    CyclicDependency,
    DependencyUnresolved,
    MalformedConstraint,
    MissingDependency,
    VersionConflict,
)
from termkit.plugins.manifest import coerce_descriptor
from termkit.plugins.resolver import DependencyResolver, parse_constraint


def descriptors(*specs):
    """Build {id: descriptor} from (id, version, [deps]) tuples."""
    result = {}
    for plugin_id, version, deps in specs:
        result[plugin_id] = coerce_descriptor({"id": plugin_id, "version": version, "dependencies": deps})
    return result


class TestParseConstraint:
    """Tests for the 'id@versionConstraint' grammar."""

    def test_bare_version_means_exact_match(self):
        """A bare version pins that exact version."""
        c = parse_constraint("base_utility@1.0.0")
        assert c.plugin_id == "base_utility"
        assert c.clauses == (("==", "1.0.0"),)
        assert c.is_satisfied_by("1.0.0")
        assert not c.is_satisfied_by("1.0.1")
        assert not c.is_satisfied_by("1.0.00")

    def test_bare_id_accepts_any_version(self):
        c = parse_constraint("base_utility")
        assert c.clauses == ()
        assert c.requirement == "any version"
        assert c.is_satisfied_by("0.0.1")
        assert c.is_satisfied_by("9.9.9")

    def test_range_operators(self):
        """Comma-joined clauses must all hold."""
        c = parse_constraint("core@>=1.0.0,<2.0.0")
        assert c.is_satisfied_by("1.0.0")
        assert c.is_satisfied_by("1.9.3")
        assert not c.is_satisfied_by("2.0.0")
        assert not c.is_satisfied_by("0.9.9")

    def test_compatible_release_and_exclusion(self):
        assert parse_constraint("core@~=1.2.0").is_satisfied_by("1.2.7")
        assert not parse_constraint("core@~=1.2.0").is_satisfied_by("1.3.0")
        assert not parse_constraint("core@!=1.0.0").is_satisfied_by("1.0.0")
        assert parse_constraint("core@!=1.0.0").is_satisfied_by("1.0.1")

    @pytest.mark.parametrize("text", ["core@", "@1.0.0", "core@^1.0.0", "core@>=abc", "bad id@1.0.0", "core@1.0.00"])
    def test_malformed_constraints(self, text):
        with pytest.raises(MalformedConstraint) as exc:
            parse_constraint(text, "owner")
        assert exc.value.plugin_id == "owner"

    def test_non_string_constraint(self):
        with pytest.raises(MalformedConstraint):
            parse_constraint(42, "owner")


class TestLoadOrder:
    """Tests for topological ordering."""

    def test_dependencies_come_first(self):
        descs = descriptors(("c", "1.0.0", ["b"]), ("b", "1.0.0", ["a"]), ("a", "1.0.0", []))
        assert DependencyResolver().resolve_order(descs) == ["a", "b", "c"]

    def test_ties_broken_by_id(self):
        """Unrelated plugins are ordered lexicographically."""
        descs = descriptors(("zeta", "1.0.0", []), ("alpha", "1.0.0", []), ("mid", "1.0.0", []))
        assert DependencyResolver().resolve_order(descs) == ["alpha", "mid", "zeta"]

    def test_diamond(self):
        descs = descriptors(
            ("app", "1.0.0", ["left", "right"]),
            ("left", "1.0.0", ["base"]),
            ("right", "1.0.0", ["base"]),
            ("base", "1.0.0", []),
        )
        assert DependencyResolver().resolve_order(descs) == ["base", "left", "right", "app"]

    def test_order_is_deterministic(self):
        """Input order never changes the result."""
        specs = [
            ("ui", "1.0.0", ["core", "theme"]),
            ("theme", "1.0.0", ["core"]),
            ("core", "1.0.0", []),
            ("log", "1.0.0", []),
            ("extra", "1.0.0", ["ui"]),
        ]
        expected = DependencyResolver().resolve_order(descriptors(*specs))
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(specs)
            rng.shuffle(shuffled)
            assert DependencyResolver().resolve_order(descriptors(*shuffled)) == expected
        assert expected == ["core", "log", "theme", "ui", "extra"]

    def test_empty_set(self):
        resolution = DependencyResolver().resolve({})
        assert resolution.ok
        assert resolution.order == []


class TestResolutionFailures:
    """Tests for unresolvable graphs."""

    def test_missing_dependency(self):
        resolution = DependencyResolver().resolve(descriptors(("ui", "1.0.0", ["core"])))
        error = resolution.failures["ui"]
        assert isinstance(error, MissingDependency)
        assert error.dependency_id == "core"
        assert resolution.order == []

    def test_version_conflict(self):
        descs = descriptors(("ui", "1.0.0", ["core@2.0.0"]), ("core", "1.0.0", []))
        resolution = DependencyResolver().resolve(descs)
        error = resolution.failures["ui"]
        assert isinstance(error, VersionConflict)
        assert error.required == "==2.0.0"
        assert error.found == "1.0.0"
        assert resolution.order == ["core"]

    def test_two_cycle_names_both_members(self):
        descs = descriptors(("a", "1.0.0", ["b"]), ("b", "1.0.0", ["a"]))
        resolution = DependencyResolver().resolve(descs)
        assert isinstance(resolution.failures["a"], CyclicDependency)
        assert resolution.failures["a"] is resolution.failures["b"]
        assert resolution.failures["a"].cycle == ["a", "b"]
        assert "a -> b -> a" in str(resolution.failures["a"])

    def test_three_cycle_path(self):
        descs = descriptors(("a", "1.0.0", ["b"]), ("b", "1.0.0", ["c"]), ("c", "1.0.0", ["a"]))
        error = DependencyResolver().resolve(descs).failures["b"]
        assert isinstance(error, CyclicDependency)
        assert error.cycle == ["a", "b", "c"]

    def test_self_dependency_is_a_cycle(self):
        resolution = DependencyResolver().resolve(descriptors(("a", "1.0.0", ["a"])))
        assert isinstance(resolution.failures["a"], CyclicDependency)

    def test_dependents_of_failures_are_unresolved(self):
        descs = descriptors(
            ("x", "1.0.0", ["missing"]),
            ("y", "1.0.0", ["x"]),
            ("z", "1.0.0", ["y"]),
            ("ok", "1.0.0", []),
        )
        resolution = DependencyResolver().resolve(descs)
        assert isinstance(resolution.failures["x"], MissingDependency)
        assert isinstance(resolution.failures["y"], DependencyUnresolved)
        assert resolution.failures["y"].dependency_id == "x"
        assert isinstance(resolution.failures["z"], DependencyUnresolved)
        assert resolution.order == ["ok"]

    def test_dependent_of_cycle_is_unresolved(self):
        descs = descriptors(("a", "1.0.0", ["b"]), ("b", "1.0.0", ["a"]), ("d", "1.0.0", ["a"]))
        resolution = DependencyResolver().resolve(descs)
        assert isinstance(resolution.failures["d"], DependencyUnresolved)
        assert resolution.failures["d"].dependency_id == "a"

    def test_resolve_order_raises_root_cause(self):
        descs = descriptors(("y", "1.0.0", ["x"]), ("x", "1.0.0", ["missing"]))
        with pytest.raises(MissingDependency):
            DependencyResolver().resolve_order(descs)

    def test_malformed_constraint_fails_only_its_plugin(self):
        descs = descriptors(("bad", "1.0.0", ["core@^1"]), ("core", "1.0.0", []))
        resolution = DependencyResolver().resolve(descs)
        assert isinstance(resolution.failures["bad"], MalformedConstraint)
        assert resolution.order == ["core"]
