"""Tests for the counter registry."""

import pytest

from cpustat.errors import ConfigurationError
from cpustat.registry import (
    BASE_KINDS,
    CounterField,
    CounterKind,
    CounterRegistry,
    build_registry,
    detect_forceidle,
    name_of,
)

BASE_NAMES = (
    "user",
    "nice",
    "system",
    "idle",
    "iowait",
    "irq",
    "softirq",
    "steal",
    "guest",
    "guest_nice",
)


class TestNameOf:
    """Tests for kind-to-name transliteration."""

    def test_lowercases_symbol(self):
        assert name_of(CounterKind.USER) == "user"
        assert name_of(CounterKind.GUEST_NICE) == "guest_nice"
        assert name_of(CounterKind.FORCEIDLE) == "forceidle"

    def test_names_are_unique(self):
        names = [name_of(kind) for kind in CounterKind]
        assert len(set(names)) == len(names)

    def test_registry_method_matches_function(self):
        registry = build_registry()
        for kind in CounterKind:
            assert registry.name_of(kind) == name_of(kind)


class TestBuildRegistry:
    """Tests for build_registry."""

    def test_base_registry(self):
        registry = build_registry()
        assert registry.names() == BASE_NAMES
        assert len(registry) == 10
        assert registry.width == 10
        assert not registry.has_forceidle

    def test_forceidle_registry(self):
        registry = build_registry(forceidle=True)
        assert registry.names() == BASE_NAMES + ("forceidle",)
        assert len(registry) == 11
        assert registry.width == 11
        assert registry.has_forceidle
        assert CounterKind.FORCEIDLE in registry

    def test_indexes_follow_kind_values(self):
        for row in build_registry(forceidle=True).list():
            assert row.index == int(row.kind)
            assert row.name == name_of(row.kind)

    def test_list_is_stable(self):
        registry = build_registry()
        assert registry.list() == registry.list()
        assert tuple(registry) == registry.list()

    def test_contains_kind_and_name(self):
        registry = build_registry()
        assert CounterKind.IDLE in registry
        assert "idle" in registry
        assert "forceidle" not in registry
        assert CounterKind.FORCEIDLE not in registry
        assert 3 not in registry

    def test_base_kinds_exclude_forceidle(self):
        assert CounterKind.FORCEIDLE not in BASE_KINDS
        assert len(BASE_KINDS) == 10


class TestCounterRegistryValidation:
    """Tests for malformed tables."""

    def test_empty_registry_rejected(self):
        with pytest.raises(ConfigurationError):
            CounterRegistry([])

    def test_duplicate_kind_rejected(self):
        rows = [
            CounterField.for_kind(CounterKind.USER),
            CounterField(kind=CounterKind.USER, name="user2", index=5),
        ]
        with pytest.raises(ConfigurationError, match="duplicate counter kind"):
            CounterRegistry(rows)

    def test_duplicate_index_rejected(self):
        rows = [
            CounterField.for_kind(CounterKind.USER),
            CounterField(kind=CounterKind.NICE, name="nice", index=0),
        ]
        with pytest.raises(ConfigurationError, match="duplicate counter index"):
            CounterRegistry(rows)

    def test_sparse_registry_width(self):
        registry = CounterRegistry(
            [CounterField.for_kind(CounterKind.IDLE), CounterField.for_kind(CounterKind.USER)]
        )
        assert registry.names() == ("idle", "user")
        assert registry.width == int(CounterKind.IDLE) + 1


class TestDetectForceidle:
    """Tests for the core-scheduling capability probe."""

    def test_missing_cgroup_file(self, tmp_path):
        assert detect_forceidle(tmp_path) is False

    def test_marker_present(self, proc_tree):
        _, sys_root = proc_tree({0: [1] * 10}, forceidle=True)
        assert detect_forceidle(sys_root) is True

    def test_marker_absent(self, proc_tree):
        _, sys_root = proc_tree({0: [1] * 10}, forceidle=False)
        assert detect_forceidle(sys_root) is False
