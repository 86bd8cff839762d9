# tests/test_config.py
"""
Tests for AnalyzerConfig and the tracked type table.
"""

import dataclasses

import pytest

from polyglint.config import (
    AnalyzerConfig, HandleKind, TrackedTypeTable, erase_type_name, simple_type_name,
)
from polyglint.errors import ConfigError


class TestTypeNames:

    @pytest.mark.parametrize("name,simple", [
        ("Context", "Context"),
        ("org.graalvm.polyglot.Context", "Context"),
        ("java.util.List<String>", "List"),
        ("String[]", "String"),
    ])
    def test_simple_type_name(self, name, simple):
        assert simple_type_name(name) == simple

    def test_erase_keeps_qualification(self):
        assert erase_type_name("java.util.Map<K, V>[]") == "java.util.Map"


class TestTrackedTypeTable:

    def test_defaults(self):
        table = TrackedTypeTable.default()
        assert table.classify("Context") is HandleKind.CONTEXT
        assert table.classify("org.graalvm.polyglot.Source") is HandleKind.SOURCE
        assert table.classify("File") is None
        assert table.simple_names == frozenset({"Context", "Source"})

    def test_qualified_entry_matches_simple_name(self):
        table = TrackedTypeTable({"org.graalvm.polyglot.Engine": HandleKind.RESOURCE})
        assert table.is_tracked("Engine")
        assert table["Engine"] is HandleKind.RESOURCE

    def test_missing_key(self):
        with pytest.raises(KeyError):
            TrackedTypeTable.default()["File"]

    def test_from_names_infers_kind(self):
        table = TrackedTypeTable.from_names(["MyContext", "FileSource", "Engine"])
        assert table["MyContext"] is HandleKind.CONTEXT
        assert table["FileSource"] is HandleKind.SOURCE
        assert table["Engine"] is HandleKind.RESOURCE

    def test_coerce_mapping(self):
        table = TrackedTypeTable.coerce({"Engine": "context"})
        assert table["Engine"] is HandleKind.CONTEXT

    @pytest.mark.parametrize("value", [
        {"Engine": "socket"},
        {"Engine": 3},
        ["Context", 5],
        "Context",
    ])
    def test_coerce_rejects(self, value):
        with pytest.raises(ConfigError):
            TrackedTypeTable.coerce(value)

    def test_equality_and_hash(self):
        a = TrackedTypeTable.from_names(["Context"])
        b = TrackedTypeTable({"Context": HandleKind.CONTEXT})
        assert a == b
        assert hash(a) == hash(b)
        assert a != TrackedTypeTable.default()

    def test_generic_spelling_is_erased(self):
        table = TrackedTypeTable.from_names(["Pool<T>"])
        assert list(table) == ["Pool"]


class TestAnalyzerConfig:

    def test_defaults(self):
        config = AnalyzerConfig()
        assert not config.fail_on_unused
        assert not config.check_import_shadowing
        assert config.workers == 1
        assert config.unit_timeout is None
        assert config.polyglot_packages == ("org.graalvm.polyglot",)
        assert config.validate() == []

    def test_from_mapping_camel_and_snake(self):
        config = AnalyzerConfig.from_mapping({
            "failOnUnused": True,
            "check_import_shadowing": True,
            "trackedTypes": ["Context"],
            "unitTimeout": 5,
            "disabledCheckers": ["redundant-resource"],
            "suppress": "UnusedHandle",
        })
        assert config.fail_on_unused
        assert config.check_import_shadowing
        assert config.tracked_types.simple_names == frozenset({"Context"})
        assert config.unit_timeout == 5.0
        assert config.disabled_checkers == frozenset({"redundant-resource"})
        assert config.suppress == frozenset({"UnusedHandle"})

    def test_unknown_keys_are_ignored(self):
        config = AnalyzerConfig.from_mapping({"colour": "blue"})
        assert config == AnalyzerConfig()

    @pytest.mark.parametrize("options", [
        {"failOnUnused": "yes"},
        {"workers": 0},
        {"workers": True},
        {"unitTimeout": -1},
        {"polyglotPackages": 3},
        {"suppress": ["UnusedHandle", 4]},
    ])
    def test_bad_values(self, options):
        with pytest.raises(ConfigError):
            AnalyzerConfig.from_mapping(options)

    def test_from_json(self):
        config = AnalyzerConfig.from_json('{"workers": 4, "trackedTypes": {"Engine": "resource"}}')
        assert config.workers == 4
        assert config.tracked_types.classify("Engine") is HandleKind.RESOURCE
        assert not config.tracked_types.is_tracked("Context")

    @pytest.mark.parametrize("text", ["{not json", "[1, 2]"])
    def test_from_json_rejects(self, text):
        with pytest.raises(ConfigError):
            AnalyzerConfig.from_json(text)

    def test_with_overrides_coerces(self):
        config = AnalyzerConfig().with_overrides(tracked_types=["Engine"], suppress=["A"])
        assert config.tracked_types.is_tracked("Engine")
        assert config.suppress == frozenset({"A"})

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            AnalyzerConfig().workers = 3

    def test_validate_warnings(self):
        config = AnalyzerConfig(tracked_types=TrackedTypeTable({}), workers=100, unit_timeout=0.01)
        assert len(config.validate()) == 3

    def test_to_dict_round_trip(self):
        config = AnalyzerConfig(fail_on_unused=True, workers=2, suppress=frozenset({"UnusedHandle"}))
        assert AnalyzerConfig.from_mapping(config.to_dict()) == config
