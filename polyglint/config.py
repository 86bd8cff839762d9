# polyglint/config.py
"""
Analyzer configuration.

The only state shared between concurrently analysed source units is the
configuration, so everything here is immutable once built:

* ``TrackedTypeTable``: read-only mapping of type names to the kind of
  resource handle they declare.
* ``AnalyzerConfig``  : frozen dataclass with the analysis options.

Recognised options (JSON / mapping keys, camelCase or snake_case)::

    {
        "trackedTypes": ["Context", "Source"],      # or {"Engine": "context"}
        "failOnUnused": false,
        "checkImportShadowing": false,
        "polyglotPackages": ["org.graalvm.polyglot"],
        "workers": 1,
        "unitTimeout": null,
        "disabledCheckers": [],
        "suppress": []
    }
"""

from __future__ import annotations

import dataclasses
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple

from polyglint.errors import ConfigError

logger = logging.getLogger(__name__)


class HandleKind(Enum):
    """Classification of a tracked resource type."""

    CONTEXT = "context"
    SOURCE = "source"
    RESOURCE = "resource"

    @classmethod
    def parse(cls, text: str) -> "HandleKind":
        wanted = text.strip().lower()
        for member in cls:
            if member.value == wanted:
                return member
        raise ConfigError(f"Unknown handle classification: {text!r}")

    @classmethod
    def infer(cls, type_name: str) -> "HandleKind":
        """Guess the classification from a type name's simple suffix."""
        simple = simple_type_name(type_name)
        if simple.endswith("Context"):
            return cls.CONTEXT
        if simple.endswith("Source"):
            return cls.SOURCE
        return cls.RESOURCE


def simple_type_name(type_name: str) -> str:
    """``java.util.List<String>[]`` → ``List``."""
    base = type_name.split("<", 1)[0].split("[", 1)[0].strip()
    return base.rsplit(".", 1)[-1]


def erase_type_name(type_name: str) -> str:
    """Drop generic arguments and array dimensions, keep qualification."""
    return type_name.split("<", 1)[0].split("[", 1)[0].strip()


# ═══════════════════════════════════════════════════════════════════════════
#  TRACKED TYPE TABLE
# ═══════════════════════════════════════════════════════════════════════════

class TrackedTypeTable(Mapping):
    """
    Immutable table of tracked resource type names.

    Lookups accept both simple (``Context``) and qualified
    (``org.graalvm.polyglot.Context``) spellings; a qualified entry also
    matches its simple name and vice versa.
    """

    DEFAULT_TYPES: Dict[str, HandleKind] = {
        "Context": HandleKind.CONTEXT,
        "Source": HandleKind.SOURCE,
        "org.graalvm.polyglot.Context": HandleKind.CONTEXT,
        "org.graalvm.polyglot.Source": HandleKind.SOURCE,
    }

    def __init__(self, entries: Optional[Mapping[str, HandleKind]] = None) -> None:
        source = self.DEFAULT_TYPES if entries is None else entries
        table: Dict[str, HandleKind] = {}
        by_simple: Dict[str, HandleKind] = {}
        for name, kind in source.items():
            erased = erase_type_name(name)
            if not erased:
                continue
            table[erased] = kind
            by_simple.setdefault(simple_type_name(erased), kind)
        self._table = MappingProxyType(table)
        self._by_simple = MappingProxyType(by_simple)

    @classmethod
    def default(cls) -> "TrackedTypeTable":
        return cls()

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "TrackedTypeTable":
        """Build a table from bare type names, inferring each kind."""
        return cls({name: HandleKind.infer(name) for name in names})

    @classmethod
    def coerce(cls, value: Any) -> "TrackedTypeTable":
        """Accept a table, a name→classification mapping or a name list."""
        if isinstance(value, TrackedTypeTable):
            return value
        if isinstance(value, Mapping):
            entries: Dict[str, HandleKind] = {}
            for name, kind in value.items():
                if not isinstance(name, str):
                    raise ConfigError(f"Tracked type names must be strings, got {name!r}")
                if isinstance(kind, HandleKind):
                    entries[name] = kind
                elif isinstance(kind, str):
                    entries[name] = HandleKind.parse(kind)
                else:
                    raise ConfigError(
                        f"Classification for {name!r} must be a string, got {kind!r}"
                    )
            return cls(entries)
        if isinstance(value, (list, tuple, set, frozenset)):
            for name in value:
                if not isinstance(name, str):
                    raise ConfigError(f"Tracked type names must be strings, got {name!r}")
            return cls.from_names(value)
        raise ConfigError(f"trackedTypes must be a list or mapping, got {type(value).__name__}")

    def classify(self, type_name: Optional[str]) -> Optional[HandleKind]:
        """Return the handle kind for *type_name*, or ``None`` if untracked."""
        if not type_name:
            return None
        erased = erase_type_name(type_name)
        kind = self._table.get(erased)
        if kind is not None:
            return kind
        return self._by_simple.get(simple_type_name(erased))

    def is_tracked(self, type_name: Optional[str]) -> bool:
        return self.classify(type_name) is not None

    @property
    def simple_names(self) -> FrozenSet[str]:
        return frozenset(self._by_simple)

    def __getitem__(self, key: str) -> HandleKind:
        kind = self.classify(key)
        if kind is None:
            raise KeyError(key)
        return kind

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TrackedTypeTable):
            return dict(self._table) == dict(other._table)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(frozenset(self._table.items()))

    def __repr__(self) -> str:
        names = ", ".join(sorted(self._table))
        return f"TrackedTypeTable({names})"


# ═══════════════════════════════════════════════════════════════════════════
#  ANALYZER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

_KEY_ALIASES = {
    "trackedTypes": "tracked_types",
    "failOnUnused": "fail_on_unused",
    "checkImportShadowing": "check_import_shadowing",
    "polyglotPackages": "polyglot_packages",
    "unitTimeout": "unit_timeout",
    "disabledCheckers": "disabled_checkers",
}


@dataclass(frozen=True)
class AnalyzerConfig:
    """Tuning knobs for a polyglint run."""

    tracked_types: TrackedTypeTable = field(default_factory=TrackedTypeTable.default)
    fail_on_unused: bool = False
    check_import_shadowing: bool = False
    polyglot_packages: Tuple[str, ...] = ("org.graalvm.polyglot",)
    workers: int = 1
    unit_timeout: Optional[float] = None
    disabled_checkers: FrozenSet[str] = frozenset()
    suppress: FrozenSet[str] = frozenset()

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "AnalyzerConfig":
        """
        Build a configuration from a plain mapping.

        Unknown keys are logged and ignored.  Values of the wrong type raise
        ``ConfigError``.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for raw_key, value in options.items():
            key = _KEY_ALIASES.get(raw_key, raw_key)
            if key not in known:
                logger.warning("Ignoring unknown configuration key %r", raw_key)
                continue
            kwargs[key] = _coerce_option(key, value)
        return cls(**kwargs)

    @classmethod
    def from_json(cls, text: str) -> "AnalyzerConfig":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid configuration JSON: {exc}", cause=exc) from exc
        if not isinstance(data, dict):
            raise ConfigError("Configuration JSON must be an object")
        return cls.from_mapping(data)

    def with_overrides(self, **changes: Any) -> "AnalyzerConfig":
        """Return a copy with *changes* applied (values are coerced)."""
        coerced = {key: _coerce_option(key, value) for key, value in changes.items()}
        return dataclasses.replace(self, **coerced)

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if len(self.tracked_types) == 0:
            warnings.append("no tracked types configured; nothing will be analysed")
        if self.workers > 64:
            warnings.append(f"workers={self.workers} is unusually high")
        if self.unit_timeout is not None and self.unit_timeout < 0.1:
            warnings.append("unit_timeout below 0.1s will time out most units")
        return warnings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trackedTypes": {name: kind.value for name, kind in self.tracked_types._table.items()},
            "failOnUnused": self.fail_on_unused,
            "checkImportShadowing": self.check_import_shadowing,
            "polyglotPackages": list(self.polyglot_packages),
            "workers": self.workers,
            "unitTimeout": self.unit_timeout,
            "disabledCheckers": sorted(self.disabled_checkers),
            "suppress": sorted(self.suppress),
        }


def _coerce_option(key: str, value: Any) -> Any:
    if key == "tracked_types":
        return TrackedTypeTable.coerce(value)
    if key in ("fail_on_unused", "check_import_shadowing"):
        if not isinstance(value, bool):
            raise ConfigError(f"{key} must be a boolean, got {value!r}")
        return value
    if key == "workers":
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigError(f"workers must be a positive integer, got {value!r}")
        return value
    if key == "unit_timeout":
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ConfigError(f"unit_timeout must be a positive number, got {value!r}")
        return float(value)
    if key == "polyglot_packages":
        return tuple(_string_items(key, value))
    if key in ("disabled_checkers", "suppress"):
        return frozenset(_string_items(key, value))
    return value


def _string_items(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ConfigError(f"{key} must be a list of strings, got {value!r}")
    items = list(value)
    for item in items:
        if not isinstance(item, str):
            raise ConfigError(f"{key} must contain only strings, got {item!r}")
    return items


__all__ = [
    "HandleKind",
    "TrackedTypeTable",
    "AnalyzerConfig",
    "simple_type_name",
    "erase_type_name",
]
