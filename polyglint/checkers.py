"""
polyglint/checkers.py
═════════════════════

Checker framework that turns the lifecycle analysis of a unit into
ordered, suppressible diagnostics.

Architecture
────────────

  ┌──────────────────────────────────────────────────────────────┐
  │                        CheckerRunner                         │
  │  ┌────────────────┐ ┌──────────────┐ ┌───────────────────┐  │
  │  │UseAfterRelease │ │ UnusedHandle │ │ RedundantResource │  │
  │  │    Checker     │ │   Checker    │ │      Checker      │  │
  │  └───────┬────────┘ └──────┬───────┘ └─────────┬─────────┘  │
  │          │                 │                   │            │
  │  ┌───────▼─────────────────▼───────────────────▼─────────┐  │
  │  │                 Evidence Collection                   │  │
  │  │  symbols │ aliasing │ scopes │ lifecycle (use sites)  │  │
  │  └────────────────────────────┬──────────────────────────┘  │
  │                               │                             │
  │  ┌────────────────────────────▼──────────────────────────┐  │
  │  │                  SuppressionManager                   │  │
  │  │ // polyglint-suppress │ file-level │ global           │  │
  │  └────────────────────────────┬──────────────────────────┘  │
  │                               │                             │
  │  ┌────────────────────────────▼──────────────────────────┐  │
  │  │     Ordered diagnostics (file, line, column, rule)     │  │
  │  └───────────────────────────────────────────────────────┘  │
  └──────────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**       : read options, decide whether to run
  2. **collect_evidence()**: consume the shared lifecycle analysis
  3. **diagnose()**        : turn evidence into diagnostics
  4. **report()**          : emit diagnostics (filtered by suppressions)

Rule order (the tie-break for diagnostics at the same location) is the
declaration order of ``ErrorKind``: UseAfterRelease, UnusedHandle,
RedundantResource, ImportShadowing, ParseSkipped.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from fnmatch import fnmatch
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from polyglint.ast_nodes import CompilationUnit, Location
from polyglint.config import AnalyzerConfig, simple_type_name
from polyglint.errors import ErrorKind
from polyglint.lifecycle import LifecycleAnalysis, UseKind, analyze_lifecycle

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1: DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    INFORMATION = "information"

    @classmethod
    def for_kind(cls, kind: ErrorKind) -> "DiagnosticSeverity":
        return cls(kind.default_severity)


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    @classmethod
    def at(cls, file: str, loc: Location) -> "SourceLocation":
        return cls(file=file, line=loc.line, column=loc.column)

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Attributes
    ----------
    kind         : ErrorKind of the finding
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Primary source location
    handles      : Names of the handles involved
    secondary    : Related locations (e.g. the earlier creation site)
    checker_name : Name of the checker that produced this
    evidence     : Machine-readable evidence dict for downstream tooling
    """
    kind: ErrorKind
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    handles: Tuple[str, ...] = ()
    secondary: Tuple[SourceLocation, ...] = ()
    checker_name: str = ""
    evidence: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def for_unit(cls, kind: ErrorKind, message: str, path: str,
                 line: int = 0, column: int = 0, checker_name: str = "") -> "Diagnostic":
        """A diagnostic about a unit as a whole (fatal-class kinds)."""
        return cls(
            kind=kind,
            message=message,
            severity=DiagnosticSeverity.for_kind(kind),
            location=SourceLocation(path, line, column),
            checker_name=checker_name,
        )

    @property
    def error_id(self) -> str:
        return self.kind.value

    @property
    def sort_key(self) -> Tuple[str, int, int, int, str]:
        loc = self.location
        return (loc.file, loc.line, loc.column, self.kind.rank, self.message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "severity": self.severity.value,
            "message": self.message,
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "errorId": self.error_id,
        }
        if self.handles:
            result["handles"] = list(self.handles)
        if self.secondary:
            result["secondary"] = [
                {"file": s.file, "line": s.line, "column": s.column}
                for s in self.secondary
            ]
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_dict())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        sev = self.severity.value
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2: SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_INLINE_SUPPRESS_RE = re.compile(r"//\s*polyglint-suppress\b[ \t]*([\w*, \t]*)")


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments:  ``// polyglint-suppress UnusedHandle``
         (on the offending line or the line before it; no id means all)
      2. File-level suppressions (passed programmatically)
      3. Global suppressions (command-line or config)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.load_inline_suppressions("Main.java", text)
    >>> sm.add_file_suppression("UnusedHandle", "legacy/*.java")
    >>> sm.add_global_suppression("RedundantResource")
    >>> if not sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # {(file, line)} → set of error ids suppressed at that location
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        # file pattern → set of error ids
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        # globally suppressed error ids
        self._global: Set[str] = set()

    @staticmethod
    def _normalize(error_id: str) -> str:
        return error_id.strip().lower()

    def load_inline_suppressions(self, path: str, text: str) -> int:
        """Scan *text* for suppression comments; returns how many were found."""
        found = 0
        for lineno, line in enumerate(text.splitlines(), start=1):
            match = _INLINE_SUPPRESS_RE.search(line)
            if match is None:
                continue
            ids = [i for i in re.split(r"[\s,]+", match.group(1)) if i]
            for error_id in ids or ["*"]:
                self._inline[(path, lineno)].add(self._normalize(error_id))
            found += 1
        return found

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        """Suppress ``error_id`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(self._normalize(error_id))

    def add_global_suppression(self, error_id: str) -> None:
        """Globally suppress ``error_id``."""
        self._global.add(self._normalize(error_id))

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        if diag.kind.is_fatal:
            return False
        eid = self._normalize(diag.error_id)

        if eid in self._global or "*" in self._global:
            return True

        loc = diag.location

        # Inline (exact line match, or line-1 for preceding-line suppress)
        for line_offset in (0, 1):
            suppressed_ids = self._inline.get((loc.file, loc.line - line_offset), set())
            if eid in suppressed_ids or "*" in suppressed_ids:
                return True

        for pattern, ids in self._file_level.items():
            if eid in ids or "*" in ids:
                if pattern == loc.file or loc.file.endswith(pattern) or fnmatch(loc.file, pattern):
                    return True

        return False

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3: CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    unit         : parsed CompilationUnit
    config       : AnalyzerConfig of the run
    suppressions : SuppressionManager
    analyses     : dict of pre-computed analysis results (keyed by name)
    stats        : mutable dict for timing / counting statistics
    """
    unit: CompilationUnit
    config: AnalyzerConfig = field(default_factory=AnalyzerConfig)
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    analyses: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.unit.path

    def get_analysis(self, name: str) -> Any:
        return self.analyses.get(name)

    def set_analysis(self, name: str, result: Any) -> None:
        self.analyses[name] = result

    @property
    def lifecycle(self) -> LifecycleAnalysis:
        """The unit's lifecycle analysis, computed once and shared."""
        analysis = self.get_analysis("lifecycle")
        if analysis is None:
            t0 = time.monotonic()
            analysis = analyze_lifecycle(self.unit, self.config.tracked_types)
            self.stats["lifecycle_elapsed_ms"] = (time.monotonic() - t0) * 1000.0
            self.set_analysis("lifecycle", analysis)
        return analysis


class Checker(ABC):
    """
    Abstract base class for all checkers.

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``kind``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()``; setting ``self._enabled``
        to False there skips the remaining phases
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    kind: ClassVar[ErrorKind]
    opt_in: ClassVar[bool] = False

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []
        self._enabled: bool = True

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @classmethod
    def error_ids(cls) -> FrozenSet[str]:
        return frozenset({cls.kind.value})

    def configure(self, ctx: CheckerContext) -> None:
        pass

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        ctx: CheckerContext,
        message: str,
        loc: Location,
        severity: Optional[DiagnosticSeverity] = None,
        handles: Tuple[str, ...] = (),
        secondary: Tuple[SourceLocation, ...] = (),
        evidence: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            kind=self.kind,
            message=message,
            severity=severity or DiagnosticSeverity.for_kind(self.kind),
            location=SourceLocation.at(ctx.path, loc),
            handles=handles,
            secondary=secondary,
            checker_name=self.name,
            evidence=evidence or {},
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 4: CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers with discovery and filtering.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(UseAfterReleaseChecker)
    >>> checkers = registry.get_enabled()
    >>> checkers = registry.filter_by_error_id("UnusedHandle")
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def unregister(self, name: str) -> None:
        self._checkers.pop(name, None)

    def disable(self, name: str) -> None:
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [
            cls for name, cls in self._checkers.items()
            if name not in self._disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_error_id(self, error_id: str) -> List[Type[Checker]]:
        """Return checkers that can produce the given error id."""
        wanted = error_id.strip().lower()
        return [
            cls for cls in self._checkers.values()
            if cls.kind.value.lower() == wanted
        ]

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 5: LIFECYCLE CHECKERS
# ═════════════════════════════════════════════════════════════════════════

# ─────────────────────────────────────────────────────────────────────────
#  5.1  Use After Release
# ─────────────────────────────────────────────────────────────────────────

class UseAfterReleaseChecker(Checker):
    """
    Detects member access on a handle whose resource was released.

    A use is flagged when the handle's alias set at that point contains
    the binding acquired by a try-with-resources block of the same method
    that has already closed.  Handles that never reach an acquisition
    block are never flagged.
    """

    name: ClassVar[str] = "use-after-release"
    description: ClassVar[str] = "Member access or call on a released resource"
    kind: ClassVar[ErrorKind] = ErrorKind.USE_AFTER_RELEASE

    _FLAGGED_USES: ClassVar[FrozenSet[UseKind]] = frozenset({UseKind.MEMBER, UseKind.ACQUIRE})

    def __init__(self) -> None:
        super().__init__()
        self._stale_uses = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        analysis = ctx.lifecycle
        for use in analysis.uses:
            if use.kind not in self._FLAGGED_USES or not use.is_stale:
                continue
            acquisition = analysis.release_of(use.node, use.point)
            if acquisition is not None:
                self._stale_uses.append((use, acquisition))

    def diagnose(self, ctx: CheckerContext) -> None:
        table = ctx.lifecycle.table
        seen: Set[Tuple[int, int, int]] = set()
        for use, acquisition in self._stale_uses:
            key = (use.point, use.loc.line, use.loc.column)
            if key in seen:
                continue
            seen.add(key)

            handle = table.handle(use.handle_id)
            owner = table.handle(acquisition.handle_id)
            closed = acquisition.block.end_loc.line
            if owner.id == handle.id:
                detail = f"released when its try block closed at line {closed}"
            else:
                detail = f"released through {owner.label} when its try block closed at line {closed}"
            self._emit(
                ctx,
                f"{handle.label} is used after its resource was {detail}",
                use.loc,
                handles=tuple(dict.fromkeys((handle.name, owner.name))),
                secondary=(SourceLocation.at(ctx.path, acquisition.loc),),
                evidence={"releasePoint": acquisition.release_point, "usePoint": use.point},
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.2  Unused Handle
# ─────────────────────────────────────────────────────────────────────────

class UnusedHandleChecker(Checker):
    """
    Detects handles that are never used.

    A handle is used when it is read as a call receiver, call argument,
    acquired resource, return value or any other evaluated operand.  A
    handle that is only copied into other handles counts as used when one
    of those copies is used.  Exactly one diagnostic per handle, at its
    declaration.
    """

    name: ClassVar[str] = "unused-handle"
    description: ClassVar[str] = "Handle declared but never used"
    kind: ClassVar[ErrorKind] = ErrorKind.UNUSED_HANDLE

    def __init__(self) -> None:
        super().__init__()
        self._unused = []
        self._severity = DiagnosticSeverity.INFORMATION

    def configure(self, ctx: CheckerContext) -> None:
        if ctx.config.fail_on_unused:
            self._severity = DiagnosticSeverity.ERROR

    def collect_evidence(self, ctx: CheckerContext) -> None:
        analysis = ctx.lifecycle
        counted = analysis.counted_uses()
        used_handles = {u.handle_id for u in counted}
        used_nodes = {u.node for u in counted if u.node is not None}

        for handle in analysis.table:
            if handle.id in used_handles:
                continue
            if any(
                reached in used_nodes
                for node in analysis.aliases.nodes_of(handle.id)
                for reached in analysis.aliases.flows_from(node)
            ):
                continue
            self._unused.append(handle)

    def diagnose(self, ctx: CheckerContext) -> None:
        for handle in self._unused:
            never = "never constructed or used" if not ctx.lifecycle.aliases.nodes_of(handle.id) \
                else "never used"
            self._emit(
                ctx,
                f"{handle.label} of type {simple_type_name(handle.type_name)} is declared but {never}",
                handle.site,
                severity=self._severity,
                handles=(handle.name,),
                evidence={"handleId": handle.id, "field": handle.is_field},
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.3  Redundant Resource
# ─────────────────────────────────────────────────────────────────────────

class RedundantResourceChecker(Checker):
    """
    Detects a resource created with exactly the same construction
    expression as an earlier one of the same method (or class field
    initializers) that is still bound and has not been used in between.

    Creations without any argument (``Context.create()``) are never
    considered redundant.
    """

    name: ClassVar[str] = "redundant-resource"
    description: ClassVar[str] = "Duplicate resource creation with identical arguments"
    kind: ClassVar[ErrorKind] = ErrorKind.REDUNDANT_RESOURCE

    def __init__(self) -> None:
        super().__init__()
        self._pairs = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        analysis = ctx.lifecycle
        aliases = analysis.aliases
        counted = analysis.counted_uses()
        creations = sorted(aliases.creations.values(), key=lambda c: c.point)

        for index, later in enumerate(creations):
            if not later.has_args:
                continue
            bound = aliases.bindings_before(later.point).values()
            for earlier in reversed(creations[:index]):
                if earlier.region is not later.region or earlier.key != later.key:
                    continue
                # rebinding one handle replaces its resource
                if earlier.handle_id == later.handle_id:
                    continue
                if not any(aliases.same_set(node, earlier.node) for node in bound):
                    continue
                if any(
                    earlier.point < u.point < later.point and aliases.same_set(u.node, earlier.node)
                    for u in counted
                ):
                    continue
                self._pairs.append((earlier, later))
                break

    def diagnose(self, ctx: CheckerContext) -> None:
        table = ctx.lifecycle.table
        for earlier, later in self._pairs:
            first = table.handle(earlier.handle_id)
            second = table.handle(later.handle_id)
            self._emit(
                ctx,
                f"{second.label} re-creates the resource already held by {first.label} "
                f"(line {earlier.loc.line}) with identical arguments",
                later.loc,
                handles=(first.name, second.name),
                secondary=(SourceLocation.at(ctx.path, earlier.loc),),
                evidence={"key": later.key},
            )


# ─────────────────────────────────────────────────────────────────────────
#  5.4  Import Shadowing (opt-in)
# ─────────────────────────────────────────────────────────────────────────

class ImportShadowingChecker(Checker):
    """
    Detects single-type imports that bind a tracked simple type name to a
    class outside the polyglot packages (``import javax.naming.Context``),
    and pairs of single-type imports binding the same tracked name.

    Only runs when ``check_import_shadowing`` is set.
    """

    name: ClassVar[str] = "import-shadowing"
    description: ClassVar[str] = "Import binding a tracked type name to a foreign class"
    kind: ClassVar[ErrorKind] = ErrorKind.IMPORT_SHADOWING
    opt_in: ClassVar[bool] = True

    def __init__(self) -> None:
        super().__init__()
        self._findings = []

    def configure(self, ctx: CheckerContext) -> None:
        self._enabled = ctx.config.check_import_shadowing

    @staticmethod
    def _is_polyglot(package: str, packages: Sequence[str]) -> bool:
        return any(package == p or package.startswith(p + ".") for p in packages)

    def collect_evidence(self, ctx: CheckerContext) -> None:
        tracked = ctx.config.tracked_types.simple_names
        referenced = {simple_type_name(ref.name) for ref in ctx.lifecycle.table.type_references}
        first_import = {}
        reported = set()

        for imp in ctx.unit.imports:
            if imp.is_static or imp.is_wildcard or imp.simple_name not in tracked:
                continue
            simple = imp.simple_name
            if not self._is_polyglot(imp.package, ctx.config.polyglot_packages) and simple in referenced:
                self._findings.append((imp, f"import of {imp.name} shadows the polyglot type '{simple}'", None))
                reported.add(imp)
            earlier = first_import.setdefault(simple, imp)
            if earlier is not imp and imp not in reported:
                self._findings.append((
                    imp,
                    f"import of {imp.name} conflicts with import of {earlier.name} (line {earlier.loc.line})",
                    earlier,
                ))
                reported.add(imp)

    def diagnose(self, ctx: CheckerContext) -> None:
        for imp, message, earlier in self._findings:
            secondary = (SourceLocation.at(ctx.path, earlier.loc),) if earlier is not None else ()
            self._emit(ctx, message, imp.loc, secondary=secondary,
                       evidence={"import": imp.name})


# ─────────────────────────────────────────────────────────────────────────
#  5.5  Parse Skipped
# ─────────────────────────────────────────────────────────────────────────

class ParseSkippedChecker(Checker):
    """Reports statements and members the parser stepped over."""

    name: ClassVar[str] = "parse-skipped"
    description: ClassVar[str] = "Malformed statement ignored by the parser"
    kind: ClassVar[ErrorKind] = ErrorKind.PARSE_SKIPPED

    MAX_EXCERPT = 60

    def collect_evidence(self, ctx: CheckerContext) -> None:
        pass

    def diagnose(self, ctx: CheckerContext) -> None:
        for skipped in ctx.unit.skipped:
            excerpt = " ".join(skipped.text.split())
            if len(excerpt) > self.MAX_EXCERPT:
                excerpt = excerpt[: self.MAX_EXCERPT - 3] + "..."
            self._emit(ctx, f"could not parse statement, skipped: {excerpt}", skipped.loc)


# ═════════════════════════════════════════════════════════════════════════
#  PART 6: CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

# Default registry with all built-in checkers, in rule order
_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(UseAfterReleaseChecker)
_DEFAULT_REGISTRY.register(UnusedHandleChecker)
_DEFAULT_REGISTRY.register(RedundantResourceChecker)
_DEFAULT_REGISTRY.register(ImportShadowingChecker)
_DEFAULT_REGISTRY.register(ParseSkippedChecker)


def default_registry() -> CheckerRegistry:
    return _DEFAULT_REGISTRY


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running the checkers over one unit.

    Attributes
    ----------
    diagnostics            : All diagnostics, ordered by location then rule
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    analysis               : The shared LifecycleAnalysis, if computed
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    analysis: Optional[LifecycleAnalysis] = None

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == DiagnosticSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == DiagnosticSeverity.WARNING)

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_kind(self, kind: ErrorKind) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.kind is kind]

    def by_severity(self, severity: DiagnosticSeverity) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == severity]

    def summary(self) -> str:
        lines = [
            f"Checker run complete: {self.total_count} diagnostics "
            f"({self.error_count} errors, {self.warning_count} warnings)",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs the lifecycle checkers against one parsed unit.

    Usage
    -----
    >>> runner = CheckerRunner(config)
    >>> results = runner.run(unit, text)
    >>> for diag in results.diagnostics:
    ...     print(diag.to_gcc_format())
    """

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        registry: Optional[CheckerRegistry] = None,
    ) -> None:
        self.config = config or AnalyzerConfig()
        self.registry = registry or _DEFAULT_REGISTRY

    def _suppressions(self, unit: CompilationUnit, text: Optional[str]) -> SuppressionManager:
        sm = SuppressionManager()
        for error_id in self.config.suppress:
            sm.add_global_suppression(error_id)
        if text:
            sm.load_inline_suppressions(unit.path, text)
        return sm

    def run(
        self,
        unit: CompilationUnit,
        text: Optional[str] = None,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single unit.

        Parameters
        ----------
        unit     : parsed CompilationUnit
        text     : the unit's source text, scanned for inline suppressions
        checkers : checker names to run (None = all enabled)
        """
        results = CheckerRunResults()
        ctx = CheckerContext(
            unit=unit,
            config=self.config,
            suppressions=self._suppressions(unit, text),
        )

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is not None:
                    checker_classes.append(cls)
        else:
            checker_classes = [
                cls for cls in self.registry.get_enabled()
                if cls.name not in self.config.disabled_checkers
            ]

        for cls in checker_classes:
            checker = cls()
            checker_name = cls.name

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                if not checker.enabled:
                    continue
                results.checker_names.append(checker_name)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                # Graceful degradation: report the failure, don't crash
                logger.exception("%s: checker %r failed", unit.path, checker_name)
                diags = [Diagnostic.for_unit(
                    ErrorKind.CHECKER_INTERNAL_ERROR,
                    f"Checker '{checker_name}' failed: {exc}",
                    unit.path,
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name] = diags
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms

        results.diagnostics.sort(key=lambda d: d.sort_key)
        results.stats.update(ctx.stats)
        results.analysis = ctx.get_analysis("lifecycle")
        return results


def check_unit(
    unit: CompilationUnit,
    config: Optional[AnalyzerConfig] = None,
    text: Optional[str] = None,
) -> List[Diagnostic]:
    """Run every enabled checker over *unit*; returns ordered diagnostics."""
    return CheckerRunner(config).run(unit, text).diagnostics


# ═════════════════════════════════════════════════════════════════════════
#  PART 7: PUBLIC API
# ═════════════════════════════════════════════════════════════════════════

__all__ = [
    # Diagnostic model
    "Diagnostic",
    "DiagnosticSeverity",
    "SourceLocation",
    # Suppression
    "SuppressionManager",
    # Checker framework
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "default_registry",
    # Lifecycle checkers
    "UseAfterReleaseChecker",
    "UnusedHandleChecker",
    "RedundantResourceChecker",
    "ImportShadowingChecker",
    "ParseSkippedChecker",
    # Runner
    "CheckerRunner",
    "CheckerRunResults",
    "check_unit",
]
