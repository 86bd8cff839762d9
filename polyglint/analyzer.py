# polyglint/analyzer.py
"""
Analyzer engine.

Runs the full pipeline over a sequence of source units::

    SourceUnit ─► parse ─► CheckerRunner (symbols, aliases, scopes,
                            lifecycle, rule checkers) ─► UnitResult
                       └─► polyglot use inventory ─────┘

Units are independent: each gets its own AST, symbol table, alias index
and diagnostic list.  The only thing shared between worker threads is the
frozen ``AnalyzerConfig`` (and its immutable tracked-type table).

Unit-level failures never propagate.  An unreadable unit yields one
``UnreadableUnit`` diagnostic, an unparseable one ``UnsupportedUnit``, a
unit exceeding ``unit_timeout`` ``AnalysisTimeout``; in each case the unit
is skipped and the remaining units are analysed normally.

The engine performs no file I/O: ``SourceUnit`` carries text already
loaded by the caller (see ``polyglint.cli.load_units``).
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import Counter
from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from polyglint.checkers import CheckerRegistry, CheckerRunner, Diagnostic, DiagnosticSeverity
from polyglint.config import AnalyzerConfig
from polyglint.errors import ErrorKind, UnitParseError
from polyglint.lifecycle import analyze_lifecycle
from polyglint.parser import parse
from polyglint.polyglot import PolyglotUse, collect_uses

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INFRA = 2


@dataclass(frozen=True)
class SourceUnit:
    """A source unit handed over by the loading collaborator."""

    path: str
    text: Optional[str] = None
    load_error: Optional[str] = None


@dataclass
class UnitResult:
    path: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    uses: List[PolyglotUse] = field(default_factory=list)
    stats: Dict[str, Any] = field(default_factory=dict)
    skipped: bool = False
    error: Optional[str] = None

    @property
    def fatal_kind(self) -> Optional[ErrorKind]:
        for diag in self.diagnostics:
            if diag.kind.is_fatal:
                return diag.kind
        return None


def _skipped_unit(path: str, kind: ErrorKind, message: str,
                  line: int = 0, column: int = 0) -> UnitResult:
    logger.warning("%s: %s: %s", path, kind.value, message)
    return UnitResult(
        path=path,
        diagnostics=[Diagnostic.for_unit(kind, message, path, line, column)],
        skipped=True,
        error=message,
    )


def analyze_unit(
    unit: SourceUnit,
    config: Optional[AnalyzerConfig] = None,
    registry: Optional[CheckerRegistry] = None,
) -> UnitResult:
    """Analyse one unit; never raises for unit-level failures."""
    config = config or AnalyzerConfig()
    t0 = time.monotonic()

    if unit.load_error is not None or unit.text is None:
        reason = unit.load_error or "no text supplied"
        return _skipped_unit(unit.path, ErrorKind.UNREADABLE_UNIT, f"cannot read unit: {reason}")

    try:
        compilation_unit = parse(unit.text, unit.path)
    except UnitParseError as exc:
        return _skipped_unit(unit.path, ErrorKind.UNSUPPORTED_UNIT,
                             f"unsupported source unit: {exc.message}", exc.line, exc.column)

    try:
        results = CheckerRunner(config, registry).run(compilation_unit, unit.text)
        analysis = results.analysis or analyze_lifecycle(compilation_unit, config.tracked_types)
        uses = collect_uses(analysis)
    except Exception as exc:
        logger.exception("%s: analysis failed", unit.path)
        return _skipped_unit(unit.path, ErrorKind.CHECKER_INTERNAL_ERROR,
                             f"analysis failed: {exc}")

    stats = dict(results.stats)
    stats["handles"] = len(analysis.table)
    stats["program_points"] = compilation_unit.point_count
    stats["elapsed_ms"] = (time.monotonic() - t0) * 1000.0
    logger.info("%s: %d diagnostics, %d polyglot uses (%.1fms)",
                unit.path, len(results.diagnostics), len(uses), stats["elapsed_ms"])
    return UnitResult(
        path=unit.path,
        diagnostics=results.diagnostics,
        uses=uses,
        stats=stats,
    )


# ═══════════════════════════════════════════════════════════════════
#  REPORT
# ═══════════════════════════════════════════════════════════════════

@dataclass
class AnalysisReport:
    units: List[UnitResult] = field(default_factory=list)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        """All diagnostics, ordered by file, line, column, rule."""
        return sorted((d for u in self.units for d in u.diagnostics), key=lambda d: d.sort_key)

    @property
    def uses(self) -> List[PolyglotUse]:
        return [use for unit in self.units for use in unit.uses]

    @property
    def counts(self) -> Dict[str, int]:
        return dict(Counter(d.severity.value for d in self.diagnostics))

    def by_kind(self) -> Dict[ErrorKind, List[Diagnostic]]:
        grouped: Dict[ErrorKind, List[Diagnostic]] = {}
        for diag in self.diagnostics:
            grouped.setdefault(diag.kind, []).append(diag)
        return grouped

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is DiagnosticSeverity.ERROR)

    @property
    def fatal_units(self) -> List[UnitResult]:
        return [u for u in self.units if u.skipped]

    @property
    def exit_status(self) -> int:
        """0 clean, 1 error diagnostics, 2 when a unit could not be analysed."""
        if self.fatal_units:
            return EXIT_INFRA
        return EXIT_ERROR if self.error_count else EXIT_OK

    def __len__(self) -> int:
        return len(self.units)


# ═══════════════════════════════════════════════════════════════════
#  ENGINE
# ═══════════════════════════════════════════════════════════════════

class Analyzer:
    """
    Analyse many units, optionally in parallel.

    With ``workers == 1`` and no ``unit_timeout`` units run serially on
    the calling thread.  Otherwise daemon worker threads drain a job queue
    and resolve one ``Future`` per unit.  A unit still running
    ``unit_timeout`` seconds after it started is reported as
    ``AnalysisTimeout``; its thread is abandoned, not interrupted, and a
    replacement worker is started.  Daemon threads never hold up
    interpreter exit, so a hung unit cannot keep the process alive.
    """

    POLL_INTERVAL = 0.05

    def __init__(self, config: Optional[AnalyzerConfig] = None,
                 registry: Optional[CheckerRegistry] = None) -> None:
        self.config = config or AnalyzerConfig()
        self.registry = registry
        for warning in self.config.validate():
            logger.warning("configuration: %s", warning)

    def analyze_one(self, unit: SourceUnit) -> UnitResult:
        return analyze_unit(unit, self.config, self.registry)

    def analyze(self, units: Iterable[SourceUnit]) -> AnalysisReport:
        units = list(units)
        logger.info("analysing %d units with %d worker(s)", len(units), self.config.workers)
        if self.config.workers == 1 and self.config.unit_timeout is None:
            return AnalysisReport([self.analyze_one(unit) for unit in units])
        return AnalysisReport(self._analyze_parallel(units))

    def _analyze_parallel(self, units: List[SourceUnit]) -> List[UnitResult]:
        timeout = self.config.unit_timeout
        results: List[Optional[UnitResult]] = [None] * len(units)
        jobs: queue.Queue = queue.Queue()
        futures: Dict[Future, int] = {}
        for index, unit in enumerate(units):
            future: Future = Future()
            futures[future] = index
            jobs.put((future, unit))
        for _ in range(min(self.config.workers, len(units))):
            self._spawn_worker(jobs)

        started: Dict[Future, float] = {}
        pending = set(futures)
        try:
            while pending:
                done, pending = wait(pending, timeout=self.POLL_INTERVAL,
                                     return_when=FIRST_COMPLETED)
                for future in done:
                    index = futures[future]
                    try:
                        results[index] = future.result()
                    except Exception as exc:
                        logger.error("Failed to analyse %s: %s", units[index].path, exc)
                        results[index] = _skipped_unit(units[index].path,
                                                       ErrorKind.CHECKER_INTERNAL_ERROR,
                                                       f"analysis failed: {exc}")
                if timeout is None:
                    continue
                now = time.monotonic()
                for future in list(pending):
                    if future.running():
                        started.setdefault(future, now)
                    if future in started and now - started[future] > timeout:
                        index = futures[future]
                        pending.discard(future)
                        results[index] = _skipped_unit(
                            units[index].path, ErrorKind.ANALYSIS_TIMEOUT,
                            f"analysis exceeded {timeout:g}s")
                        # the stuck worker keeps its thread; replace it
                        self._spawn_worker(jobs)
        finally:
            for future in pending:
                future.cancel()
        return [r for r in results if r is not None]

    def _spawn_worker(self, jobs: queue.Queue) -> None:
        worker = threading.Thread(target=self._work, args=(jobs,),
                                  name="polyglint-worker", daemon=True)
        worker.start()

    def _work(self, jobs: queue.Queue) -> None:
        while True:
            try:
                future, unit = jobs.get_nowait()
            except queue.Empty:
                return
            if not future.set_running_or_notify_cancel():
                continue
            try:
                result = self.analyze_one(unit)
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)


def analyze_units(units: Iterable[SourceUnit],
                  config: Optional[AnalyzerConfig] = None) -> AnalysisReport:
    return Analyzer(config).analyze(units)


__all__ = [
    "EXIT_OK",
    "EXIT_ERROR",
    "EXIT_INFRA",
    "SourceUnit",
    "UnitResult",
    "AnalysisReport",
    "Analyzer",
    "analyze_unit",
    "analyze_units",
]
