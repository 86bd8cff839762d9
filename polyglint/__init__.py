"""polyglint: resource lifecycle analysis for GraalVM polyglot sources.

Finds misuse of ``org.graalvm.polyglot`` handles (``Context``,
``Source``, ``Value``, ``Engine`` ...) in Java-like source units.

Submodules
----------
parser, grammar, ast_nodes
    PEG front-end (``parsimonious``) lowering Java into a small
    statement AST with program points.

symbols, aliasing, scopes, lifecycle
    Handle resolution, alias sets (union-find over binding nodes),
    try-with-resources live ranges and the per-handle state machine.

checkers
    Checker framework and the lifecycle rules: ``UseAfterRelease``,
    ``UnusedHandle``, ``RedundantResource``, ``ImportShadowing``.

polyglot
    Inventory of ``eval`` / ``getMember`` / ``putMember`` sites.

analyzer, reporting, cli
    Multi-unit engine, renderers and the ``polyglint`` command.

Usage
-----
Command-line::

    polyglint check src/ --format gcc

Programmatic::

    from polyglint import SourceUnit, analyze_units
    report = analyze_units([SourceUnit("Main.java", text)])
    for diag in report.diagnostics:
        print(diag.to_gcc_format())
"""

__version__ = "0.3.0"

from polyglint.analyzer import (
    AnalysisReport,
    Analyzer,
    SourceUnit,
    UnitResult,
    analyze_unit,
    analyze_units,
)
from polyglint.checkers import Diagnostic, DiagnosticSeverity, check_unit
from polyglint.config import AnalyzerConfig
from polyglint.errors import ErrorKind, PolyglintError
from polyglint.lifecycle import analyze_lifecycle
from polyglint.parser import parse
from polyglint.polyglot import PolyglotUse, PolyglotUseKind, collect_uses

__all__ = [
    "__version__",
    "AnalysisReport",
    "Analyzer",
    "AnalyzerConfig",
    "Diagnostic",
    "DiagnosticSeverity",
    "ErrorKind",
    "PolyglintError",
    "PolyglotUse",
    "PolyglotUseKind",
    "SourceUnit",
    "UnitResult",
    "analyze_lifecycle",
    "analyze_unit",
    "analyze_units",
    "check_unit",
    "collect_uses",
    "parse",
]
