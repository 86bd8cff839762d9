"""
polyglint/reporting.py
══════════════════════

Renderers for analysis results.

Output formats
──────────────
  • text    : colourful terminal rendering (termcolor), one block per diagnostic
  • json    : one JSON object per line (``{severity, message, file, line,
              column, errorId}``)
  • gcc     : ``file:line:col: severity: message [errorId]``
  • summary : per-severity and per-kind counts

Plus two debugging views: a table of polyglot uses and an S-expression
dump of the lowered AST (via ``sexpdata``).
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, Iterable, List, Optional, Sequence, TextIO

import sexpdata
from sexpdata import Symbol
from termcolor import colored

from polyglint.analyzer import AnalysisReport
from polyglint.ast_nodes import (
    Assign,
    Block,
    Call,
    ClassDecl,
    CompilationUnit,
    Declare,
    Expr,
    FieldAccess,
    ImportDecl,
    Literal,
    MethodCall,
    MethodDecl,
    Name,
    New,
    Operation,
    Statement,
    This,
    Unknown,
)
from polyglint.checkers import Diagnostic, DiagnosticSeverity
from polyglint.polyglot import PolyglotUse

FORMATS = ("text", "json", "gcc", "summary")

_SEVERITY_COLORS: Dict[DiagnosticSeverity, str] = {
    DiagnosticSeverity.ERROR: "red",
    DiagnosticSeverity.WARNING: "yellow",
    DiagnosticSeverity.STYLE: "cyan",
    DiagnosticSeverity.INFORMATION: "white",
}


# ═════════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC RENDERERS
# ═════════════════════════════════════════════════════════════════════════

class TextRenderer:
    """Render diagnostics for a terminal, optionally with colours."""

    def __init__(self, stream: TextIO = sys.stdout, color: bool = True) -> None:
        self._stream = stream
        self._color = color

    def _paint(self, text: str, color: Optional[str] = None,
               attrs: Optional[List[str]] = None) -> str:
        if not self._color:
            return text
        return colored(text, color, attrs=attrs, force_color=True)

    def render(self, diag: Diagnostic) -> None:
        color = _SEVERITY_COLORS[diag.severity]
        lines: List[str] = []

        header = self._paint(f"{diag.severity.value}[{diag.error_id}]", color, ["bold"])
        lines.append(f"{header}: {self._paint(diag.message, attrs=['bold'])}")

        arrow = self._paint("-->", "blue", ["bold"])
        lines.append(f"  {arrow} {diag.location}")

        for related in diag.secondary:
            note = self._paint("note", "cyan", ["bold"])
            lines.append(f"  = {note}: related location {related}")

        lines.append("")
        self._stream.write("\n".join(lines) + "\n")

    def render_all(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diag in diagnostics:
            self.render(diag)
        self._stream.flush()


def render_json_lines(diagnostics: Iterable[Diagnostic]) -> str:
    return "\n".join(d.to_json_str() for d in diagnostics)


def render_gcc(diagnostics: Iterable[Diagnostic]) -> str:
    return "\n".join(d.to_gcc_format() for d in diagnostics)


def render_summary(report: AnalysisReport) -> str:
    diagnostics = report.diagnostics
    counts = report.counts
    parts = [f"{counts[s.value]} {s.value}" for s in DiagnosticSeverity if counts.get(s.value)]
    lines = [
        f"{len(report)} unit(s) analysed, {len(report.fatal_units)} skipped: "
        f"{len(diagnostics)} diagnostic(s)" + (f" ({', '.join(parts)})" if parts else ""),
    ]
    for kind, items in sorted(report.by_kind().items(), key=lambda kv: kv[0].rank):
        lines.append(f"  {kind.value:24s} {len(items)}")
    return "\n".join(lines)


def write_report(report: AnalysisReport, fmt: str = "text",
                 stream: TextIO = sys.stdout, color: bool = True) -> None:
    """Write *report* to *stream* in one of ``FORMATS``."""
    if fmt not in FORMATS:
        raise ValueError(f"Unknown output format: {fmt!r}")
    diagnostics = report.diagnostics
    if fmt == "text":
        TextRenderer(stream, color).render_all(diagnostics)
        stream.write(render_summary(report) + "\n")
        return
    if fmt == "json":
        text = render_json_lines(diagnostics)
    elif fmt == "gcc":
        text = render_gcc(diagnostics)
    else:
        text = render_summary(report)
    if text:
        stream.write(text + "\n")


def render_uses(path: str, uses: Sequence[PolyglotUse]) -> str:
    """One line per polyglot use: ``path:line:col kind language detail``."""
    lines = []
    for use in uses:
        detail = use.code or use.path or use.name or ""
        language = use.language.value if use.language is not None else (use.raw_language or "-")
        lines.append(f"{path}:{use.loc.line}:{use.loc.column}\t{use.kind.value}\t{language}\t{detail}")
    return "\n".join(lines)


def uses_to_json(path: str, uses: Sequence[PolyglotUse]) -> str:
    return "\n".join(json.dumps({"file": path, **use.to_dict()}) for use in uses)


# ═════════════════════════════════════════════════════════════════════════
#  S-EXPRESSION DUMP
# ═════════════════════════════════════════════════════════════════════════

def _loc_sexp(node: Any) -> List[Any]:
    loc = node.loc
    return [Symbol(":at"), loc.line, loc.column]


def expr_to_sexp(expr: Optional[Expr]) -> Any:
    """Convert an expression to a nested list with ``Symbol`` heads."""
    if expr is None:
        return Symbol("nil")
    if isinstance(expr, Literal):
        return [Symbol("lit"), Symbol(expr.kind), expr.text]
    if isinstance(expr, Name):
        return [Symbol("name"), expr.name]
    if isinstance(expr, This):
        return [Symbol(expr.keyword)]
    if isinstance(expr, FieldAccess):
        return [Symbol("field"), expr_to_sexp(expr.target), expr.name]
    if isinstance(expr, MethodCall):
        return ([Symbol("call"), expr_to_sexp(expr.target), expr.name]
                + [expr_to_sexp(a) for a in expr.args])
    if isinstance(expr, New):
        return [Symbol("new"), expr.type_name] + [expr_to_sexp(a) for a in expr.args]
    if isinstance(expr, Operation):
        return [Symbol("op"), expr.operator] + [expr_to_sexp(o) for o in expr.operands]
    if isinstance(expr, Unknown):
        return [Symbol("unknown"), expr.reason]
    return Symbol("?")


def statement_to_sexp(stmt: Statement) -> Any:
    if isinstance(stmt, Declare):
        parts: List[Any] = [Symbol("declare"), stmt.type_name, stmt.name, expr_to_sexp(stmt.init)]
        for flag in ("is_field", "is_param", "is_resource"):
            if getattr(stmt, flag):
                parts.append(Symbol(":" + flag[3:]))
        return parts + [[Symbol(":point"), stmt.point], _loc_sexp(stmt)]
    if isinstance(stmt, Assign):
        target = ("this." if stmt.via_this else "") + stmt.target
        return [Symbol("assign"), target, expr_to_sexp(stmt.value),
                [Symbol(":point"), stmt.point], _loc_sexp(stmt)]
    if isinstance(stmt, Call):
        return [Symbol("eval"), Symbol(stmt.label), expr_to_sexp(stmt.expr),
                [Symbol(":point"), stmt.point], _loc_sexp(stmt)]
    if isinstance(stmt, Block):
        parts = [Symbol("block"), Symbol(stmt.kind.value)]
        if stmt.label:
            parts.append([Symbol(":label"), stmt.label])
        parts.append([Symbol(":points"), stmt.point, stmt.end_point])
        if stmt.resources:
            parts.append([Symbol("resources")] + [statement_to_sexp(r) for r in stmt.resources])
        return parts + [statement_to_sexp(s) for s in stmt.statements]
    return Symbol("?")


def _import_sexp(imp: ImportDecl) -> Any:
    parts: List[Any] = [Symbol("import"), imp.name]
    if imp.is_static:
        parts.append(Symbol(":static"))
    if imp.is_wildcard:
        parts.append(Symbol(":wildcard"))
    return parts


def _method_sexp(method: MethodDecl) -> Any:
    head = Symbol("constructor" if method.is_constructor else "method")
    parts: List[Any] = [head, method.name,
                        [Symbol("params")] + [statement_to_sexp(p) for p in method.params]]
    if method.body is not None:
        parts.append(statement_to_sexp(method.body))
    return parts


def _class_sexp(cls: ClassDecl) -> Any:
    parts: List[Any] = [Symbol(cls.kind), cls.name]
    parts.extend(statement_to_sexp(f) for f in cls.fields)
    parts.extend(statement_to_sexp(b) for b in cls.initializers)
    parts.extend(_method_sexp(m) for m in cls.methods)
    parts.extend(_class_sexp(c) for c in cls.classes)
    return parts


def unit_to_sexp(unit: CompilationUnit) -> Any:
    parts: List[Any] = [Symbol("unit"), unit.path]
    if unit.package:
        parts.append([Symbol("package"), unit.package])
    parts.extend(_import_sexp(i) for i in unit.imports)
    parts.extend(_class_sexp(c) for c in unit.classes)
    if unit.skipped:
        parts.append([Symbol("skipped")] + [[s.text, s.loc.line, s.loc.column] for s in unit.skipped])
    return parts


def dump_sexp(unit: CompilationUnit) -> str:
    """S-expression text of the lowered AST of *unit*."""
    return sexpdata.dumps(unit_to_sexp(unit))


__all__ = [
    "FORMATS",
    "TextRenderer",
    "render_json_lines",
    "render_gcc",
    "render_summary",
    "write_report",
    "render_uses",
    "uses_to_json",
    "expr_to_sexp",
    "statement_to_sexp",
    "unit_to_sexp",
    "dump_sexp",
]
