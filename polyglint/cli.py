"""
polyglint/cli.py
════════════════

Command-line interface.

Commands
────────
  check      Analyse Java units and report lifecycle diagnostics
  uses       List polyglot uses (eval / getMember / putMember)
  dump-sexp  Dump the lowered AST of one unit as S-expressions
  checkers   List the available checkers

Exit codes: 0 clean, 1 error diagnostics, 2 infrastructure failure
(unreadable or unsupported unit, bad configuration, internal error).
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap
import traceback
from pathlib import Path
from typing import List, Optional, Sequence

from polyglint import __version__
from polyglint.analyzer import EXIT_ERROR, EXIT_INFRA, EXIT_OK, Analyzer, SourceUnit
from polyglint.checkers import default_registry
from polyglint.config import AnalyzerConfig
from polyglint.errors import ConfigError, UnitParseError
from polyglint.parser import parse
from polyglint.reporting import FORMATS, dump_sexp, render_uses, uses_to_json, write_report

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s"


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root = logging.getLogger("polyglint")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False


# ═══════════════════════════════════════════════════════════════════════════
# SOURCE LOADING
# ═══════════════════════════════════════════════════════════════════════════

def load_unit(path: str) -> SourceUnit:
    """Read one unit; I/O and decoding failures are carried, not raised."""
    if path == "-":
        return SourceUnit("<stdin>", text=sys.stdin.read())
    try:
        text = Path(path).read_bytes().decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("cannot load %s: %s", path, exc)
        return SourceUnit(path, load_error=str(exc))
    return SourceUnit(path, text=text)


def _expand(paths: Sequence[str]) -> List[str]:
    """Directories expand to the ``*.java`` files they contain."""
    expanded: List[str] = []
    for path in paths:
        if path != "-" and os.path.isdir(path):
            expanded.extend(sorted(str(p) for p in Path(path).rglob("*.java")))
        else:
            expanded.append(path)
    return expanded


def load_units(paths: Sequence[str]) -> List[SourceUnit]:
    return [load_unit(path) for path in _expand(paths)]


def _build_config(args: argparse.Namespace) -> AnalyzerConfig:
    config = AnalyzerConfig()
    if getattr(args, "config", None):
        try:
            text = Path(args.config).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"cannot read configuration {args.config}: {exc}", cause=exc) from exc
        config = AnalyzerConfig.from_json(text)

    overrides = {}
    if getattr(args, "fail_on_unused", False):
        overrides["fail_on_unused"] = True
    if getattr(args, "import_shadowing", False):
        overrides["check_import_shadowing"] = True
    if getattr(args, "tracked", None):
        overrides["tracked_types"] = list(args.tracked)
    if getattr(args, "workers", None) is not None:
        overrides["workers"] = args.workers
    if getattr(args, "timeout", None) is not None:
        overrides["unit_timeout"] = args.timeout
    if getattr(args, "suppress", None):
        overrides["suppress"] = sorted(set(config.suppress) | set(args.suppress))
    if getattr(args, "disable", None):
        overrides["disabled_checkers"] = sorted(set(config.disabled_checkers) | set(args.disable))
    return config.with_overrides(**overrides) if overrides else config


# ═══════════════════════════════════════════════════════════════════════════
# COMMAND HANDLERS
# ═══════════════════════════════════════════════════════════════════════════

def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    try:
        config = _build_config(args)
    except ConfigError as exc:
        sys.stderr.write(f"polyglint: {exc}\n")
        return EXIT_INFRA

    report = Analyzer(config).analyze(load_units(args.files))
    color = not args.no_color and sys.stdout.isatty()
    write_report(report, args.format, sys.stdout, color=color)
    return report.exit_status


def cmd_uses(args: argparse.Namespace) -> int:
    """Handle the 'uses' command."""
    try:
        config = _build_config(args)
    except ConfigError as exc:
        sys.stderr.write(f"polyglint: {exc}\n")
        return EXIT_INFRA

    report = Analyzer(config).analyze(load_units(args.files))
    for unit in report.units:
        if unit.skipped:
            sys.stderr.write(f"{unit.path}: skipped: {unit.error}\n")
            continue
        text = uses_to_json(unit.path, unit.uses) if args.json else render_uses(unit.path, unit.uses)
        if text:
            sys.stdout.write(text + "\n")
    return EXIT_INFRA if report.fatal_units else EXIT_OK


def cmd_dump_sexp(args: argparse.Namespace) -> int:
    """Handle the 'dump-sexp' command."""
    unit = load_unit(args.input)
    if unit.load_error is not None:
        sys.stderr.write(f"{unit.path}: cannot read unit: {unit.load_error}\n")
        return EXIT_INFRA
    try:
        compilation_unit = parse(unit.text, unit.path)
    except UnitParseError as exc:
        sys.stderr.write(f"{exc}\n")
        return EXIT_INFRA
    sys.stdout.write(dump_sexp(compilation_unit) + "\n")
    return EXIT_OK


def cmd_checkers(args: argparse.Namespace) -> int:
    """Handle the 'checkers' command."""
    registry = default_registry()
    for name in registry.names:
        cls = registry.get_by_name(name)
        opt_in = " (opt-in)" if cls.opt_in else ""
        print(f"  {name:20s} {cls.description}{opt_in}")
        print(f"  {'':20s} ID: {cls.kind.value}, severity: {cls.kind.default_severity}")
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def _add_analysis_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("files", nargs="+",
                        help="Java source files or directories ('-' for stdin)")
    parser.add_argument("--config", metavar="FILE",
                        help="JSON configuration file")
    parser.add_argument("--track", dest="tracked", action="append", metavar="TYPE",
                        help="Tracked resource type (repeatable; replaces the defaults)")
    parser.add_argument("-j", "--workers", type=int, metavar="N",
                        help="Number of worker threads")
    parser.add_argument("--timeout", type=float, metavar="SECONDS",
                        help="Coarse per-unit analysis timeout")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polyglint",
        description="Resource lifecycle analyzer for GraalVM polyglot Java sources",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s check src/
              %(prog)s check Main.java --format gcc --fail-on-unused
              %(prog)s uses Main.java --json
              %(prog)s dump-sexp Main.java
              %(prog)s checkers
        """),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="available commands",
        metavar="<command>",
    )

    # ── check ────────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check",
        help="Report resource lifecycle diagnostics",
    )
    _add_analysis_options(p_check)
    p_check.add_argument("--format", choices=FORMATS, default="text",
                         help="Output format (default: text)")
    p_check.add_argument("--fail-on-unused", action="store_true",
                         help="Report UnusedHandle as an error")
    p_check.add_argument("--import-shadowing", action="store_true",
                         help="Enable the ImportShadowing check")
    p_check.add_argument("--suppress", action="append", metavar="ID",
                         help="Suppress an error id globally (repeatable)")
    p_check.add_argument("--disable", action="append", metavar="CHECKER",
                         help="Disable a checker by name (repeatable)")
    p_check.add_argument("--no-color", action="store_true",
                         help="Disable coloured output")
    p_check.set_defaults(func=cmd_check)

    # ── uses ─────────────────────────────────────────────────────────────

    p_uses = subparsers.add_parser(
        "uses",
        help="List polyglot eval / import / export sites",
    )
    _add_analysis_options(p_uses)
    p_uses.add_argument("--json", action="store_true",
                        help="One JSON object per use")
    p_uses.set_defaults(func=cmd_uses)

    # ── dump-sexp ────────────────────────────────────────────────────────

    p_dump = subparsers.add_parser(
        "dump-sexp",
        help="Dump the lowered AST as S-expressions",
    )
    p_dump.add_argument("input", help="Java source file ('-' for stdin)")
    p_dump.set_defaults(func=cmd_dump_sexp)

    # ── checkers ─────────────────────────────────────────────────────────

    p_checkers = subparsers.add_parser("checkers", help="List available checkers")
    p_checkers.set_defaults(func=cmd_checkers)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the polyglint CLI.

    Returns
    -------
    int
        Exit code (0 = clean, 1 = error diagnostics, 2 = failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_OK
    except Exception as exc:
        sys.stderr.write(f"polyglint: internal error: {exc}\n")
        traceback.print_exc()
        return EXIT_INFRA


__all__ = ["main", "build_parser", "load_unit", "load_units", "EXIT_OK", "EXIT_ERROR", "EXIT_INFRA"]
