# polyglint/polyglot.py
"""
Polyglot use inventory.

Lists the points where a unit crosses into a guest language through the
GraalVM polyglot API:

    ctx.eval("python", "print(42)")      EVAL_CODE    inline guest code
    ctx.eval(source)                     EVAL_SOURCE  a tracked Source handle
    bindings.getMember("x")              IMPORT       value read from a guest
    bindings.putMember("x", value)       EXPORT       value handed to a guest

For ``EVAL_SOURCE`` the language, code or file path is recovered from the
creation site of the Source (``Source.newBuilder("js", file).build()``,
``Source.create("python", "...")``), following local ``File`` variables
initialised with ``new File("path")``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from polyglint.aliasing import CreationSite, construction_args
from polyglint.ast_nodes import (
    Assign,
    Call,
    Declare,
    Expr,
    Literal,
    Location,
    MethodCall,
    Name,
    New,
    Statement,
    iter_subexpressions,
    receiver_root,
)
from polyglint.config import HandleKind, simple_type_name
from polyglint.errors import InvalidLanguageError
from polyglint.lifecycle import LifecycleAnalysis

logger = logging.getLogger(__name__)


class Language(Enum):
    PYTHON = "python"
    JAVASCRIPT = "js"
    JAVA = "java"


_LANGUAGE_NAMES: Dict[str, Language] = {
    "python": Language.PYTHON,
    "js": Language.JAVASCRIPT,
    "javascript": Language.JAVASCRIPT,
    "java": Language.JAVA,
}

_LANGUAGE_EXTENSIONS: Dict[str, Language] = {
    "py": Language.PYTHON,
    "js": Language.JAVASCRIPT,
    "java": Language.JAVA,
}


def language_from_string(text: str) -> Language:
    """
    Map a polyglot language id to a ``Language``.

    >>> language_from_string("js")
    <Language.JAVASCRIPT: 'js'>

    Raises ``InvalidLanguageError`` for anything else.
    """
    language = _LANGUAGE_NAMES.get(text)
    if language is None:
        raise InvalidLanguageError(text)
    return language


def language_from_extension(path: str) -> Optional[Language]:
    """Guess a guest language from a file name (``foo.py`` → PYTHON)."""
    if "." not in path:
        return None
    return _LANGUAGE_EXTENSIONS.get(path.rsplit(".", 1)[-1].lower())


class PolyglotUseKind(Enum):
    EVAL_CODE = "eval-code"
    EVAL_SOURCE = "eval-source"
    IMPORT = "import"
    EXPORT = "export"


@dataclass(frozen=True)
class PolyglotUse:
    kind: PolyglotUseKind
    loc: Location
    raw_language: Optional[str] = None
    language: Optional[Language] = None
    code: Optional[str] = None
    path: Optional[str] = None
    name: Optional[str] = None
    handle: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "line": self.loc.line,
            "column": self.loc.column,
            "language": self.raw_language,
            "code": self.code,
            "path": self.path,
            "name": self.name,
            "handle": self.handle,
        }


def _string(expr: Optional[Expr]) -> Optional[str]:
    if isinstance(expr, Literal) and expr.kind in ("string", "text"):
        return expr.value
    return None


def _parse_language(raw: Optional[str], loc: Location) -> Optional[Language]:
    if raw is None:
        return None
    try:
        return language_from_string(raw)
    except InvalidLanguageError as exc:
        logger.warning("%s: %s", loc, exc)
        return None


class PolyglotUseCollector:
    """Collects ``PolyglotUse`` records from an analysed unit."""

    # File variables are followed through at most this many plain copies
    MAX_FILE_HOPS = 8

    def __init__(self, analysis: LifecycleAnalysis) -> None:
        self._analysis = analysis
        self._table = analysis.table

    def collect(self) -> List[PolyglotUse]:
        uses: List[PolyglotUse] = []
        for stmt in self._table.statements:
            for expr in _calls_in(stmt):
                use = self._classify(expr, stmt.point)
                if use is not None:
                    uses.append(use)
        uses.sort(key=lambda u: (u.loc.line, u.loc.column))
        return uses

    def _classify(self, call: MethodCall, point: int) -> Optional[PolyglotUse]:
        if call.target is None:
            return None
        receiver = self._table.resolve(receiver_root(call))
        handle = receiver.name if receiver is not None else None

        if call.name == "eval" and len(call.args) == 2:
            raw = _string(call.args[0])
            return PolyglotUse(
                kind=PolyglotUseKind.EVAL_CODE,
                loc=call.loc,
                raw_language=raw,
                language=_parse_language(raw, call.loc),
                code=_string(call.args[1]),
                handle=handle,
            )
        if call.name == "eval" and len(call.args) == 1:
            return self._eval_source(call, point, handle)
        if call.name == "getMember" and call.args:
            return PolyglotUse(PolyglotUseKind.IMPORT, call.loc,
                               name=_string(call.args[0]), handle=handle)
        if call.name == "putMember" and len(call.args) == 2:
            return PolyglotUse(PolyglotUseKind.EXPORT, call.loc,
                               name=_string(call.args[0]), handle=handle)
        return None

    def _eval_source(self, call: MethodCall, point: int, handle: Optional[str]) -> Optional[PolyglotUse]:
        source = self._table.resolve(call.args[0])
        if source is None or source.kind is not HandleKind.SOURCE:
            return None
        node = self._analysis.aliases.binding_at(source.id, point)
        origin = self._analysis.aliases.origin(node) if node is not None else None
        raw = origin.language if origin is not None else None
        code = path = None
        if origin is not None:
            code, path = self._payload(origin)
        language = _parse_language(raw, call.loc)
        if language is None and path is not None:
            language = language_from_extension(path)
        return PolyglotUse(
            kind=PolyglotUseKind.EVAL_SOURCE,
            loc=call.loc,
            raw_language=raw,
            language=language,
            code=code,
            path=path,
            name=source.name,
            handle=handle,
        )

    def _payload(self, origin: CreationSite) -> Tuple[Optional[str], Optional[str]]:
        """(code, path) given as the second argument of a Source creation."""
        args = construction_args(origin.expr)
        if len(args) < 2:
            return None, None
        payload = args[1]
        text = _string(payload)
        if text is not None:
            return text, None
        return None, self._file_path(payload, origin.point, self.MAX_FILE_HOPS)

    def _file_path(self, expr: Optional[Expr], point: int, hops: int) -> Optional[str]:
        if isinstance(expr, New) and simple_type_name(expr.type_name) == "File" and expr.args:
            return _string(expr.args[0])
        if isinstance(expr, Name) and hops > 0:
            decl = self._local_declaration(expr.name, point)
            if decl is not None:
                return self._file_path(decl.init, decl.point, hops - 1)
        return None

    def _local_declaration(self, name: str, point: int) -> Optional[Declare]:
        """Closest earlier declaration of *name* in the same method or class."""
        region = self._table.scope_at(point).region
        for earlier in range(point - 1, -1, -1):
            stmt = self._table.statements[earlier]
            scope = self._table.statement_scope[earlier]
            if scope is None or not scope.is_within(region):
                continue
            if isinstance(stmt, Declare) and stmt.name == name:
                return stmt
        return None


def _calls_in(stmt: Optional[Statement]) -> List[MethodCall]:
    if isinstance(stmt, Declare):
        root = stmt.init
    elif isinstance(stmt, Assign):
        root = stmt.value
    elif isinstance(stmt, Call):
        root = stmt.expr
    else:
        return []
    return [e for e in iter_subexpressions(root) if isinstance(e, MethodCall)]


def collect_uses(analysis: LifecycleAnalysis) -> List[PolyglotUse]:
    return PolyglotUseCollector(analysis).collect()


__all__ = [
    "Language",
    "language_from_string",
    "language_from_extension",
    "PolyglotUseKind",
    "PolyglotUse",
    "PolyglotUseCollector",
    "collect_uses",
]
