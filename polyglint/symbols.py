# polyglint/symbols.py
"""
Symbol Table Builder.

Walks one ``CompilationUnit`` and produces a ``SymbolTable``:

* the scope tree (CLASS → METHOD → ACQUISITION / BLOCK), each scope owned
  by exactly one parent;
* one ``Handle`` per variable, parameter, resource variable or field whose
  declared (or ``var``-inferred) type is tracked;
* the handle every ``Name`` / ``this.name`` occurrence resolves to;
* the handle written by every tracked ``Assign``;
* every reference to a tracked type name.

Untracked declarations are remembered as opaque names so that they shadow
outer handles correctly, but produce no handle.  Shadowing is legal: an
inner declaration of an existing name simply becomes a new handle.

Visibility follows Java block scoping: a local is visible in its
declaring scope and nested scopes *after* its declaration; a field is
visible throughout its class (and nested classes).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from polyglint.ast_nodes import (
    Assign,
    Block,
    BlockKind,
    Call,
    ClassDecl,
    CompilationUnit,
    Declare,
    Expr,
    FieldAccess,
    Location,
    MethodCall,
    Name,
    New,
    Statement,
    This,
    iter_subexpressions,
    receiver_root,
)
from polyglint.config import HandleKind, TrackedTypeTable

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    CLASS = "class"
    METHOD = "method"
    ACQUISITION = "acquisition"
    BLOCK = "block"


@dataclass(eq=False)
class Scope:
    """A lexical region of the unit."""

    id: int
    kind: ScopeKind
    name: str
    parent: Optional["Scope"] = None
    start: int = -1
    end: int = -1
    depth: int = 0
    children: List["Scope"] = field(default_factory=list)
    # declared name → handle id, or None for an untracked (opaque) name
    names: Dict[str, Optional[int]] = field(default_factory=dict)
    block: Optional[Block] = None
    class_decl: Optional[ClassDecl] = None

    def contains_point(self, point: int) -> bool:
        return self.start <= point <= self.end

    def is_within(self, other: "Scope") -> bool:
        """True if this scope is *other* or nested inside it."""
        scope: Optional[Scope] = self
        while scope is not None:
            if scope is other:
                return True
            scope = scope.parent
        return False

    @property
    def region(self) -> "Scope":
        """Nearest enclosing METHOD scope, or the CLASS scope for fields."""
        scope: Scope = self
        while scope.kind not in (ScopeKind.METHOD, ScopeKind.CLASS) and scope.parent is not None:
            scope = scope.parent
        return scope

    @property
    def class_scope(self) -> "Scope":
        scope: Scope = self
        while scope.kind is not ScopeKind.CLASS and scope.parent is not None:
            scope = scope.parent
        return scope

    def __repr__(self) -> str:
        return f"Scope({self.kind.value}:{self.name}#{self.id} [{self.start}..{self.end}])"


@dataclass(eq=False)
class Handle:
    """A tracked variable or field referring to a lifecycle-managed resource."""

    id: int
    name: str
    kind: HandleKind
    type_name: str
    site: Location
    scope: Scope
    point: int
    declaration: Declare
    is_field: bool = False
    is_param: bool = False
    acquired: bool = False

    @property
    def label(self) -> str:
        prefix = "field " if self.is_field else ""
        return f"{prefix}'{self.name}'"

    def __repr__(self) -> str:
        return f"Handle#{self.id}({self.name}: {self.type_name} @ {self.site})"


@dataclass(frozen=True)
class TypeReference:
    """An occurrence of a tracked type name in declarations or creations."""
    name: str
    loc: Location
    context: str  # "declaration", "creation", "static"


@dataclass(eq=False)
class SymbolTable:
    unit: CompilationUnit
    handles: Dict[int, Handle] = field(default_factory=dict)
    scopes: List[Scope] = field(default_factory=list)
    resolutions: Dict[Expr, int] = field(default_factory=dict)
    declared: Dict[Declare, int] = field(default_factory=dict)
    assigned: Dict[Assign, int] = field(default_factory=dict)
    statements: List[Optional[Statement]] = field(default_factory=list)
    statement_scope: List[Optional[Scope]] = field(default_factory=list)
    type_references: List[TypeReference] = field(default_factory=list)
    # handle id → program points where the handle is read
    occurrences: Dict[int, List[int]] = field(default_factory=dict)

    # ── queries ──

    def handle(self, handle_id: int) -> Handle:
        return self.handles[handle_id]

    def resolve(self, expr: Optional[Expr]) -> Optional[Handle]:
        """Handle a ``Name`` / ``this.x`` occurrence resolves to, if any."""
        if expr is None:
            return None
        handle_id = self.resolutions.get(expr)
        return self.handles[handle_id] if handle_id is not None else None

    def handles_named(self, name: str) -> List[Handle]:
        return [h for h in self.handles.values() if h.name == name]

    def handles_in(self, scope: Scope) -> List[Handle]:
        """Handles declared directly in *scope*."""
        return [h for h in self.handles.values() if h.scope is scope]

    def scope_at(self, point: int) -> Scope:
        scope = self.statement_scope[point]
        assert scope is not None, f"program point {point} was never visited"
        return scope

    @property
    def class_scopes(self) -> List[Scope]:
        return [s for s in self.scopes if s.kind is ScopeKind.CLASS]

    @property
    def regions(self) -> List[Scope]:
        """Every method / initializer scope plus every class scope."""
        return [s for s in self.scopes if s.kind in (ScopeKind.CLASS, ScopeKind.METHOD)]

    def __iter__(self) -> Iterator[Handle]:
        return iter(self.handles.values())

    def __len__(self) -> int:
        return len(self.handles)


# ═══════════════════════════════════════════════════════════════════
#  BUILDER
# ═══════════════════════════════════════════════════════════════════

def creation_type(expr: Optional[Expr], table: SymbolTable,
                  tracked: TrackedTypeTable) -> Optional[str]:
    """
    Tracked type created by *expr*, or ``None``.

    A creation is ``new T(...)`` with ``T`` tracked, or a static call
    chain rooted at a tracked type name (``Source.newBuilder(...).build()``)
    whose root does not resolve to a variable.
    """
    if isinstance(expr, New):
        return expr.type_name if tracked.is_tracked(expr.type_name) else None
    if isinstance(expr, MethodCall) and expr.target is not None:
        root = receiver_root(expr)
        if isinstance(root, Name) and root not in table.resolutions and tracked.is_tracked(root.name):
            return root.name
        if isinstance(root, New) and tracked.is_tracked(root.type_name):
            return root.type_name
    return None


class SymbolTableBuilder:
    """Builds a ``SymbolTable`` for one compilation unit."""

    def __init__(self, tracked: TrackedTypeTable):
        self._tracked = tracked
        self._table: Optional[SymbolTable] = None

    def build(self, unit: CompilationUnit) -> SymbolTable:
        self._table = SymbolTable(unit)
        self._table.statements = [None] * unit.point_count
        self._table.statement_scope = [None] * unit.point_count
        for cls in unit.classes:
            self._visit_class(cls, None)
        table = self._table
        logger.debug("%s: %d handles in %d scopes", unit.path, len(table.handles), len(table.scopes))
        return table

    # ── scopes ──

    def _open(self, kind: ScopeKind, name: str, parent: Optional[Scope],
              block: Optional[Block] = None) -> Scope:
        table = self._table
        scope = Scope(
            id=len(table.scopes),
            kind=kind,
            name=name,
            parent=parent,
            depth=parent.depth + 1 if parent is not None else 0,
            block=block,
        )
        if block is not None:
            scope.start, scope.end = block.point, block.end_point
        if parent is not None:
            parent.children.append(scope)
        table.scopes.append(scope)
        return scope

    @staticmethod
    def _extend(scope: Scope, first: int, last: int) -> None:
        current: Optional[Scope] = scope
        while current is not None:
            current.start = first if current.start < 0 else min(current.start, first)
            current.end = max(current.end, last)
            if current.kind is ScopeKind.CLASS:
                break
            current = current.parent

    def _record(self, stmt: Statement, scope: Scope) -> None:
        self._table.statements[stmt.point] = stmt
        self._table.statement_scope[stmt.point] = scope
        last = stmt.end_point if isinstance(stmt, Block) else stmt.point
        self._extend(scope, stmt.point, last)

    # ── lookup ──

    @staticmethod
    def _lookup(scope: Scope, name: str) -> Optional[int]:
        current: Optional[Scope] = scope
        while current is not None:
            if name in current.names:
                return current.names[name]
            current = current.parent
        return None

    @staticmethod
    def _lookup_field(scope: Scope, name: str) -> Optional[int]:
        return scope.class_scope.names.get(name)

    # ── declarations ──

    def _declare(self, decl: Declare, scope: Scope) -> Optional[Handle]:
        table = self._table
        type_name = decl.type_name
        if type_name == "var":
            type_name = self._infer(decl.init, scope) or type_name
        kind = self._tracked.classify(type_name)
        if kind is None:
            scope.names[decl.name] = None
            return None
        if type_name == decl.type_name:
            table.type_references.append(TypeReference(type_name, decl.loc, "declaration"))
        handle = Handle(
            id=len(table.handles),
            name=decl.name,
            kind=kind,
            type_name=type_name,
            site=decl.name_loc,
            scope=scope,
            point=decl.point,
            declaration=decl,
            is_field=decl.is_field,
            is_param=decl.is_param,
            acquired=decl.is_resource,
        )
        table.handles[handle.id] = handle
        table.declared[decl] = handle.id
        scope.names[decl.name] = handle.id
        logger.debug("declared %r in %r", handle, scope)
        return handle

    def _infer(self, init: Optional[Expr], scope: Scope) -> Optional[str]:
        created = creation_type(init, self._table, self._tracked)
        if created is not None:
            return created
        if isinstance(init, Name):
            handle_id = self._table.resolutions.get(init)
            if handle_id is not None:
                return self._table.handles[handle_id].type_name
        return None

    # ── expressions ──

    def _resolve(self, expr: Optional[Expr], scope: Scope, point: int) -> None:
        table = self._table
        for sub in iter_subexpressions(expr):
            if isinstance(sub, Name):
                handle_id = self._lookup(scope, sub.name)
                if handle_id is not None:
                    table.resolutions[sub] = handle_id
                    table.occurrences.setdefault(handle_id, []).append(point)
            elif (isinstance(sub, FieldAccess) and isinstance(sub.target, This)
                  and sub.target.keyword == "this"):
                handle_id = self._lookup_field(scope, sub.name)
                if handle_id is not None:
                    table.resolutions[sub] = handle_id
                    table.occurrences.setdefault(handle_id, []).append(point)
            elif isinstance(sub, New) and self._tracked.is_tracked(sub.type_name):
                table.type_references.append(TypeReference(sub.type_name, sub.loc, "creation"))
        for sub in iter_subexpressions(expr):
            if isinstance(sub, MethodCall) and sub.target is not None:
                root = sub.target
                if (isinstance(root, Name) and root not in table.resolutions
                        and self._tracked.is_tracked(root.name)):
                    table.type_references.append(TypeReference(root.name, root.loc, "static"))

    # ── statements ──

    def _visit_class(self, cls: ClassDecl, parent: Optional[Scope]) -> None:
        scope = self._open(ScopeKind.CLASS, cls.name, parent)
        scope.class_decl = cls
        for decl in cls.fields:
            self._declare(decl, scope)
        for decl in cls.fields:
            self._record(decl, scope)
            self._resolve(decl.init, scope, decl.point)
        for block in cls.initializers:
            region = self._open(ScopeKind.METHOD, f"<{block.label}>", scope)
            self._record(block, region)
            for stmt in block.statements:
                self._visit(stmt, region)
        for method in cls.methods:
            region = self._open(ScopeKind.METHOD, method.name, scope)
            for param in method.params:
                self._record(param, region)
                self._declare(param, region)
            if method.body is not None:
                self._record(method.body, region)
                for stmt in method.body.statements:
                    self._visit(stmt, region)
        for nested in cls.classes:
            self._visit_class(nested, scope)

    def _visit(self, stmt: Statement, scope: Scope) -> None:
        self._record(stmt, scope)
        if isinstance(stmt, Declare):
            self._resolve(stmt.init, scope, stmt.point)
            self._declare(stmt, scope)
        elif isinstance(stmt, Assign):
            self._resolve(stmt.value, scope, stmt.point)
            if stmt.via_this:
                handle_id = self._lookup_field(scope, stmt.target)
            else:
                handle_id = self._lookup(scope, stmt.target)
            if handle_id is not None:
                self._table.assigned[stmt] = handle_id
        elif isinstance(stmt, Call):
            self._resolve(stmt.expr, scope, stmt.point)
        elif isinstance(stmt, Block):
            kind = ScopeKind.ACQUISITION if stmt.kind is BlockKind.ACQUISITION else ScopeKind.BLOCK
            inner = self._open(kind, stmt.label or kind.value, scope, stmt)
            for resource in stmt.resources:
                self._visit(resource, inner)
            for child in stmt.statements:
                self._visit(child, inner)


def build_symbol_table(unit: CompilationUnit, tracked: TrackedTypeTable) -> SymbolTable:
    return SymbolTableBuilder(tracked).build(unit)


__all__ = [
    "ScopeKind",
    "Scope",
    "Handle",
    "TypeReference",
    "SymbolTable",
    "SymbolTableBuilder",
    "build_symbol_table",
    "creation_type",
]
