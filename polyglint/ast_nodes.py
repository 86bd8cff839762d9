# polyglint/ast_nodes.py
"""
AST node definitions for the analysed Java subset.

Statements are a closed tagged variant: every statement is one of
``Declare``, ``Assign``, ``Call`` or ``Block`` and exposes its
``StatementTag``.  Control flow (``if``, loops, ``catch``, ``finally``) is
lowered by the parser into plain blocks, so passes only ever switch over
these four tags.

Every node carries a source location.  After parsing, statements are
numbered with *program points*: consecutive integers in analysis order
(fields of a class first, then its methods, then nested classes).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Iterator, List, Optional, Tuple, Union


# ── Source Location ──────────────────────────────────────────────

@dataclass(frozen=True)
class Location:
    """1-based line / column of a node in its source unit."""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


# ── Expressions ──────────────────────────────────────────────────

class Expr:
    """Marker base class for expression nodes."""


@dataclass(eq=False)
class Literal(Expr):
    kind: str  # "string", "text", "char", "number", "bool", "null"
    text: str
    loc: Location = field(default_factory=Location)

    @property
    def value(self) -> str:
        """Literal text with string / char quotes removed."""
        if self.kind == "text":
            return self.text[3:-3]
        if self.kind in ("string", "char"):
            return self.text[1:-1]
        return self.text


@dataclass(eq=False)
class Name(Expr):
    name: str
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class This(Expr):
    keyword: str = "this"
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class FieldAccess(Expr):
    target: Expr
    name: str
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class MethodCall(Expr):
    target: Optional[Expr]
    name: str
    args: List[Expr] = field(default_factory=list)
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class New(Expr):
    type_name: str
    args: List[Expr] = field(default_factory=list)
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class Operation(Expr):
    """Any operator application the analysis does not model precisely."""
    operator: str
    operands: List[Expr] = field(default_factory=list)
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class Unknown(Expr):
    """A value of unknown provenance (loop element, lambda, parameter)."""
    reason: str = ""
    loc: Location = field(default_factory=Location)


ExprNode = Union[Literal, Name, This, FieldAccess, MethodCall, New, Operation, Unknown]


# ── Statements ───────────────────────────────────────────────────

class StatementTag(Enum):
    DECLARE = "declare"
    ASSIGN = "assign"
    CALL = "call"
    BLOCK = "block"


class BlockKind(Enum):
    METHOD = "method"
    ACQUISITION = "acquisition"
    PLAIN = "plain"


class Statement:
    """Marker base class for statement nodes."""
    tag: ClassVar[StatementTag]


@dataclass(eq=False)
class Declare(Statement):
    """Local variable, parameter, resource variable or field declaration."""
    tag: ClassVar[StatementTag] = StatementTag.DECLARE

    type_name: str
    name: str
    init: Optional[Expr] = None
    modifiers: Tuple[str, ...] = ()
    is_field: bool = False
    is_param: bool = False
    is_resource: bool = False
    loc: Location = field(default_factory=Location)
    name_loc: Location = field(default_factory=Location)
    point: int = -1


@dataclass(eq=False)
class Assign(Statement):
    """Simple assignment ``name = value`` or ``this.name = value``."""
    tag: ClassVar[StatementTag] = StatementTag.ASSIGN

    target: str
    value: Expr
    via_this: bool = False
    loc: Location = field(default_factory=Location)
    point: int = -1


@dataclass(eq=False)
class Call(Statement):
    """An expression evaluated for its effect (call, return, condition...)."""
    tag: ClassVar[StatementTag] = StatementTag.CALL

    expr: Expr
    label: str = "expr"
    loc: Location = field(default_factory=Location)
    point: int = -1


@dataclass(eq=False)
class Block(Statement):
    """
    A lexical scope.

    ``resources`` is only populated for acquisition blocks
    (try-with-resources): each entry is a ``Declare`` (``try (T x = e)``)
    or a ``Call`` wrapping the referenced name (``try (x)``).
    """
    tag: ClassVar[StatementTag] = StatementTag.BLOCK

    kind: BlockKind = BlockKind.PLAIN
    statements: List[Statement] = field(default_factory=list)
    resources: List[Statement] = field(default_factory=list)
    label: str = ""
    loc: Location = field(default_factory=Location)
    end_loc: Location = field(default_factory=Location)
    point: int = -1
    end_point: int = -1


# ── Declarations ─────────────────────────────────────────────────

@dataclass(eq=False)
class ImportDecl:
    name: str
    is_static: bool = False
    is_wildcard: bool = False
    loc: Location = field(default_factory=Location)

    @property
    def simple_name(self) -> str:
        return "*" if self.is_wildcard else self.name.rsplit(".", 1)[-1]

    @property
    def package(self) -> str:
        if self.is_wildcard:
            return self.name
        return self.name.rsplit(".", 1)[0] if "." in self.name else ""


@dataclass(eq=False)
class MethodDecl:
    name: str
    params: List[Declare] = field(default_factory=list)
    body: Optional[Block] = None
    is_constructor: bool = False
    modifiers: Tuple[str, ...] = ()
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class ClassDecl:
    name: str
    kind: str = "class"
    fields: List[Declare] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)
    initializers: List[Block] = field(default_factory=list)
    classes: List["ClassDecl"] = field(default_factory=list)
    loc: Location = field(default_factory=Location)


@dataclass(frozen=True)
class SkippedStatement:
    """A malformed statement or member the parser stepped over."""
    text: str
    loc: Location = field(default_factory=Location)


@dataclass(eq=False)
class CompilationUnit:
    path: str = "<unknown>"
    package: Optional[str] = None
    imports: List[ImportDecl] = field(default_factory=list)
    classes: List[ClassDecl] = field(default_factory=list)
    skipped: List[SkippedStatement] = field(default_factory=list)
    point_count: int = 0


# ═══════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════

def render(expr: Optional[Expr]) -> str:
    """Canonical whitespace-free rendering of an expression."""
    if expr is None:
        return ""
    if isinstance(expr, Literal):
        return expr.text
    if isinstance(expr, Name):
        return expr.name
    if isinstance(expr, This):
        return expr.keyword
    if isinstance(expr, FieldAccess):
        return f"{render(expr.target)}.{expr.name}"
    if isinstance(expr, MethodCall):
        prefix = f"{render(expr.target)}." if expr.target is not None else ""
        return f"{prefix}{expr.name}({','.join(render(a) for a in expr.args)})"
    if isinstance(expr, New):
        return f"new {expr.type_name}({','.join(render(a) for a in expr.args)})"
    if isinstance(expr, Operation):
        return f"{expr.operator}({','.join(render(o) for o in expr.operands)})"
    return "?"


def receiver_root(expr: Expr) -> Expr:
    """
    Innermost receiver of a member-access chain.

    ``a.b().c()`` → ``Name(a)``; ``this.x.y()`` → ``FieldAccess(this, x)``.
    """
    node = expr
    while True:
        if isinstance(node, MethodCall) and node.target is not None:
            node = node.target
        elif isinstance(node, FieldAccess) and not isinstance(node.target, This):
            node = node.target
        else:
            return node


def iter_subexpressions(expr: Optional[Expr]) -> Iterator[Expr]:
    """Yield *expr* and all nested expressions, pre-order."""
    if expr is None:
        return
    yield expr
    if isinstance(expr, FieldAccess):
        yield from iter_subexpressions(expr.target)
    elif isinstance(expr, MethodCall):
        yield from iter_subexpressions(expr.target)
        for arg in expr.args:
            yield from iter_subexpressions(arg)
    elif isinstance(expr, New):
        for arg in expr.args:
            yield from iter_subexpressions(arg)
    elif isinstance(expr, Operation):
        for operand in expr.operands:
            yield from iter_subexpressions(operand)


def iter_statements(statements: List[Statement]) -> Iterator[Statement]:
    """Yield statements depth-first in program-point order."""
    for stmt in statements:
        yield stmt
        if isinstance(stmt, Block):
            yield from iter_statements(stmt.resources)
            yield from iter_statements(stmt.statements)


def iter_class_statements(cls: ClassDecl) -> Iterator[Statement]:
    """All statements of *cls* (not nested classes) in analysis order."""
    yield from cls.fields
    for block in cls.initializers:
        yield from iter_statements([block])
    for method in cls.methods:
        yield from method.params
        if method.body is not None:
            yield from iter_statements([method.body])


def iter_classes(unit: CompilationUnit) -> Iterator[ClassDecl]:
    """Every class of the unit, outer classes before their nested ones."""
    pending = list(unit.classes)
    while pending:
        cls = pending.pop(0)
        yield cls
        pending[0:0] = cls.classes


def number_statements(unit: CompilationUnit) -> int:
    """Assign program points to every statement; returns the count."""
    counter = 0

    def _number(stmt: Statement) -> None:
        nonlocal counter
        stmt.point = counter
        counter += 1
        if isinstance(stmt, Block):
            for child in stmt.resources:
                _number(child)
            for child in stmt.statements:
                _number(child)
            stmt.end_point = counter - 1

    for cls in iter_classes(unit):
        for decl in cls.fields:
            _number(decl)
        for block in cls.initializers:
            _number(block)
        for method in cls.methods:
            for param in method.params:
                _number(param)
            if method.body is not None:
                _number(method.body)
    unit.point_count = counter
    return counter


__all__ = [
    "Location",
    "Expr", "Literal", "Name", "This", "FieldAccess", "MethodCall", "New",
    "Operation", "Unknown",
    "StatementTag", "BlockKind", "Statement",
    "Declare", "Assign", "Call", "Block",
    "ImportDecl", "MethodDecl", "ClassDecl", "SkippedStatement", "CompilationUnit",
    "render", "receiver_root", "iter_subexpressions", "iter_statements",
    "iter_class_statements", "iter_classes", "number_statements",
]
