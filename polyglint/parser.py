# polyglint/parser.py
"""
Parse Java source text into a polyglint ``CompilationUnit``.

``JAVA_GRAMMAR`` produces a parsimonious parse tree; ``JavaASTBuilder``
walks it bottom-up and lowers it into the four-statement AST of
``polyglint.ast_nodes``:

* ``if`` / loops / ``synchronized`` become a ``Call`` for the evaluated
  condition followed by a plain ``Block``.
* ``try`` with resources becomes an ``ACQUISITION`` block; ``catch`` and
  ``finally`` become plain blocks after it.
* ``return`` / ``throw`` / ``assert`` / ``switch`` become ``Call``.
* compound assignments (``x += e``) become ``Call(Operation)``.
* lambda bodies, anonymous class bodies and ``switch`` bodies are opaque:
  only the names they mention are kept, as operands of an ``Operation``.

Statements and members the grammar could not recognise are collected in
``CompilationUnit.skipped``.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.nodes import NodeVisitor

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
    ImportDecl,
    Literal,
    Location,
    MethodCall,
    MethodDecl,
    Name,
    New,
    Operation,
    SkippedStatement,
    Statement,
    This,
    Unknown,
    number_statements,
)
from polyglint.errors import UnitParseError
from polyglint.grammar import JAVA_GRAMMAR

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"(?<![\w$.])[A-Za-z_$][\w$]*")
_STRING_RE = re.compile(r'"(?:[^"\\\n]|\\.)*"|\'(?:[^\'\\\n]|\\.)+\'')
_RESERVED = frozenset("""
    abstract assert boolean break byte case catch char class continue default
    do double else enum extends final finally float for if implements import
    instanceof int interface long native new null package private protected
    public return short static super switch synchronized this throw throws
    transient true false try var void volatile while yield
""".split())


# ── Intermediate values (never escape the builder) ───────────────

@dataclass
class _Ident:
    name: str
    loc: Location


@dataclass
class _Type:
    text: str
    loc: Location


@dataclass
class _Mod:
    name: str


@dataclass
class _Annotation:
    name: str


@dataclass
class _Group:
    """An opaque balanced ``{...}`` or ``(...)`` group."""
    text: str
    loc: Location


@dataclass
class _Args:
    items: List[Expr]


@dataclass
class _Params:
    items: List[Declare]


@dataclass
class _Declarator:
    ident: _Ident
    dims: str
    init: Optional[Expr]


@dataclass
class _Selector:
    kind: str  # "method", "field", "ref", "index"
    name: str
    args: List[Expr] = field(default_factory=list)
    loc: Location = field(default_factory=Location)


@dataclass
class _Tail:
    operator: str
    operand: Optional[Expr] = None


@dataclass
class _Branches:
    then: Expr
    otherwise: Expr


@dataclass
class _Creation:
    args: List[Expr]
    body: Optional[_Group]
    is_array: bool = False


@dataclass
class _ThisField:
    ident: _Ident


@dataclass
class _ForEach:
    decl: Declare
    iterable: Expr


@dataclass
class _ForClassic:
    init: List[Statement]
    condition: Optional[Expr]
    updates: List[Statement]


@dataclass
class _Body:
    members: List[Any]


@dataclass
class _Package:
    name: str


# ═══════════════════════════════════════════════════════════════════
#  PARSE TREE → AST
# ═══════════════════════════════════════════════════════════════════

class JavaASTBuilder(NodeVisitor):
    """Transforms the parsimonious parse tree into a ``CompilationUnit``."""

    unwrapped_exceptions = (UnitParseError,)

    def __init__(self, text: str, path: str = "<unknown>"):
        self._text = text
        self._path = path
        self._line_starts = [0] + [m.end() for m in re.finditer(r"\n", text)]
        self._skipped: List[SkippedStatement] = []

    def generic_visit(self, node, visited_children):
        """Default: return children or node text."""
        if visited_children:
            if len(visited_children) == 1:
                return visited_children[0]
            return visited_children
        return node.text.strip()

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def _flatten(value) -> list:
        if isinstance(value, list):
            flat = []
            for item in value:
                flat.extend(JavaASTBuilder._flatten(item))
            return flat
        return [value]

    def _of(self, value, cls) -> list:
        return [item for item in self._flatten(value) if isinstance(item, cls)]

    def _one(self, value, cls):
        items = self._of(value, cls)
        return items[0] if items else None

    def _loc_at(self, offset: int) -> Location:
        index = bisect_right(self._line_starts, offset) - 1
        return Location(index + 1, offset - self._line_starts[index] + 1)

    def _loc(self, node) -> Location:
        return self._loc_at(node.start)

    def _captured(self, text: str, loc: Location) -> List[Expr]:
        """Names mentioned inside an opaque group, in order of appearance."""
        seen: List[str] = []
        for match in _NAME_RE.finditer(_STRING_RE.sub('""', text)):
            word = match.group(0)
            if word not in _RESERVED and word not in seen:
                seen.append(word)
        return [Name(word, loc) for word in seen]

    def _as_block(self, value, label: str, loc: Location) -> Block:
        statements = self._of(value, Statement)
        if (len(statements) == 1 and isinstance(statements[0], Block)
                and statements[0].kind is BlockKind.PLAIN and not statements[0].label):
            statements[0].label = label
            return statements[0]
        block = Block(BlockKind.PLAIN, statements, label=label, loc=loc)
        block.end_loc = loc
        return block

    # ─────────────────────────────────────────────────────────────
    # Compilation unit
    # ─────────────────────────────────────────────────────────────

    def visit_compilation_unit(self, node, visited_children):
        _, package, imports, types, _ = visited_children
        package_decl = self._one(package, _Package)
        return CompilationUnit(
            path=self._path,
            package=package_decl.name if package_decl else None,
            imports=self._of(imports, ImportDecl),
            classes=self._of(types, ClassDecl),
            skipped=sorted(self._skipped, key=lambda s: (s.loc.line, s.loc.column)),
        )

    def visit_package_decl(self, node, visited_children):
        _, _, _, name, _, _, _ = visited_children
        return _Package(name.text)

    def visit_import_decl(self, node, visited_children):
        _, _, _, name, _, _, _, _ = visited_children
        return ImportDecl(
            name=name.text,
            is_static=bool(node.children[2].text.strip()),
            is_wildcard=bool(node.children[4].text.strip()),
            loc=self._loc(node),
        )

    # ─────────────────────────────────────────────────────────────
    # Types & members
    # ─────────────────────────────────────────────────────────────

    def visit_type_decl(self, node, visited_children):
        _, _, _, name, _, body, _ = visited_children
        members = body.members
        return ClassDecl(
            name=name.name,
            kind=node.children[1].text,
            fields=self._of(members, Declare),
            methods=self._of(members, MethodDecl),
            initializers=self._of(members, Block),
            classes=self._of(members, ClassDecl),
            loc=name.loc,
        )

    def visit_class_body(self, node, visited_children):
        _, _, members, _ = visited_children
        return _Body(self._flatten(members))

    def visit_member(self, node, visited_children):
        return visited_children[0]

    def visit_method_decl(self, node, visited_children):
        mods, _, _, _, name, _, params, _, _, _, body = visited_children
        block = body if isinstance(body, Block) else None
        if block is not None:
            block.kind = BlockKind.METHOD
            block.label = name.name
        return MethodDecl(
            name=name.name,
            params=params.items,
            body=block,
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            loc=name.loc,
        )

    def visit_constructor_decl(self, node, visited_children):
        mods, _, name, _, params, _, _, body = visited_children
        body.kind = BlockKind.METHOD
        body.label = name.name
        return MethodDecl(
            name=name.name,
            params=params.items,
            body=body,
            is_constructor=True,
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            loc=name.loc,
        )

    def visit_formal_params(self, node, visited_children):
        _, _, params, _, _ = visited_children
        return _Params(self._of(params, Declare))

    def visit_formal_param(self, node, visited_children):
        mods, type_, _, _, name, _, _ = visited_children
        type_name = type_.text
        if node.children[3].text.strip():
            type_name += "[]"
        type_name += "".join(node.children[6].text.split())
        return Declare(
            type_name=type_name,
            name=name.name,
            init=Unknown("parameter", name.loc),
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            is_param=True,
            loc=self._loc(node),
            name_loc=name.loc,
        )

    def visit_field_decl(self, node, visited_children):
        mods, type_, _, first, rest, _, _ = visited_children
        modifiers = tuple(m.name for m in self._of(mods, _Mod))
        return [
            Declare(
                type_name=type_.text + decl.dims,
                name=decl.ident.name,
                init=decl.init,
                modifiers=modifiers,
                is_field=True,
                loc=self._loc(node),
                name_loc=decl.ident.loc,
            )
            for decl in [first] + self._of(rest, _Declarator)
        ]

    def visit_initializer(self, node, visited_children):
        static, block = visited_children
        block.label = "static" if node.children[0].text.strip() else "initializer"
        return block

    def visit_enum_constants(self, node, visited_children):
        return None

    def visit_skipped_member(self, node, visited_children):
        self._skip(node)
        return None

    def visit_modifier(self, node, visited_children):
        return visited_children[0]

    def visit_MODIFIER(self, node, visited_children):
        return _Mod(node.text)

    def visit_annotation(self, node, visited_children):
        return _Annotation("".join(node.children[2].text.split()))

    def visit_type(self, node, visited_children):
        return _Type("".join(node.text.split()), self._loc(node))

    def visit_catch_type(self, node, visited_children):
        return _Type("".join(node.text.split()), self._loc(node))

    def visit_qualified_name(self, node, visited_children):
        return _Type("".join(node.text.split()), self._loc(node))

    def visit_declarator(self, node, visited_children):
        name, _, _, init = visited_children
        dims = "".join(node.children[2].text.split())
        return _Declarator(name, dims, self._one(init, Expr))

    def visit_initializer_part(self, node, visited_children):
        _, _, _, value = visited_children
        return value

    def visit_var_init(self, node, visited_children):
        value = visited_children[0]
        if isinstance(value, _Group):
            return Operation("{}", self._captured(value.text, value.loc), value.loc)
        return value

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    def visit_block(self, node, visited_children):
        _, _, statements, _ = visited_children
        return Block(
            BlockKind.PLAIN,
            self._of(statements, Statement),
            loc=self._loc(node),
            end_loc=self._loc_at(node.end - 1),
        )

    def visit_block_stmt(self, node, visited_children):
        return visited_children[0]

    def visit_statement(self, node, visited_children):
        value = visited_children[0]
        if isinstance(value, ClassDecl):
            logger.debug("%s: ignoring local type %s", self._path, value.name)
            return []
        return value

    def visit_try_stmt(self, node, visited_children):
        _, _, resources, body, catches, finally_ = visited_children
        acquired = self._of(resources, Statement)
        if acquired:
            main = Block(
                BlockKind.ACQUISITION,
                body.statements,
                resources=acquired,
                label="try",
                loc=self._loc(node),
                end_loc=body.end_loc,
            )
        else:
            main = body
            main.label = "try"
        return [main] + self._of(catches, Block) + self._of(finally_, Block)

    def visit_resource(self, node, visited_children):
        value = visited_children[0]
        if isinstance(value, Expr):
            return Call(value, "resource", self._loc(node))
        return value

    def visit_resource_decl(self, node, visited_children):
        mods, type_, _, name, _, _, _, init = visited_children
        return Declare(
            type_name=type_.text,
            name=name.name,
            init=init,
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            is_resource=True,
            loc=self._loc(node),
            name_loc=name.loc,
        )

    def visit_catch_clause(self, node, visited_children):
        _, _, _, _, _, mods, type_, _, name, _, _, _, body = visited_children
        param = Declare(
            type_name=type_.text,
            name=name.name,
            init=Unknown("caught exception", name.loc),
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            loc=type_.loc,
            name_loc=name.loc,
        )
        body.statements.insert(0, param)
        body.label = "catch"
        return body

    def visit_finally_clause(self, node, visited_children):
        _, _, _, body = visited_children
        body.label = "finally"
        return body

    def visit_if_stmt(self, node, visited_children):
        _, _, condition, _, then, otherwise = visited_children
        loc = self._loc(node)
        result: List[Statement] = [
            Call(condition, "if", loc),
            self._as_block(then, "if", loc),
        ]
        result.extend(self._of(otherwise, Block))
        return result

    def visit_else_part(self, node, visited_children):
        _, _, _, statement = visited_children
        return self._as_block(statement, "else", self._loc(node.children[3]))

    def visit_while_stmt(self, node, visited_children):
        _, _, condition, _, body = visited_children
        loc = self._loc(node)
        return [Call(condition, "while", loc), self._as_block(body, "while", loc)]

    def visit_do_stmt(self, node, visited_children):
        _, _, body, _, _, _, condition, _, _ = visited_children
        loc = self._loc(node)
        return [
            self._as_block(body, "do", loc),
            Call(condition, "while", self._loc(node.children[6])),
        ]

    def visit_for_stmt(self, node, visited_children):
        _, _, _, _, control, _, _, _, body = visited_children
        loc = self._loc(node)
        if isinstance(control, _ForEach):
            inner = self._as_block(body, "", loc)
            block = Block(BlockKind.PLAIN, [control.decl] + inner.statements,
                          label="for", loc=loc, end_loc=inner.end_loc)
            return [Call(control.iterable, "for", loc), block]
        statements: List[Statement] = list(control.init)
        if control.condition is not None:
            statements.append(Call(control.condition, "for", loc))
        statements.append(self._as_block(body, "for-body", loc))
        statements.extend(control.updates)
        body_block = statements[-1 - len(control.updates)]
        return Block(BlockKind.PLAIN, statements, label="for", loc=loc,
                     end_loc=body_block.end_loc)

    def visit_for_control(self, node, visited_children):
        return visited_children[0]

    def visit_foreach_control(self, node, visited_children):
        mods, type_, _, name, _, _, _, iterable = visited_children
        decl = Declare(
            type_name=type_.text,
            name=name.name,
            init=Unknown("loop element", name.loc),
            modifiers=tuple(m.name for m in self._of(mods, _Mod)),
            loc=type_.loc,
            name_loc=name.loc,
        )
        return _ForEach(decl, iterable)

    def visit_classic_control(self, node, visited_children):
        init, _, _, _, condition, _, _, _, updates = visited_children
        return _ForClassic(
            init=self._of(init, Statement),
            condition=self._one(condition, Expr),
            updates=self._of(updates, Statement),
        )

    def visit_for_expr(self, node, visited_children):
        value = visited_children[0]
        if isinstance(value, Expr):
            return Call(value, "for", self._loc(node))
        return value

    def visit_return_stmt(self, node, visited_children):
        _, _, value, _, _ = visited_children
        expr = self._one(value, Expr)
        return [Call(expr, "return", self._loc(node))] if expr is not None else []

    def visit_throw_stmt(self, node, visited_children):
        _, _, value, _, _ = visited_children
        return Call(value, "throw", self._loc(node))

    def visit_jump_stmt(self, node, visited_children):
        return []

    def visit_empty_stmt(self, node, visited_children):
        return []

    def visit_switch_stmt(self, node, visited_children):
        _, _, selector, _, body = visited_children
        loc = self._loc(node)
        return Call(Operation("switch", [selector] + self._captured(body.text, body.loc), loc),
                    "switch", loc)

    def visit_sync_stmt(self, node, visited_children):
        _, _, lock, _, body = visited_children
        loc = self._loc(node)
        body.label = "synchronized"
        return [Call(lock, "synchronized", loc), body]

    def visit_assert_stmt(self, node, visited_children):
        _, _, condition, message, _, _ = visited_children
        loc = self._loc(node)
        return Call(Operation("assert", [condition] + self._of(message, Expr), loc), "assert", loc)

    def visit_labeled_stmt(self, node, visited_children):
        _, _, _, _, statement = visited_children
        return statement

    def visit_local_var_decl(self, node, visited_children):
        declarations, _, _ = visited_children
        return declarations

    def visit_local_var_core(self, node, visited_children):
        mods, type_, _, first, rest = visited_children
        modifiers = tuple(m.name for m in self._of(mods, _Mod))
        return [
            Declare(
                type_name=type_.text + decl.dims,
                name=decl.ident.name,
                init=decl.init,
                modifiers=modifiers,
                loc=self._loc(node),
                name_loc=decl.ident.loc,
            )
            for decl in [first] + self._of(rest, _Declarator)
        ]

    def visit_assign_stmt(self, node, visited_children):
        return visited_children[0]

    def visit_assign_core(self, node, visited_children):
        target, _, _, _, value = visited_children
        operator = node.children[2].text
        loc = self._loc(node)
        via_this = isinstance(target, _ThisField)
        ident = target.ident if via_this else target
        if operator == "=":
            return Assign(ident.name, value, via_this=via_this, loc=loc)
        if via_this:
            lhs: Expr = FieldAccess(This("this", loc), ident.name, ident.loc)
        else:
            lhs = Name(ident.name, ident.loc)
        return Call(Operation(operator, [lhs, value], loc), "assign", loc)

    def visit_assign_target(self, node, visited_children):
        return visited_children[0]

    def visit_this_field(self, node, visited_children):
        _, _, _, _, name = visited_children
        return _ThisField(name)

    def visit_expr_stmt(self, node, visited_children):
        expr, _, _ = visited_children
        return Call(expr, "expr", self._loc(node))

    def visit_skipped_stmt(self, node, visited_children):
        self._skip(node)
        return []

    def _skip(self, node) -> None:
        skipped = SkippedStatement(node.text.strip(), self._loc(node))
        logger.debug("%s:%s: skipping unrecognised text %r",
                     self._path, skipped.loc, skipped.text[:60])
        self._skipped.append(skipped)

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    def visit_expr(self, node, visited_children):
        return visited_children[0]

    def visit_assign_expr(self, node, visited_children):
        target, _, _, _, value = visited_children
        return Operation(node.children[2].text, [target, value], self._loc(node))

    def visit_lambda_expr(self, node, visited_children):
        _, _, _, _, body = visited_children
        loc = self._loc(node)
        params = {word for word in _NAME_RE.findall(node.children[0].text)}
        if isinstance(body, _Group):
            operands = [name for name in self._captured(body.text, body.loc)
                        if name.name not in params]
        else:
            operands = [body]
        return Operation("->", operands, loc)

    def visit_lambda_params(self, node, visited_children):
        return None

    def visit_lambda_body(self, node, visited_children):
        return visited_children[0]

    def visit_ternary_expr(self, node, visited_children):
        condition, tail = visited_children
        branches = self._one(tail, _Branches)
        if branches is None:
            return condition
        return Operation("?:", [condition, branches.then, branches.otherwise], self._loc(node))

    def visit_ternary_tail(self, node, visited_children):
        _, _, _, then, _, _, _, otherwise = visited_children
        return _Branches(then, otherwise)

    def visit_binary_expr(self, node, visited_children):
        left, tails = visited_children
        result = left
        for tail in self._of(tails, _Tail):
            operands = [result] if tail.operand is None else [result, tail.operand]
            result = Operation(tail.operator, operands, self._loc(node))
        return result

    def visit_binary_tail(self, node, visited_children):
        _, _, _, operand = visited_children
        return _Tail(node.children[1].text.strip(), operand)

    def visit_instanceof_tail(self, node, visited_children):
        # the type and any pattern variable are not operands
        return _Tail("instanceof")

    def visit_unary_expr(self, node, visited_children):
        return visited_children[0]

    def visit_prefix_expr(self, node, visited_children):
        _, _, operand = visited_children
        return Operation(node.children[0].text, [operand], self._loc(node))

    def visit_cast_expr(self, node, visited_children):
        return visited_children[0]

    def visit_primitive_cast(self, node, visited_children):
        return visited_children[-1]

    def visit_reference_cast(self, node, visited_children):
        return visited_children[-1]

    def visit_postfix_expr(self, node, visited_children):
        primary, selectors, _ = visited_children
        result = primary
        for selector in self._of(selectors, _Selector):
            if selector.kind == "method":
                result = MethodCall(result, selector.name, selector.args, selector.loc)
            elif selector.kind == "field":
                result = FieldAccess(result, selector.name, selector.loc)
            elif selector.kind == "ref":
                result = Operation("::", [result], selector.loc)
            else:
                result = Operation("[]", [result] + selector.args, selector.loc)
        postfix = node.children[2].text.strip()
        if postfix:
            result = Operation(postfix, [result], self._loc(node))
        return result

    def visit_selector(self, node, visited_children):
        return visited_children[0]

    def visit_method_selector(self, node, visited_children):
        _, _, _, _, name, _, args = visited_children
        return _Selector("method", name.name, args.items, name.loc)

    def visit_field_selector(self, node, visited_children):
        _, _, _, name = visited_children
        return _Selector("field", name.name, loc=name.loc)

    def visit_ref_selector(self, node, visited_children):
        _, _, _, name = visited_children
        return _Selector("ref", name.name, loc=name.loc)

    def visit_index_selector(self, node, visited_children):
        _, _, _, index, _, _ = visited_children
        return _Selector("index", "[]", [index], self._loc(node))

    def visit_primary(self, node, visited_children):
        value = visited_children[0]
        if isinstance(value, _Ident):
            return Name(value.name, value.loc)
        return value

    def visit_paren_expr(self, node, visited_children):
        _, _, expr, _, _ = visited_children
        return expr

    def visit_switch_expr(self, node, visited_children):
        _, _, selector, _, body = visited_children
        loc = self._loc(node)
        return Operation("switch", [selector] + self._captured(body.text, body.loc), loc)

    def visit_creation(self, node, visited_children):
        _, _, type_, _, _, rest = visited_children
        loc = self._loc(node)
        if rest.is_array:
            operands = list(rest.args)
            if rest.body is not None:
                operands.extend(self._captured(rest.body.text, rest.body.loc))
            return Operation("new[]", operands, loc)
        created = New(type_.text, rest.args, loc)
        if rest.body is not None:
            return Operation("{}", [created] + self._captured(rest.body.text, rest.body.loc), loc)
        return created

    def visit_creation_rest(self, node, visited_children):
        return visited_children[0]

    def visit_object_creation(self, node, visited_children):
        args, body = visited_children
        return _Creation(args.items, self._one(body, _Group))

    def visit_array_creation(self, node, visited_children):
        dims, body = visited_children
        return _Creation(self._of(dims, Expr), self._one(body, _Group), is_array=True)

    def visit_ctor_call(self, node, visited_children):
        keyword, _, args = visited_children
        return MethodCall(None, keyword.keyword, args.items, self._loc(node))

    def visit_this_ref(self, node, visited_children):
        return This(node.text, self._loc(node))

    def visit_unqualified_call(self, node, visited_children):
        name, _, args = visited_children
        return MethodCall(None, name.name, args.items, name.loc)

    def visit_arguments(self, node, visited_children):
        _, _, items, _, _ = visited_children
        return _Args(self._of(items, Expr))

    # ─────────────────────────────────────────────────────────────
    # Literals & lexical
    # ─────────────────────────────────────────────────────────────

    def visit_literal(self, node, visited_children):
        return visited_children[0]

    def visit_text_block(self, node, visited_children):
        return Literal("text", node.text, self._loc(node))

    def visit_string_lit(self, node, visited_children):
        return Literal("string", node.text, self._loc(node))

    def visit_char_lit(self, node, visited_children):
        return Literal("char", node.text, self._loc(node))

    def visit_number_lit(self, node, visited_children):
        return Literal("number", node.text, self._loc(node))

    def visit_keyword_lit(self, node, visited_children):
        kind = "null" if node.text == "null" else "bool"
        return Literal(kind, node.text, self._loc(node))

    def visit_brace_group(self, node, visited_children):
        return _Group(node.text, self._loc(node))

    def visit_paren_group(self, node, visited_children):
        return _Group(node.text, self._loc(node))

    def visit_identifier(self, node, visited_children):
        return _Ident(node.text, self._loc(node))

    def visit_member_name(self, node, visited_children):
        return _Ident(node.text, self._loc(node))


# ═══════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═══════════════════════════════════════════════════════════════════

def parse(text: str, path: str = "<unknown>") -> CompilationUnit:
    """
    Parse *text* into a numbered ``CompilationUnit``.

    Raises ``UnitParseError`` when the text is not recognisable as a
    compilation unit at all.  Unrecognised statements inside an otherwise
    valid unit do not raise; they are listed in ``unit.skipped``.
    """
    try:
        tree = JAVA_GRAMMAR.parse(text)
    except ParseError as exc:
        raise UnitParseError(
            "not a recognisable compilation unit",
            path=path, line=exc.line(), column=exc.column(), cause=exc,
        ) from exc
    except RecursionError as exc:
        raise UnitParseError("nesting too deep to parse", path=path, cause=exc) from exc

    builder = JavaASTBuilder(text, path)
    try:
        unit = builder.visit(tree)
    except VisitationError as exc:
        raise UnitParseError(f"cannot lower parse tree: {exc.original_class.__name__}",
                             path=path, cause=exc) from exc
    except RecursionError as exc:
        raise UnitParseError("nesting too deep to parse", path=path, cause=exc) from exc

    count = number_statements(unit)
    logger.debug("%s: %d classes, %d program points, %d skipped",
                  path, len(unit.classes), count, len(unit.skipped))
    return unit


def parse_expression(text: str) -> Expr:
    """Parse a single expression (used by tests and the dump command)."""
    tree = JAVA_GRAMMAR["expr"].parse(text.strip())
    return JavaASTBuilder(text.strip()).visit(tree)


__all__ = ["JavaASTBuilder", "parse", "parse_expression"]
