# polyglint/aliasing.py
"""
Aliasing Resolver.

Tracks which handles refer to the same underlying resource at every
program point.

Binding nodes
─────────────
Every time a handle is (re)bound it gets a fresh *binding node*
``(handle_id, generation)``.  Alias sets are disjoint sets of binding
nodes held in a ``UnionFind``:

  ``T a = create(...)``   → fresh singleton set, creation site recorded
  ``a = b``               → a's new node joins b's current set
  ``T a = b.m(...)``      → a's new node joins b's set (derived resource)
  ``a = <untracked>``     → fresh, un-aliased singleton
  ``a = null``            → a becomes unbound

Reassignment never touches a's earlier nodes, so "most recent assignment
wins" falls out for free.  Unions only ever add a *fresh* node to an
existing set; the partition restricted to the nodes that exist at a given
point is therefore exactly the alias partition at that point, and a single
final ``UnionFind`` answers "same set?" for any past point.

The resolver also snapshots the handle → node bindings *before* every
statement (``AliasIndex.bindings_before``).  Handles are retired at the
exit of their declaring block; each method starts from the field bindings
established by the class's field initializers and initializer blocks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Generic, Hashable, Iterator, List, Mapping, Optional, Set, Tuple, TypeVar

from polyglint.ast_nodes import (
    Assign,
    Block,
    ClassDecl,
    Declare,
    Expr,
    Literal,
    Location,
    MethodCall,
    Statement,
    receiver_root,
    render,
)
from polyglint.config import TrackedTypeTable
from polyglint.symbols import Scope, SymbolTable, creation_type

logger = logging.getLogger(__name__)

BindingNode = Tuple[int, int]  # (handle id, generation)

K = TypeVar("K", bound=Hashable)


# ═══════════════════════════════════════════════════════════════════
#  UNION-FIND
# ═══════════════════════════════════════════════════════════════════

class UnionFind(Generic[K]):
    """
    Disjoint-set forest with path compression and union by rank.

    Implements:
      - ``find(x)``     : representative of ``x``'s set
      - ``union(a, b)`` : merge the sets of ``a`` and ``b``
      - ``connected(a, b)``
    """

    def __init__(self) -> None:
        self._parent: Dict[K, K] = {}
        self._rank: Dict[K, int] = {}

    def add(self, item: K) -> None:
        """Register ``item`` as a singleton set if not already known."""
        if item not in self._parent:
            self._parent[item] = item
            self._rank[item] = 0

    def find(self, item: K) -> K:
        self.add(item)

        root = item
        while self._parent[root] != root:
            root = self._parent[root]

        # Path compression
        current = item
        while self._parent[current] != root:
            self._parent[current], current = root, self._parent[current]

        return root

    def union(self, a: K, b: K) -> K:
        """Merge the sets of ``a`` and ``b``; returns the new root."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return root_a
        if self._rank[root_a] < self._rank[root_b]:
            root_a, root_b = root_b, root_a
        self._parent[root_b] = root_a
        if self._rank[root_a] == self._rank[root_b]:
            self._rank[root_a] += 1
        return root_a

    def connected(self, a: K, b: K) -> bool:
        return self.find(a) == self.find(b)

    def members(self, item: K) -> Set[K]:
        root = self.find(item)
        return {x for x in self._parent if self.find(x) == root}

    def groups(self) -> List[Set[K]]:
        by_root: Dict[K, Set[K]] = defaultdict(set)
        for item in self._parent:
            by_root[self.find(item)].add(item)
        return list(by_root.values())

    def __contains__(self, item: object) -> bool:
        return item in self._parent

    def __len__(self) -> int:
        return len(self._parent)


# ═══════════════════════════════════════════════════════════════════
#  BINDING RECORDS
# ═══════════════════════════════════════════════════════════════════

class BindingEvent(Enum):
    CREATE = "create"      # fresh resource from a creation expression
    ALIAS = "alias"        # a = b
    DERIVE = "derive"      # a = b.m(...)
    OPAQUE = "opaque"      # untracked or unknown right-hand side
    UNBIND = "unbind"      # declared without initializer, or assigned null


@dataclass(frozen=True)
class Binding:
    handle_id: int
    point: int
    event: BindingEvent
    node: Optional[BindingNode] = None
    source: Optional[BindingNode] = None


@dataclass(frozen=True)
class CreationSite:
    """Where a fresh resource was created and bound to a handle."""

    node: BindingNode
    handle_id: int
    point: int
    loc: Location
    key: str
    type_name: str
    has_args: bool
    language: Optional[str]
    region: Scope = field(compare=False)
    expr: Expr = field(compare=False)


def construction_args(expr: Expr) -> List[Expr]:
    """All arguments along a creation chain, outermost call last."""
    args: List[Expr] = []
    chain: List[Expr] = []
    node: Optional[Expr] = expr
    while isinstance(node, MethodCall):
        chain.append(node)
        node = node.target
    if node is not None:
        chain.append(node)
    for link in reversed(chain):
        args.extend(getattr(link, "args", []))
    return args


def _language_hint(expr: Expr) -> Optional[str]:
    """Language id given as the first string argument of a creation chain."""
    args = construction_args(expr)
    if args and isinstance(args[0], Literal) and args[0].kind in ("string", "text"):
        return args[0].value
    return None


# ═══════════════════════════════════════════════════════════════════
#  ALIAS INDEX
# ═══════════════════════════════════════════════════════════════════

class AliasIndex:
    """Per-program-point alias sets for one compilation unit."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table
        self.uf: UnionFind[BindingNode] = UnionFind()
        self.bindings: List[Binding] = []
        self.creations: Dict[BindingNode, CreationSite] = {}
        self._before: List[Optional[Dict[int, BindingNode]]] = [None] * len(table.statements)
        self._by_node: Dict[BindingNode, Binding] = {}
        self._by_site: Dict[Tuple[int, int], Binding] = {}
        self._flows: Dict[BindingNode, List[BindingNode]] = defaultdict(list)
        self._generation: Dict[int, int] = defaultdict(int)

    # ── construction (used by AliasResolver) ──

    def _fresh(self, handle_id: int) -> BindingNode:
        self._generation[handle_id] += 1
        node = (handle_id, self._generation[handle_id])
        self.uf.add(node)
        return node

    def _record(self, binding: Binding) -> None:
        self.bindings.append(binding)
        self._by_site[(binding.handle_id, binding.point)] = binding
        if binding.node is not None:
            self._by_node[binding.node] = binding
            if binding.source is not None:
                self._flows[binding.source].append(binding.node)

    # ── queries ──

    def bindings_before(self, point: int) -> Mapping[int, BindingNode]:
        """Handle id → binding node in effect before statement *point*."""
        snapshot = self._before[point]
        return snapshot if snapshot is not None else {}

    def binding_at(self, handle_id: int, point: int) -> Optional[BindingNode]:
        return self.bindings_before(point).get(handle_id)

    def bound_by(self, handle_id: int, point: int) -> Optional[BindingNode]:
        """Node the statement at *point* bound *handle_id* to, if any."""
        binding = self._by_site.get((handle_id, point))
        return binding.node if binding is not None else None

    def find(self, node: BindingNode) -> BindingNode:
        return self.uf.find(node)

    def same_set(self, a: Optional[BindingNode], b: Optional[BindingNode]) -> bool:
        if a is None or b is None:
            return False
        return self.uf.connected(a, b)

    def alias_set(self, handle_id: int, point: int) -> FrozenSet[int]:
        """Handles bound to the same resource as *handle_id* before *point*."""
        bindings = self.bindings_before(point)
        node = bindings.get(handle_id)
        if node is None:
            return frozenset()
        root = self.uf.find(node)
        return frozenset(h for h, n in bindings.items() if self.uf.find(n) == root)

    def binding_of(self, node: BindingNode) -> Binding:
        return self._by_node[node]

    def nodes_of(self, handle_id: int) -> List[BindingNode]:
        return [b.node for b in self.bindings if b.handle_id == handle_id and b.node is not None]

    def origin(self, node: BindingNode) -> Optional[CreationSite]:
        """Creation site the resource bound at *node* comes from, if known."""
        current: Optional[BindingNode] = node
        while current is not None:
            site = self.creations.get(current)
            if site is not None:
                return site
            current = self._by_node[current].source if current in self._by_node else None
        return None

    def flows_from(self, node: BindingNode) -> Iterator[BindingNode]:
        """Nodes that received the resource of *node* (transitively)."""
        pending = list(self._flows.get(node, ()))
        seen: Set[BindingNode] = set()
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            yield current
            pending.extend(self._flows.get(current, ()))

    def creations_in(self, region: Scope) -> List[CreationSite]:
        return sorted((c for c in self.creations.values() if c.region is region),
                      key=lambda c: c.point)

    def __repr__(self) -> str:
        return f"AliasIndex({len(self.bindings)} bindings, {len(self.creations)} creations)"


# ═══════════════════════════════════════════════════════════════════
#  RESOLVER
# ═══════════════════════════════════════════════════════════════════

class AliasResolver:
    """Single forward walk over the unit building an ``AliasIndex``."""

    def __init__(self, table: SymbolTable, tracked: TrackedTypeTable) -> None:
        self._table = table
        self._tracked = tracked
        self._index = AliasIndex(table)

    def resolve(self) -> AliasIndex:
        for cls in self._table.unit.classes:
            self._visit_class(cls, {})
        index = self._index
        logger.debug("%s: %r", self._table.unit.path, index)
        return index

    def _snapshot(self, point: int, state: Dict[int, BindingNode]) -> None:
        self._index._before[point] = dict(state)

    def _visit_class(self, cls: ClassDecl, inherited: Dict[int, BindingNode]) -> None:
        state = dict(inherited)
        for decl in cls.fields:
            self._snapshot(decl.point, state)
            self._apply(decl, state)
        for block in cls.initializers:
            self._visit_block(block, state)
        class_state = dict(state)
        for method in cls.methods:
            state = dict(class_state)
            for param in method.params:
                self._snapshot(param.point, state)
                self._apply(param, state)
            if method.body is not None:
                self._visit_block(method.body, state)
        for nested in cls.classes:
            self._visit_class(nested, class_state)

    def _visit_block(self, block: Block, state: Dict[int, BindingNode]) -> None:
        self._snapshot(block.point, state)
        for stmt in block.resources:
            self._snapshot(stmt.point, state)
            self._apply(stmt, state)
        for stmt in block.statements:
            if isinstance(stmt, Block):
                self._visit_block(stmt, state)
            else:
                self._snapshot(stmt.point, state)
                self._apply(stmt, state)
        # retire handles declared inside the block
        for handle_id in list(state):
            handle = self._table.handle(handle_id)
            if not handle.is_field and block.point <= handle.point <= block.end_point:
                del state[handle_id]

    def _apply(self, stmt: Statement, state: Dict[int, BindingNode]) -> None:
        if isinstance(stmt, Declare):
            handle_id = self._table.declared.get(stmt)
            if handle_id is not None:
                self._bind(handle_id, stmt.init, stmt.point, state)
        elif isinstance(stmt, Assign):
            handle_id = self._table.assigned.get(stmt)
            if handle_id is not None:
                self._bind(handle_id, stmt.value, stmt.point, state)

    def _bind(self, handle_id: int, expr: Optional[Expr], point: int,
              state: Dict[int, BindingNode]) -> None:
        index = self._index
        table = self._table

        if expr is None or (isinstance(expr, Literal) and expr.kind == "null"):
            state.pop(handle_id, None)
            index._record(Binding(handle_id, point, BindingEvent.UNBIND))
            return

        node = index._fresh(handle_id)
        source_handle = table.resolve(expr)
        if source_handle is not None:
            source = state.get(source_handle.id)
            if source is not None:
                index.uf.union(node, source)
                index._record(Binding(handle_id, point, BindingEvent.ALIAS, node, source))
            else:
                index._record(Binding(handle_id, point, BindingEvent.OPAQUE, node))
            state[handle_id] = node
            return

        created = creation_type(expr, table, self._tracked)
        if created is not None:
            region = table.scope_at(point).region
            index.creations[node] = CreationSite(
                node=node,
                handle_id=handle_id,
                point=point,
                loc=table.handle(handle_id).site,
                key=render(expr),
                type_name=created,
                has_args=bool(construction_args(expr)),
                language=_language_hint(expr),
                region=region,
                expr=expr,
            )
            index._record(Binding(handle_id, point, BindingEvent.CREATE, node))
            state[handle_id] = node
            return

        if isinstance(expr, MethodCall):
            receiver = table.resolve(receiver_root(expr))
            source = state.get(receiver.id) if receiver is not None else None
            if source is not None:
                index.uf.union(node, source)
                index._record(Binding(handle_id, point, BindingEvent.DERIVE, node, source))
                state[handle_id] = node
                return

        index._record(Binding(handle_id, point, BindingEvent.OPAQUE, node))
        state[handle_id] = node


def resolve_aliases(table: SymbolTable, tracked: TrackedTypeTable) -> AliasIndex:
    return AliasResolver(table, tracked).resolve()


__all__ = [
    "UnionFind",
    "BindingNode",
    "BindingEvent",
    "Binding",
    "CreationSite",
    "construction_args",
    "AliasIndex",
    "AliasResolver",
    "resolve_aliases",
]
