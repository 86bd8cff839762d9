# polyglint/lifecycle.py
"""
Lifecycle tracking: use sites and the per-handle state machine.

::

    Declared ──► Constructed ──► Live ⇄ Aliased ──► Released ──► (Stale)

* **Declared**    : no binding (no initializer, or assigned ``null``)
* **Constructed** : bound, not yet used
* **Live**        : bound and used at least once
* **Aliased**     : bound, and another handle shares its alias set
* **Released**    : its alias set was released by an acquisition block
                     of the same method that has closed
* **Stale**       : used while released

A single forward pass over the program points classifies every read of a
handle into a ``UseSite`` and records the handle's state at that point.
The rule checkers in ``polyglint.checkers`` consume the resulting
``LifecycleAnalysis``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from polyglint.aliasing import AliasIndex, BindingNode, resolve_aliases
from polyglint.ast_nodes import (
    Assign,
    Call,
    CompilationUnit,
    Declare,
    Expr,
    FieldAccess,
    Location,
    MethodCall,
    New,
    Operation,
    render,
)
from polyglint.config import TrackedTypeTable
from polyglint.scopes import Acquisition, LiveRangeTable, track_scopes
from polyglint.symbols import SymbolTable, build_symbol_table

logger = logging.getLogger(__name__)


class HandleState(Enum):
    DECLARED = "declared"
    CONSTRUCTED = "constructed"
    LIVE = "live"
    ALIASED = "aliased"
    RELEASED = "released"
    STALE = "stale"


class UseKind(Enum):
    MEMBER = "member"          # cx.eval(...), cx.field
    ARGUMENT = "argument"      # ctx.eval(src), new T(src)
    ACQUIRE = "acquire"        # try (cx) { ... }
    RETURN = "return"          # return cx;
    EVALUATED = "evaluated"    # any other evaluated occurrence
    ALIAS_READ = "alias-read"  # T b = a;  (copies the reference only)

    @property
    def counts_as_use(self) -> bool:
        return self is not UseKind.ALIAS_READ


@dataclass(frozen=True)
class UseSite:
    handle_id: int
    point: int
    loc: Location
    kind: UseKind
    node: Optional[BindingNode]
    state: HandleState
    text: str = ""

    @property
    def is_stale(self) -> bool:
        return self.state is HandleState.STALE


@dataclass
class LifecycleAnalysis:
    """Everything the rule checkers need for one unit."""

    unit: CompilationUnit
    table: SymbolTable
    aliases: AliasIndex
    ranges: LiveRangeTable
    uses: List[UseSite] = field(default_factory=list)

    def uses_of(self, handle_id: int) -> List[UseSite]:
        return [u for u in self.uses if u.handle_id == handle_id]

    def counted_uses(self) -> List[UseSite]:
        return [u for u in self.uses if u.kind.counts_as_use]

    def release_of(self, node: Optional[BindingNode], point: int) -> Optional[Acquisition]:
        """The closed acquisition that released *node*'s set before *point*."""
        if node is None:
            return None
        region = self.table.scope_at(point).region
        for acquisition in self.ranges.released_before(point, region):
            if self.aliases.same_set(node, acquisition.node):
                return acquisition
        return None

    def state_at(self, handle_id: int, point: int) -> HandleState:
        """State of *handle_id* just before the statement at *point*."""
        node = self.aliases.binding_at(handle_id, point)
        if node is None:
            return HandleState.DECLARED
        used = any(u.handle_id == handle_id and u.point < point and u.kind.counts_as_use
                   for u in self.uses)
        if self.release_of(node, point) is not None:
            return HandleState.STALE if used else HandleState.RELEASED
        if len(self.aliases.alias_set(handle_id, point)) > 1:
            return HandleState.ALIASED
        return HandleState.LIVE if used else HandleState.CONSTRUCTED


class LifecycleTracker:
    """Forward pass producing the ``UseSite`` list of a unit."""

    def __init__(self, analysis: LifecycleAnalysis) -> None:
        self._analysis = analysis
        self._table = analysis.table
        self._used: Set[int] = set()

    def run(self) -> LifecycleAnalysis:
        for stmt in self._table.statements:
            if isinstance(stmt, Declare):
                self._visit_binding(stmt.init, stmt.point, stmt in self._table.declared)
            elif isinstance(stmt, Assign):
                self._visit_binding(stmt.value, stmt.point, stmt in self._table.assigned)
            elif isinstance(stmt, Call):
                if stmt.label == "resource":
                    self._walk(stmt.expr, stmt.point, UseKind.ACQUIRE)
                elif stmt.label == "return":
                    self._walk(stmt.expr, stmt.point, UseKind.RETURN)
                else:
                    self._walk(stmt.expr, stmt.point, UseKind.EVALUATED)
        return self._analysis

    def _visit_binding(self, value: Optional[Expr], point: int, tracked_target: bool) -> None:
        if value is None:
            return
        if tracked_target and value in self._table.resolutions:
            self._walk(value, point, UseKind.ALIAS_READ)
        else:
            self._walk(value, point, UseKind.EVALUATED)

    def _walk(self, expr: Optional[Expr], point: int, role: UseKind) -> None:
        if expr is None:
            return
        if expr in self._table.resolutions:
            self._use(expr, point, role)
            return
        if isinstance(expr, MethodCall):
            self._walk(expr.target, point, UseKind.MEMBER)
            for arg in expr.args:
                self._walk(arg, point, UseKind.ARGUMENT)
        elif isinstance(expr, FieldAccess):
            self._walk(expr.target, point, UseKind.MEMBER)
        elif isinstance(expr, New):
            for arg in expr.args:
                self._walk(arg, point, UseKind.ARGUMENT)
        elif isinstance(expr, Operation):
            for operand in expr.operands:
                self._walk(operand, point, UseKind.EVALUATED)

    def _use(self, expr: Expr, point: int, kind: UseKind) -> None:
        handle_id = self._table.resolutions[expr]
        analysis = self._analysis
        node = analysis.aliases.binding_at(handle_id, point)
        state = self._state(handle_id, node, point)
        site = UseSite(
            handle_id=handle_id,
            point=point,
            loc=getattr(expr, "loc", Location()),
            kind=kind,
            node=node,
            state=state,
            text=render(expr),
        )
        analysis.uses.append(site)
        if kind.counts_as_use:
            self._used.add(handle_id)

    def _state(self, handle_id: int, node: Optional[BindingNode], point: int) -> HandleState:
        analysis = self._analysis
        if node is None:
            return HandleState.DECLARED
        if analysis.release_of(node, point) is not None:
            return HandleState.STALE
        if len(analysis.aliases.alias_set(handle_id, point)) > 1:
            return HandleState.ALIASED
        return HandleState.LIVE if handle_id in self._used else HandleState.CONSTRUCTED


def analyze_lifecycle(unit: CompilationUnit, tracked: TrackedTypeTable) -> LifecycleAnalysis:
    """Run symbols → aliases → scopes → use sites for one parsed unit."""
    table = build_symbol_table(unit, tracked)
    aliases = resolve_aliases(table, tracked)
    ranges = track_scopes(table, aliases)
    analysis = LifecycleTracker(LifecycleAnalysis(unit, table, aliases, ranges)).run()
    logger.debug("%s: %d use sites", unit.path, len(analysis.uses))
    return analysis


__all__ = [
    "HandleState",
    "UseKind",
    "UseSite",
    "LifecycleAnalysis",
    "LifecycleTracker",
    "analyze_lifecycle",
]
