# polyglint/scopes.py
"""
Scope Tracker.

Annotates every handle with a live range and records every scoped
acquisition (try-with-resources) together with its release point.

Live ranges are closed intervals of program points:

    acquisition  ``try (T x = ...) { ... }``   the whole acquisition block
    reference    ``try (x) { ... }``           declaration → release point
    plain        any other handle              declaration → last read

A plain handle that is never read gets a zero-length range.

An acquisition releases its resource when its block exits.  Catch and
finally blocks are lowered *after* the acquisition block, so the release
point is the last program point inside the block on every exit path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from polyglint.aliasing import AliasIndex, BindingNode
from polyglint.ast_nodes import Block, BlockKind, Call, Declare, Location
from polyglint.symbols import Scope, SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveRange:
    handle_id: int
    start: int
    end: int
    depth: int
    kind: str  # "acquisition", "reference", "plain"

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def is_zero_length(self) -> bool:
        return self.end == self.start

    def covers(self, point: int) -> bool:
        return self.start <= point <= self.end


@dataclass(frozen=True)
class Acquisition:
    """A resource bound by an acquisition block and released at its exit."""

    handle_id: int
    node: BindingNode
    point: int
    release_point: int
    loc: Location
    by_reference: bool
    block: Block = field(compare=False)
    region: Scope = field(compare=False)

    def is_closed_at(self, point: int) -> bool:
        return point > self.release_point


@dataclass
class LiveRangeTable:
    ranges: Dict[int, LiveRange] = field(default_factory=dict)
    acquisitions: List[Acquisition] = field(default_factory=list)

    def range_of(self, handle_id: int) -> Optional[LiveRange]:
        return self.ranges.get(handle_id)

    def acquisitions_in(self, region: Scope) -> List[Acquisition]:
        return [a for a in self.acquisitions if a.region is region]

    def released_before(self, point: int, region: Scope) -> Iterator[Acquisition]:
        """Acquisitions of *region* whose block has closed before *point*."""
        for acquisition in self.acquisitions:
            if acquisition.region is region and acquisition.is_closed_at(point):
                yield acquisition

    def acquired_handles(self) -> List[int]:
        return sorted({a.handle_id for a in self.acquisitions})

    def __len__(self) -> int:
        return len(self.ranges)


class ScopeTracker:
    """Computes the ``LiveRangeTable`` of one unit."""

    def __init__(self, table: SymbolTable, aliases: AliasIndex) -> None:
        self._table = table
        self._aliases = aliases

    def track(self) -> LiveRangeTable:
        result = LiveRangeTable()
        for stmt in self._table.statements:
            if isinstance(stmt, Block) and stmt.kind is BlockKind.ACQUISITION:
                result.acquisitions.extend(self._acquire(stmt))

        released_by_reference: Dict[int, int] = {}
        for acquisition in result.acquisitions:
            if acquisition.by_reference:
                previous = released_by_reference.get(acquisition.handle_id, -1)
                released_by_reference[acquisition.handle_id] = max(previous, acquisition.release_point)

        for handle in self._table:
            depth = handle.scope.depth
            if handle.acquired:
                block = handle.scope.block
                start, end = (block.point, block.end_point) if block is not None else (handle.point, handle.point)
                result.ranges[handle.id] = LiveRange(handle.id, start, end, depth, "acquisition")
            elif handle.id in released_by_reference:
                result.ranges[handle.id] = LiveRange(
                    handle.id, handle.point, released_by_reference[handle.id], depth, "reference")
            else:
                reads = self._table.occurrences.get(handle.id, [])
                end = max([handle.point] + reads)
                result.ranges[handle.id] = LiveRange(handle.id, handle.point, end, depth, "plain")

        logger.debug("%s: %d live ranges, %d acquisitions",
                     self._table.unit.path, len(result.ranges), len(result.acquisitions))
        return result

    def _acquire(self, block: Block) -> Iterator[Acquisition]:
        region = self._table.scope_at(block.point).region
        for resource in block.resources:
            if isinstance(resource, Declare):
                handle_id = self._table.declared.get(resource)
                node = self._aliases.bound_by(handle_id, resource.point) if handle_id is not None else None
                by_reference = False
            elif isinstance(resource, Call):
                handle = self._table.resolve(resource.expr)
                handle_id = handle.id if handle is not None else None
                node = self._aliases.binding_at(handle_id, resource.point) if handle_id is not None else None
                by_reference = True
            else:
                continue
            if handle_id is None or node is None:
                continue
            yield Acquisition(
                handle_id=handle_id,
                node=node,
                point=resource.point,
                release_point=block.end_point,
                loc=resource.loc,
                by_reference=by_reference,
                block=block,
                region=region,
            )


def track_scopes(table: SymbolTable, aliases: AliasIndex) -> LiveRangeTable:
    return ScopeTracker(table, aliases).track()


__all__ = [
    "LiveRange",
    "Acquisition",
    "LiveRangeTable",
    "ScopeTracker",
    "track_scopes",
]
