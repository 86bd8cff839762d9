# tests/test_scopes.py
"""
Tests for live ranges and scoped acquisitions.
"""

from polyglint.scopes import LiveRange
from tests.conftest import JAVA_TEST, JAVA_TEST_1, USE_AFTER_RELEASE_JAVA, analyze, handle_named


class TestLiveRange:

    def test_zero_length(self):
        rng = LiveRange(0, 5, 5, 1, "plain")
        assert rng.is_zero_length
        assert rng.length == 0
        assert rng.covers(5)
        assert not rng.covers(6)


class TestAcquisitions:

    def test_declared_resource(self):
        analysis = analyze(JAVA_TEST)
        (acq,) = analysis.ranges.acquisitions
        context = handle_named(analysis, "context")
        assert acq.handle_id == context.id
        assert not acq.by_reference
        assert acq.release_point == acq.block.end_point
        assert acq.node == analysis.aliases.bound_by(context.id, context.point)

    def test_referenced_resource(self):
        analysis = analyze(USE_AFTER_RELEASE_JAVA)
        (acq,) = analysis.ranges.acquisitions
        cx = handle_named(analysis, "cx")
        assert acq.handle_id == cx.id
        assert acq.by_reference
        assert acq.loc.line == 5

    def test_closed_only_after_release_point(self):
        analysis = analyze(JAVA_TEST)
        (acq,) = analysis.ranges.acquisitions
        assert not acq.is_closed_at(acq.release_point)
        assert acq.is_closed_at(acq.release_point + 1)

    def test_released_before_is_region_scoped(self):
        analysis = analyze(USE_AFTER_RELEASE_JAVA)
        (acq,) = analysis.ranges.acquisitions
        method = analysis.table.regions[1]
        assert list(analysis.ranges.released_before(acq.release_point + 1, method)) == [acq]
        assert list(analysis.ranges.released_before(acq.release_point + 1, acq.region.parent)) == []

    def test_acquired_handles(self):
        analysis = analyze(JAVA_TEST_1)
        assert analysis.ranges.acquired_handles() == [handle_named(analysis, "context").id]


class TestRanges:

    def test_acquisition_range_is_block(self):
        analysis = analyze(JAVA_TEST)
        context = handle_named(analysis, "context")
        rng = analysis.ranges.range_of(context.id)
        block = analysis.ranges.acquisitions[0].block
        assert (rng.start, rng.end, rng.kind) == (block.point, block.end_point, "acquisition")

    def test_reference_range_ends_at_release(self):
        analysis = analyze(USE_AFTER_RELEASE_JAVA)
        cx = handle_named(analysis, "cx")
        rng = analysis.ranges.range_of(cx.id)
        assert rng.kind == "reference"
        assert rng.start == cx.point
        assert rng.end == analysis.ranges.acquisitions[0].release_point

    def test_plain_range_ends_at_last_read(self):
        analysis = analyze(JAVA_TEST_1)
        cx2 = handle_named(analysis, "cx2")
        rng = analysis.ranges.range_of(cx2.id)
        assert rng.kind == "plain"
        assert rng.end == len(analysis.table.statements) - 1

    def test_unread_handle_is_zero_length(self):
        analysis = analyze(JAVA_TEST_1)
        cx1 = handle_named(analysis, "cx1")
        assert analysis.ranges.range_of(cx1.id).is_zero_length

    def test_every_handle_has_a_range(self):
        analysis = analyze(JAVA_TEST_1)
        assert len(analysis.ranges) == len(analysis.table)
