"""
Tests for the densify -> snap -> dedupe orchestration.
"""

import asyncio

import pytest
import responses

from roadtrace.config import Settings
from roadtrace.errors import SnapHTTPError, SnapInvalidResponseError, SnapTimeoutError
from roadtrace.services.densifier import densify
from roadtrace.services.polyline_builder import TracePipeline, build_road_snapped_polyline
from roadtrace.services.road_snapper import BatchSnapper, PerPointSnapper
from conftest import SNAP_URL, EchoSnapper, FailingSnapper, c


def run(coro):
    return asyncio.run(coro)


class TestTracePipeline:

    def test_end_to_end_with_echo_snapper(self):
        points = [c(40.0, -3.0), c(40.001, -3.001)]
        eps = 0.00001

        out = run(build_road_snapped_polyline(points, EchoSnapper(), steps_per_segment=20, dedupe_epsilon=eps))

        assert len(out) <= 21
        assert out[0] == points[0]
        assert out[-1] == points[1]
        for a, b in zip(out, out[1:]):
            assert abs(a.lat - b.lat) > eps or abs(a.lng - b.lng) > eps

    def test_snapper_receives_densified_trace(self):
        points = [c(40.0, -3.0), c(40.001, -3.001)]
        snapper = EchoSnapper()

        result = run(TracePipeline(snapper, steps_per_segment=20).build(points))

        assert len(snapper.calls[0]) == 21
        assert result.densified_count == 21
        assert result.snapped
        assert result.strategy == "echo"

    @pytest.mark.parametrize("points", [[], [c(40.0, -3.0)]])
    def test_fewer_than_two_points_skip_snapping(self, points):
        snapper = EchoSnapper()

        result = run(TracePipeline(snapper).build(points))

        assert result.points == points
        assert not result.snapped
        assert snapper.calls == []

    def test_dedupes_when_snapper_does_not(self):
        points = [c(40.0, -3.0), c(40.0, -3.0), c(40.001, -3.001)]
        result = run(TracePipeline(EchoSnapper(), steps_per_segment=1).build(points))
        assert result.points == [points[0], points[2]]

    def test_skips_dedupe_for_server_side_deduping_snapper(self):
        points = [c(40.0, -3.0), c(40.0, -3.0), c(40.001, -3.001)]
        result = run(TracePipeline(EchoSnapper(dedupes_server_side=True), steps_per_segment=1).build(points))
        assert result.points == points

    def test_strict_mode_raises(self, sample_trace):
        pipeline = TracePipeline(FailingSnapper(SnapTimeoutError()), on_snap_failure="raise")

        with pytest.raises(SnapTimeoutError):
            run(pipeline.build(sample_trace))

    def test_fallback_mode_returns_densified(self, sample_trace):
        pipeline = TracePipeline(FailingSnapper(SnapTimeoutError()), steps_per_segment=5, on_snap_failure="densified")

        result = run(pipeline.build(sample_trace))

        assert result.points == densify(sample_trace, 5)
        assert not result.snapped
        assert result.fallback_reason == "SNAP_TIMEOUT"

    def test_per_point_drop_everything_is_a_failure(self, sample_trace):
        async def lookup(point):
            raise SnapHTTPError(502)

        pipeline = TracePipeline(PerPointSnapper(lookup, on_point_failure="drop"), on_snap_failure="densified")

        result = run(pipeline.build(sample_trace))

        assert result.fallback_reason == "SNAP_INVALID_RESPONSE"
        assert len(result.points) == 1 + 2 * 20

    def test_unknown_failure_policy(self):
        with pytest.raises(ValueError):
            TracePipeline(EchoSnapper(), on_snap_failure="retry")


class TestBatchFailure:
    """HTTP 500 from the snap endpoint, in both failure modes."""

    @responses.activate
    def test_strict_raises_http_error(self, sample_trace):
        responses.add(responses.POST, SNAP_URL, json={"ok": False, "error": "boom"}, status=500)
        pipeline = TracePipeline(BatchSnapper(SNAP_URL), on_snap_failure="raise")

        with pytest.raises(SnapHTTPError) as exc:
            run(pipeline.build(sample_trace))
        assert exc.value.status == 500

    @responses.activate
    def test_fallback_returns_densified_input(self, sample_trace):
        responses.add(responses.POST, SNAP_URL, json={"ok": False, "error": "boom"}, status=500)
        pipeline = TracePipeline(BatchSnapper(SNAP_URL), steps_per_segment=20, on_snap_failure="densified")

        result = run(pipeline.build(sample_trace))

        assert result.points == densify(sample_trace, 20)
        assert len(result.points) == 41

    def test_from_settings(self):
        settings = Settings(api_url="https://api.test", steps_per_segment=8, on_snap_failure="densified")
        pipeline = TracePipeline.from_settings(settings)
        assert pipeline.steps_per_segment == 8
        assert pipeline.on_snap_failure == "densified"
        assert isinstance(pipeline.snapper, BatchSnapper)


class TestCollapsedTrace:
    """Every lookup lands on the same road node, so dedupe leaves one point."""

    @staticmethod
    def _single_node_snapper():
        async def lookup(point):
            return c(40.0005, -3.0005)
        return PerPointSnapper(lookup)

    def test_strict_mode_raises(self):
        pipeline = TracePipeline(self._single_node_snapper(), on_snap_failure="raise")

        with pytest.raises(SnapInvalidResponseError):
            run(pipeline.build([c(40.0, -3.0), c(40.001, -3.001)]))

    def test_fallback_returns_densified(self):
        points = [c(40.0, -3.0), c(40.001, -3.001)]
        pipeline = TracePipeline(self._single_node_snapper(), on_snap_failure="densified")

        result = run(pipeline.build(points))

        assert result.points == densify(points, 20)
        assert not result.snapped
        assert result.fallback_reason == "SNAP_INVALID_RESPONSE"
