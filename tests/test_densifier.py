"""
Unit tests for the point densifier.
"""

import pytest

from roadtrace.services.densifier import densify
from conftest import c


class TestDensify:
    """Linear interpolation between consecutive taps."""

    @pytest.mark.parametrize("steps", [1, 2, 5, 20])
    def test_output_length(self, sample_trace, steps):
        out = densify(sample_trace, steps)
        assert len(out) == 1 + (len(sample_trace) - 1) * steps

    def test_segment_ends_are_exact(self, sample_trace):
        steps = 7
        out = densify(sample_trace, steps)

        assert out[0] == sample_trace[0]
        for seg, end in enumerate(sample_trace[1:], start=1):
            assert out[seg * steps] == end

    def test_intermediate_points_are_evenly_spaced(self):
        out = densify([c(0.0, 0.0), c(1.0, 2.0)], 4)

        assert [p.lat for p in out] == pytest.approx([0.0, 0.25, 0.5, 0.75, 1.0])
        assert [p.lng for p in out] == pytest.approx([0.0, 0.5, 1.0, 1.5, 2.0])

    def test_single_step_is_identity(self, sample_trace):
        assert densify(sample_trace, 1) == sample_trace

    @pytest.mark.parametrize("points", [[], [c(40.0, -3.0)]])
    def test_fewer_than_two_points_unchanged(self, points):
        assert densify(points, 20) == points

    def test_input_not_mutated(self, sample_trace):
        before = list(sample_trace)
        densify(sample_trace, 10)
        assert sample_trace == before

    def test_rejects_zero_steps(self, sample_trace):
        with pytest.raises(ValueError):
            densify(sample_trace, 0)
