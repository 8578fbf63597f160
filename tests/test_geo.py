"""
Unit tests for geometry helpers.
"""

import pytest

from roadtrace.utils.geo import bbox, haversine_m, polyline_distance_km, polyline_length_m
from conftest import c


class TestGeo:

    def test_haversine_one_degree_of_latitude(self):
        assert haversine_m(c(0.0, 0.0), c(1.0, 0.0)) == pytest.approx(111195, rel=1e-3)

    def test_polyline_length_sums_segments(self, sample_trace):
        expected = haversine_m(sample_trace[0], sample_trace[1]) + haversine_m(sample_trace[1], sample_trace[2])
        assert polyline_length_m(sample_trace) == pytest.approx(expected)

    def test_distance_km_rounded(self):
        assert polyline_distance_km([c(40.0, -3.0), c(40.001, -3.001)]) == 0.14

    def test_distance_km_short_input(self):
        assert polyline_distance_km([c(40.0, -3.0)]) == 0.0

    def test_bbox(self, sample_trace):
        assert bbox(sample_trace) == {"min_lat": 40.0, "min_lng": -3.001, "max_lat": 40.002, "max_lng": -3.0}
