"""
Unit Tests for the distance and cost functions.

Run with: pytest tests/test_commute_cost.py -v
"""

import numpy as np
import pandas as pd
import pytest

from commute_cost import (
    EARTH_RADIUS_MI,
    Commuters,
    distance_matrix,
    euclidean_distance,
    haversine_distance,
    objective,
    point_to_segment_distance,
    to_plane,
    total_cost,
    unpack_locations,
)

ONE_DEGREE_MI = EARTH_RADIUS_MI * np.pi / 180  # ~69.09


@pytest.fixture
def one_commuter():
    """Home in the Mission, work in SoMa."""
    return Commuters.from_frame(
        pd.DataFrame(
            {
                "home_lat": [37.749],
                "home_lon": [-122.416],
                "work_lat": [37.790],
                "work_lon": [-122.394],
            }
        )
    )


# =============================================================================
# DISTANCE FORMULAS
# =============================================================================

class TestHaversine:

    def test_zero_distance(self):
        assert haversine_distance(37.0, -122.0, 37.0, -122.0) == pytest.approx(0.0)

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(ONE_DEGREE_MI)

    def test_symmetric(self):
        d1 = haversine_distance(37.77, -122.42, 34.05, -118.24)
        d2 = haversine_distance(34.05, -118.24, 37.77, -122.42)
        assert d1 == pytest.approx(d2)

    def test_san_francisco_to_los_angeles(self):
        """Roughly 347 miles as the crow flies."""
        d = haversine_distance(37.7749, -122.4194, 34.0522, -118.2437)
        assert d == pytest.approx(347, abs=3)

    def test_broadcasts(self):
        d = haversine_distance(np.array([[0.0], [1.0]]), 0.0, np.array([0.0, 1.0, 2.0]), 0.0)
        assert d.shape == (2, 3)
        assert d[1, 1] == pytest.approx(0.0)


class TestPlane:

    def test_to_plane_at_equator(self):
        x, y = to_plane(1.0, 1.0, lat0=0.0)
        assert x == pytest.approx(ONE_DEGREE_MI)
        assert y == pytest.approx(ONE_DEGREE_MI)

    def test_longitude_shrinks_with_latitude(self):
        x, _ = to_plane(60.0, 1.0, lat0=60.0)
        assert x == pytest.approx(ONE_DEGREE_MI / 2)

    def test_euclidean_close_to_haversine_at_city_scale(self):
        e = euclidean_distance(37.749, -122.416, 37.790, -122.394, lat0=37.77)
        h = haversine_distance(37.749, -122.416, 37.790, -122.394)
        assert e == pytest.approx(h, rel=0.005)


class TestPointToSegment:
    """Segment from (0, 0) to (4, 0) unless stated otherwise."""

    def test_projection_inside_segment(self):
        assert point_to_segment_distance(2.0, 3.0, 0.0, 0.0, 4.0, 0.0) == pytest.approx(3.0)

    def test_past_far_end_measures_to_endpoint(self):
        assert point_to_segment_distance(6.0, 0.0, 0.0, 0.0, 4.0, 0.0) == pytest.approx(2.0)

    def test_before_start_measures_to_endpoint(self):
        assert point_to_segment_distance(-3.0, 4.0, 0.0, 0.0, 4.0, 0.0) == pytest.approx(5.0)

    def test_point_on_segment(self):
        assert point_to_segment_distance(1.0, 0.0, 0.0, 0.0, 4.0, 0.0) == pytest.approx(0.0)

    def test_degenerate_segment(self):
        """Zero-length segment is the distance to that point."""
        assert point_to_segment_distance(4.0, 5.0, 1.0, 1.0, 1.0, 1.0) == pytest.approx(5.0)

    def test_vectorized_over_points_and_segments(self):
        px = np.array([[2.0], [6.0]])
        py = np.array([[3.0], [0.0]])
        ax = np.array([0.0, 0.0])
        ay = np.array([0.0, 0.0])
        bx = np.array([4.0, 0.0])
        by = np.array([0.0, 0.0])
        d = point_to_segment_distance(px, py, ax, ay, bx, by)
        assert d.shape == (2, 2)
        np.testing.assert_allclose(d, [[3.0, np.hypot(2, 3)], [2.0, 6.0]])


# =============================================================================
# COMMUTERS
# =============================================================================

class TestCommuters:

    def test_from_frame(self, two_clusters):
        c = Commuters.from_frame(two_clusters)
        assert len(c) == 10
        expected = np.mean(np.concatenate([two_clusters["home_lat"], two_clusters["work_lat"]]))
        assert c.lat0 == pytest.approx(expected)

    def test_missing_column(self, two_clusters):
        with pytest.raises(ValueError, match="work_lon"):
            Commuters.from_frame(two_clusters.drop(columns=["work_lon"]))

    def test_empty_frame(self, two_clusters):
        with pytest.raises(ValueError):
            Commuters.from_frame(two_clusters.iloc[0:0])

    def test_commute_miles(self, one_commuter):
        assert one_commuter.commute_miles[0] == pytest.approx(3.07, abs=0.05)


# =============================================================================
# METRICS
# =============================================================================

class TestMetrics:

    def test_home_metric_zero_at_home(self, one_commuter):
        assert distance_matrix(one_commuter, 37.749, -122.416, "home")[0, 0] == pytest.approx(0.0)

    def test_work_metric_zero_at_work(self, one_commuter):
        assert distance_matrix(one_commuter, 37.790, -122.394, "work")[0, 0] == pytest.approx(0.0)

    def test_detour_zero_at_either_end(self, one_commuter):
        d = distance_matrix(one_commuter, [37.749, 37.790], [-122.416, -122.394], "detour")
        np.testing.assert_allclose(d[:, 0], [0.0, 0.0], atol=1e-9)

    def test_detour_positive_off_route(self, one_commuter):
        assert distance_matrix(one_commuter, 37.80, -122.50, "detour")[0, 0] > 1.0

    def test_segment_zero_at_midpoint(self, one_commuter):
        d = distance_matrix(one_commuter, (37.749 + 37.790) / 2, (-122.416 - 122.394) / 2, "segment")
        assert d[0, 0] == pytest.approx(0.0, abs=1e-9)

    def test_segment_never_exceeds_home_distance(self, one_commuter):
        lats = np.linspace(37.6, 37.9, 7)
        lons = np.linspace(-122.6, -122.2, 7)
        seg = distance_matrix(one_commuter, lats, lons, "segment")
        home = distance_matrix(one_commuter, lats, lons, "euclidean")
        assert np.all(seg <= home + 1e-9)

    def test_shape(self, two_cluster_commuters):
        d = distance_matrix(two_cluster_commuters, [37.7, 37.4, 37.5], [-122.4, -121.9, -122.1])
        assert d.shape == (3, 10)

    def test_unknown_metric(self, one_commuter):
        with pytest.raises(ValueError, match="Unknown metric"):
            distance_matrix(one_commuter, 37.7, -122.4, "manhattan")


# =============================================================================
# TOTAL COST / OBJECTIVE
# =============================================================================

class TestTotalCost:

    def test_each_person_uses_cheapest_location(self, two_cluster_commuters):
        lats, lons = [37.77, 37.34], [-122.415, -121.885]
        costs = distance_matrix(two_cluster_commuters, lats, lons)
        assert total_cost(two_cluster_commuters, lats, lons) == pytest.approx(costs.min(axis=0).sum())

    def test_two_locations_beat_one(self, two_cluster_commuters):
        one = total_cost(two_cluster_commuters, 37.55, -122.15)
        two = total_cost(two_cluster_commuters, [37.77, 37.34], [-122.415, -121.885])
        assert two < one / 5

    def test_unused_location_changes_nothing(self, two_cluster_commuters):
        """A location far from everyone adds no cost (the source of local minima)."""
        base = total_cost(two_cluster_commuters, [37.77, 37.34], [-122.415, -121.885])
        extra = total_cost(two_cluster_commuters, [37.77, 37.34, 40.0], [-122.415, -121.885, -100.0])
        assert extra == pytest.approx(base)

    def test_objective_matches_total_cost(self, two_cluster_commuters):
        x = [37.77, -122.415, 37.34, -121.885]
        assert objective(x, two_cluster_commuters, "work") == pytest.approx(
            total_cost(two_cluster_commuters, [37.77, 37.34], [-122.415, -121.885], "work")
        )

    def test_unpack_locations(self):
        locs = unpack_locations([1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(locs, [[1.0, 2.0], [3.0, 4.0]])

    def test_odd_length_vector(self, two_cluster_commuters):
        with pytest.raises(ValueError, match="even number"):
            objective([37.7, -122.4, 37.5], two_cluster_commuters)
