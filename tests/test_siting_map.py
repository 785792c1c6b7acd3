"""
Unit Tests for the folium map.

Run with: pytest tests/test_siting_map.py -v
"""

import folium
import numpy as np

from siting_map import build_siting_map, save_map


def children_of_type(m, cls):
    found = []
    stack = [m]
    while stack:
        node = stack.pop()
        for child in node._children.values():
            if isinstance(child, cls):
                found.append(child)
            stack.append(child)
    return found


class TestBuildSitingMap:

    def test_people_only(self, two_clusters):
        m = build_siting_map(two_clusters)
        assert isinstance(m, folium.Map)
        # a home and a work marker per person
        assert len(children_of_type(m, folium.CircleMarker)) == 20
        assert len(children_of_type(m, folium.PolyLine)) == 10
        # CircleMarker subclasses Marker; no plain meetup markers without locations
        assert all(isinstance(c, folium.CircleMarker) for c in children_of_type(m, folium.Marker))

    def test_with_locations_and_assignments(self, two_clusters):
        locations = np.array([[37.77, -122.415], [37.34, -121.885]])
        assignments = np.array([0] * 5 + [1] * 5)
        m = build_siting_map(two_clusters, locations=locations, assignments=assignments)

        stars = [
            c for c in children_of_type(m, folium.Marker) if not isinstance(c, folium.CircleMarker)
        ]
        assert len(stars) == 2
        # 10 commutes + 10 assignment lines
        assert len(children_of_type(m, folium.PolyLine)) == 20

    def test_centered_on_people(self, two_clusters):
        m = build_siting_map(two_clusters)
        lat, lon = m.location
        assert 37.3 < lat < 37.8
        assert -122.5 < lon < -121.8


class TestSaveMap:

    def test_writes_html(self, two_clusters, tmp_path):
        path = tmp_path / "maps" / "people.html"
        assert save_map(build_siting_map(two_clusters), str(path)) == str(path)
        assert "leaflet" in path.read_text().lower()
