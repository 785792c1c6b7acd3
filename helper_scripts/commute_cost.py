"""
Distance and cost functions for siting meetup locations.

Every function here is vectorized with numpy broadcasting so the optimizers
can evaluate K candidate locations against M people in one call. Candidate
arrays are laid out as (K, 1) against people as (1, M), giving (K, M) costs.

Units are miles. Great-circle distances use the haversine formula; the
"planar" metrics (euclidean, segment) use a local equirectangular projection
around the mean latitude of the people, which is accurate to well under a
percent at metro-area scale.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

EARTH_RADIUS_MI = 3958.7613
EARTH_RADIUS_KM = 6371.0088


def haversine_distance(lat1, lon1, lat2, lon2, radius: float = EARTH_RADIUS_MI) -> np.ndarray:
    """Great-circle distance between (lat1, lon1) and (lat2, lon2), broadcasting."""
    phi1, phi2 = np.radians(lat1), np.radians(lat2)
    dphi = phi2 - phi1
    dlambda = np.radians(np.asarray(lon2) - np.asarray(lon1))
    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2.0) ** 2
    return radius * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def to_plane(lat, lon, lat0: float, radius: float = EARTH_RADIUS_MI):
    """Equirectangular projection of lat/lon (degrees) to x/y miles around lat0."""
    x = radius * np.radians(lon) * np.cos(np.radians(lat0))
    y = radius * np.radians(lat)
    return x, y


def euclidean_distance(lat1, lon1, lat2, lon2, lat0: float) -> np.ndarray:
    """Straight-line distance in the local plane."""
    x1, y1 = to_plane(lat1, lon1, lat0)
    x2, y2 = to_plane(lat2, lon2, lat0)
    return np.hypot(x2 - x1, y2 - y1)


def point_to_segment_distance(px, py, ax, ay, bx, by) -> np.ndarray:
    """
    Distance from point P to the segment AB in the plane.

    P is projected onto the line through A and B; the projection parameter t
    is clamped to [0, 1] so points past either end measure to that endpoint.
    A zero-length segment is just the distance to A.
    """
    dx = np.asarray(bx) - np.asarray(ax)
    dy = np.asarray(by) - np.asarray(ay)
    seg_len2 = dx * dx + dy * dy
    degenerate = seg_len2 == 0

    t = ((px - ax) * dx + (py - ay) * dy) / np.where(degenerate, 1.0, seg_len2)
    t = np.where(degenerate, 0.0, np.clip(t, 0.0, 1.0))

    cx = ax + t * dx
    cy = ay + t * dy
    return np.hypot(px - cx, py - cy)


@dataclass
class Commuters:
    home_lat: np.ndarray
    home_lon: np.ndarray
    work_lat: np.ndarray
    work_lon: np.ndarray
    lat0: float

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "Commuters":
        for col in ["home_lat", "home_lon", "work_lat", "work_lon"]:
            if col not in df.columns:
                raise ValueError(f"Missing required column: {col}")
        if df.empty:
            raise ValueError("No commuters to build from.")

        home_lat = df["home_lat"].to_numpy(dtype=float)
        work_lat = df["work_lat"].to_numpy(dtype=float)
        return cls(
            home_lat=home_lat,
            home_lon=df["home_lon"].to_numpy(dtype=float),
            work_lat=work_lat,
            work_lon=df["work_lon"].to_numpy(dtype=float),
            lat0=float(np.mean(np.concatenate([home_lat, work_lat]))),
        )

    def __len__(self) -> int:
        return len(self.home_lat)

    @property
    def commute_miles(self) -> np.ndarray:
        return haversine_distance(self.home_lat, self.home_lon, self.work_lat, self.work_lon)


def _home_cost(c: Commuters, lats, lons):
    return haversine_distance(c.home_lat, c.home_lon, lats, lons)


def _work_cost(c: Commuters, lats, lons):
    return haversine_distance(c.work_lat, c.work_lon, lats, lons)


def _detour_cost(c: Commuters, lats, lons):
    via = (
        haversine_distance(c.home_lat, c.home_lon, lats, lons)
        + haversine_distance(lats, lons, c.work_lat, c.work_lon)
    )
    # Rounding can push the triangle inequality a hair below zero
    return np.maximum(via - c.commute_miles, 0.0)


def _segment_cost(c: Commuters, lats, lons):
    px, py = to_plane(lats, lons, c.lat0)
    ax, ay = to_plane(c.home_lat, c.home_lon, c.lat0)
    bx, by = to_plane(c.work_lat, c.work_lon, c.lat0)
    return point_to_segment_distance(px, py, ax, ay, bx, by)


def _euclidean_cost(c: Commuters, lats, lons):
    return euclidean_distance(c.home_lat, c.home_lon, lats, lons, c.lat0)


METRICS = {
    "home": _home_cost,
    "work": _work_cost,
    "detour": _detour_cost,
    "segment": _segment_cost,
    "euclidean": _euclidean_cost,
}


def distance_matrix(commuters: Commuters, lats, lons, metric: str = "home") -> np.ndarray:
    """Cost of each of K locations for each of M people, shape (K, M)."""
    if metric not in METRICS:
        raise ValueError(f"Unknown metric {metric!r}. Choose from {sorted(METRICS)}")
    lats = np.atleast_1d(np.asarray(lats, dtype=float))[:, None]
    lons = np.atleast_1d(np.asarray(lons, dtype=float))[:, None]
    return METRICS[metric](commuters, lats, lons)


def total_cost(commuters: Commuters, lats, lons, metric: str = "home") -> float:
    """Everyone goes to their cheapest location; sum those costs."""
    costs = distance_matrix(commuters, lats, lons, metric)
    return float(np.sum(np.min(costs, axis=0)))


def unpack_locations(x) -> np.ndarray:
    """[lat_1, lon_1, ..., lat_K, lon_K] -> (K, 2) array."""
    x = np.asarray(x, dtype=float).ravel()
    if x.size == 0 or x.size % 2:
        raise ValueError(f"Expected an even number of coordinates, got {x.size}")
    return x.reshape(-1, 2)


def objective(x, commuters: Commuters, metric: str = "home") -> float:
    """Flat parameter vector to total cost; this is what gets minimized."""
    locs = unpack_locations(x)
    return total_cost(commuters, locs[:, 0], locs[:, 1], metric)
