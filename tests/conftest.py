import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from commute_cost import Commuters


@pytest.fixture
def zctas():
    """A handful of real-ish Bay Area ZCTA internal points."""
    return pd.DataFrame(
        {
            "zcta": ["94110", "94105", "94612", "94043", "95112", "94301"],
            "lat": [37.749, 37.790, 37.809, 37.419, 37.346, 37.444],
            "lon": [-122.416, -122.394, -122.270, -122.070, -121.884, -122.150],
        }
    )


@pytest.fixture
def two_clusters():
    """Five people around San Francisco and five around San Jose, working where they live."""
    north = [(37.77, -122.42), (37.78, -122.41), (37.76, -122.43), (37.775, -122.40), (37.765, -122.415)]
    south = [(37.34, -121.89), (37.35, -121.88), (37.33, -121.90), (37.345, -121.87), (37.335, -121.885)]
    rows = []
    for i, (lat, lon) in enumerate(north + south):
        rows.append(
            {
                "name": f"p{i}",
                "home_zip": "00000",
                "work_zip": "00000",
                "home_lat": lat,
                "home_lon": lon,
                "work_lat": lat + 0.005,
                "work_lon": lon + 0.005,
            }
        )
    return pd.DataFrame(rows)


@pytest.fixture
def two_cluster_commuters(two_clusters):
    return Commuters.from_frame(two_clusters)
