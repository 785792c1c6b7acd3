import os
from typing import Optional

import folium
import numpy as np
import pandas as pd

OUTPUT_HTML = "meetup_map.html"

LOCATION_COLORS = ["red", "purple", "darkgreen", "orange", "cadetblue", "darkblue", "pink", "black"]


def build_siting_map(
    people: pd.DataFrame,
    locations=None,
    assignments: Optional[np.ndarray] = None,
    show_commutes: bool = True,
    zoom_start: int = 9,
) -> folium.Map:
    """
    Folium map of homes (blue), workplaces (gray), straight commute lines and,
    optionally, meetup locations with a line from every home to its assigned
    meetup.
    """
    center_lat = pd.concat([people["home_lat"], people["work_lat"]]).mean()
    center_lon = pd.concat([people["home_lon"], people["work_lon"]]).mean()

    m = folium.Map(location=[center_lat, center_lon], zoom_start=zoom_start, tiles="OpenStreetMap")

    homes = folium.FeatureGroup(name="Homes").add_to(m)
    works = folium.FeatureGroup(name="Workplaces").add_to(m)
    commutes = folium.FeatureGroup(name="Commutes", show=show_commutes).add_to(m)

    for _, row in people.iterrows():
        folium.CircleMarker(
            location=[row["home_lat"], row["home_lon"]],
            radius=4,
            color="blue",
            fill=True,
            fill_opacity=0.9,
            popup=f"{row['name']}: home {row['home_zip']}",
        ).add_to(homes)
        folium.CircleMarker(
            location=[row["work_lat"], row["work_lon"]],
            radius=4,
            color="gray",
            fill=True,
            fill_opacity=0.9,
            popup=f"{row['name']}: work {row['work_zip']}",
        ).add_to(works)
        folium.PolyLine(
            locations=[[row["home_lat"], row["home_lon"]], [row["work_lat"], row["work_lon"]]],
            weight=1,
            opacity=0.4,
            color="gray",
        ).add_to(commutes)

    if locations is not None:
        locations = np.asarray(locations, dtype=float).reshape(-1, 2)
        meetups = folium.FeatureGroup(name="Meetups").add_to(m)

        if assignments is not None:
            homes_lat = people["home_lat"].to_numpy()
            homes_lon = people["home_lon"].to_numpy()
            for i, loc_idx in enumerate(assignments):
                folium.PolyLine(
                    locations=[[homes_lat[i], homes_lon[i]], list(locations[loc_idx])],
                    weight=2,
                    opacity=0.6,
                    color=LOCATION_COLORS[int(loc_idx) % len(LOCATION_COLORS)],
                ).add_to(meetups)

        for j, (lat, lon) in enumerate(locations):
            n_assigned = int(np.sum(np.asarray(assignments) == j)) if assignments is not None else None
            popup = f"Meetup {j + 1} ({lat:.4f}, {lon:.4f})"
            if n_assigned is not None:
                popup += f": {n_assigned} people"
            folium.Marker(
                location=[lat, lon],
                popup=popup,
                tooltip=f"Meetup {j + 1}",
                icon=folium.Icon(color=LOCATION_COLORS[j % len(LOCATION_COLORS)], icon="star"),
            ).add_to(meetups)

    folium.LayerControl().add_to(m)
    return m


def save_map(m: folium.Map, path: str = OUTPUT_HTML) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True) if os.path.dirname(path) else None
    m.save(path)
    print(f"Saved map to {path}")
    return path
