from typing import Dict, List, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from commute_cost import Commuters, distance_matrix, haversine_distance


def commute_table(people: pd.DataFrame) -> pd.DataFrame:
    """Add the straight-line home -> work distance in miles."""
    out = people.copy()
    out["commute_mi"] = haversine_distance(
        out["home_lat"].to_numpy(dtype=float),
        out["home_lon"].to_numpy(dtype=float),
        out["work_lat"].to_numpy(dtype=float),
        out["work_lon"].to_numpy(dtype=float),
    )
    out["same_zip"] = out["home_zip"] == out["work_zip"]
    return out


def describe_commutes(table: pd.DataFrame) -> pd.DataFrame:
    return table[["commute_mi"]].describe()


def zip_counts(people: pd.DataFrame, column: str = "home_zip", top: int = 10) -> pd.DataFrame:
    """Most common ZIPs in one column, with their share of all people."""
    if column not in people.columns:
        raise ValueError(f"Missing required column: {column}")
    counts = people[column].value_counts().head(top)
    return pd.DataFrame(
        {
            column: counts.index,
            "people": counts.to_numpy(),
            "share": counts.to_numpy() / len(people),
        }
    )


def cost_grid(
    commuters: Commuters,
    metric: str,
    bounds: Sequence[Tuple[float, float]],
    resolution: int = 60,
) -> Dict[str, np.ndarray]:
    """
    Total cost of a single location placed at every point of a lat/lon grid.

    bounds are (lat_lo, lat_hi), (lon_lo, lon_hi); extra pairs are ignored so
    the output of siting.search_bounds can be passed straight in.
    """
    (lat_lo, lat_hi), (lon_lo, lon_hi) = bounds[0], bounds[1]
    lats = np.linspace(lat_lo, lat_hi, resolution)
    lons = np.linspace(lon_lo, lon_hi, resolution)
    lat_grid, lon_grid = np.meshgrid(lats, lons, indexing="ij")

    # One location per grid point, so each row of the (K, M) matrix is a full total
    costs = distance_matrix(commuters, lat_grid.ravel(), lon_grid.ravel(), metric)
    cost = costs.sum(axis=1).reshape(lat_grid.shape)

    return {"lat": lat_grid, "lon": lon_grid, "cost": cost}


def plot_commute_histogram(table: pd.DataFrame, ax=None, bins: int = 20):
    if ax is None:
        _, ax = plt.subplots(figsize=(7, 4))
    ax.hist(table["commute_mi"], bins=bins, color="steelblue", edgecolor="white")
    ax.axvline(table["commute_mi"].median(), color="darkred", linestyle="--", label="median")
    ax.set_xlabel("Home to work distance (miles)")
    ax.set_ylabel("People")
    ax.set_title("Straight-line commute distances")
    ax.legend()
    return ax


def plot_cost_landscape(grid: Dict[str, np.ndarray], ax=None, locations=None, commuters: Optional[Commuters] = None):
    """Filled contour of cost_grid output, with optional people and locations on top."""
    if ax is None:
        _, ax = plt.subplots(figsize=(7, 6))
    cs = ax.contourf(grid["lon"], grid["lat"], grid["cost"], levels=30, cmap="viridis")
    plt.colorbar(cs, ax=ax, label="Total cost (miles)")

    if commuters is not None:
        ax.scatter(commuters.home_lon, commuters.home_lat, s=10, c="white", label="homes")
        ax.scatter(commuters.work_lon, commuters.work_lat, s=10, c="orange", marker="s", label="work")
    if locations is not None:
        locations = np.asarray(locations, dtype=float).reshape(-1, 2)
        ax.scatter(locations[:, 1], locations[:, 0], s=120, c="red", marker="*", label="meetup")

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    if commuters is not None or locations is not None:
        ax.legend(loc="upper right")
    return ax


def plot_multistart_costs(results: List, ax=None, reference: Optional[float] = None):
    """Final cost of every multistart run, best to worst."""
    if ax is None:
        _, ax = plt.subplots(figsize=(7, 4))
    costs = sorted(r.cost for r in results)
    ax.plot(range(1, len(costs) + 1), costs, marker="o", linestyle="none", color="steelblue")
    if reference is not None:
        ax.axhline(reference, color="darkred", linestyle="--", label="differential evolution")
        ax.legend()
    ax.set_xlabel("Run (sorted)")
    ax.set_ylabel("Final total cost (miles)")
    ax.set_title(f"{len(costs)} local searches, {len(set(np.round(costs, 1)))} distinct answers")
    return ax
