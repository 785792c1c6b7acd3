"""
Local and global optimization of K meetup locations.

The objective (commute_cost.objective) takes the minimum over locations for
every person, so for K > 1 it is piecewise and full of local minima: a
location that nobody is currently assigned to has zero gradient and a local
search never moves it toward anyone. Nelder-Mead and L-BFGS-B are therefore
very sensitive to their starting point, while Differential Evolution searches
the whole bounding box.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import differential_evolution, minimize

from commute_cost import Commuters, distance_matrix, objective, unpack_locations

METHODS = ["nelder-mead", "l-bfgs-b", "differential-evolution"]
DEFAULT_SEED = 42


@dataclass
class SitingResult:
    method: str
    metric: str
    locations: np.ndarray  # (K, 2) lat, lon
    cost: float
    n_evals: int
    success: bool
    message: str
    start: Optional[np.ndarray] = None

    @property
    def k(self) -> int:
        return len(self.locations)


def search_bounds(commuters: Commuters, k: int, pad: float = 0.05) -> List[Tuple[float, float]]:
    """Box around every home and work point, padded by a fraction of its span."""
    lats = np.concatenate([commuters.home_lat, commuters.work_lat])
    lons = np.concatenate([commuters.home_lon, commuters.work_lon])

    lat_pad = max((lats.max() - lats.min()) * pad, 1e-3)
    lon_pad = max((lons.max() - lons.min()) * pad, 1e-3)
    lat_bounds = (float(lats.min() - lat_pad), float(lats.max() + lat_pad))
    lon_bounds = (float(lons.min() - lon_pad), float(lons.max() + lon_pad))
    return [lat_bounds, lon_bounds] * k


def initial_guess(
    commuters: Commuters,
    k: int,
    strategy: str = "centroid",
    rng: Optional[np.random.Generator] = None,
) -> np.ndarray:
    """
    Starting vector for the local optimizers.

    centroid: every location at the mean home point (offset by a few
              thousandths of a degree so they are distinct). The "obvious"
              start; nothing guarantees it is a good one for K > 1.
    random:   uniform inside search_bounds.
    homes:    K distinct home points picked at random.
    """
    rng = rng if rng is not None else np.random.default_rng(DEFAULT_SEED)

    if strategy == "centroid":
        center = np.array([commuters.home_lat.mean(), commuters.home_lon.mean()])
        offsets = 0.002 * np.arange(k)[:, None] * np.array([1.0, -1.0])
        bounds = np.array(search_bounds(commuters, k))
        return np.clip((center + offsets).ravel(), bounds[:, 0], bounds[:, 1])

    if strategy == "random":
        bounds = np.array(search_bounds(commuters, k))
        return rng.uniform(bounds[:, 0], bounds[:, 1])

    if strategy == "homes":
        homes = np.column_stack([commuters.home_lat, commuters.home_lon])
        homes = np.unique(homes, axis=0)
        if len(homes) < k:
            raise ValueError(f"Only {len(homes)} distinct homes for {k} locations")
        picks = rng.choice(len(homes), size=k, replace=False)
        return homes[picks].ravel()

    raise ValueError(f"Unknown start strategy {strategy!r}")


def _result(method, metric, res, start) -> SitingResult:
    return SitingResult(
        method=method,
        metric=metric,
        locations=unpack_locations(res.x),
        cost=float(res.fun),
        n_evals=int(res.nfev),
        success=bool(res.success),
        message=str(res.message),
        start=None if start is None else np.asarray(start, dtype=float),
    )


def optimize_nelder_mead(
    commuters: Commuters,
    k: int = 1,
    metric: str = "home",
    x0: Optional[Sequence[float]] = None,
    maxiter: Optional[int] = None,
) -> SitingResult:
    x0 = initial_guess(commuters, k) if x0 is None else np.asarray(x0, dtype=float)
    res = minimize(
        objective,
        x0,
        args=(commuters, metric),
        method="Nelder-Mead",
        options={"maxiter": maxiter or 400 * len(x0), "xatol": 1e-5, "fatol": 1e-6},
    )
    return _result("nelder-mead", metric, res, x0)


def optimize_lbfgsb(
    commuters: Commuters,
    k: int = 1,
    metric: str = "home",
    x0: Optional[Sequence[float]] = None,
    bounds: Optional[List[Tuple[float, float]]] = None,
    maxiter: int = 500,
) -> SitingResult:
    """L-BFGS-B with finite-difference gradients, boxed to search_bounds."""
    x0 = initial_guess(commuters, k) if x0 is None else np.asarray(x0, dtype=float)
    bounds = bounds or search_bounds(commuters, k)
    res = minimize(
        objective,
        x0,
        args=(commuters, metric),
        method="L-BFGS-B",
        bounds=bounds,
        options={"maxiter": maxiter},
    )
    return _result("l-bfgs-b", metric, res, x0)


def optimize_differential_evolution(
    commuters: Commuters,
    k: int = 1,
    metric: str = "home",
    bounds: Optional[List[Tuple[float, float]]] = None,
    seed: Optional[int] = DEFAULT_SEED,
    maxiter: int = 300,
    popsize: int = 20,
    polish: bool = True,
) -> SitingResult:
    """Global search over the bounding box; the same seed gives the same answer."""
    bounds = bounds or search_bounds(commuters, k)
    res = differential_evolution(
        objective,
        bounds,
        args=(commuters, metric),
        maxiter=maxiter,
        popsize=popsize,
        tol=1e-8,
        polish=polish,
        rng=seed,
    )
    return _result("differential-evolution", metric, res, None)


def run_method(
    method: str,
    commuters: Commuters,
    k: int = 1,
    metric: str = "home",
    x0: Optional[Sequence[float]] = None,
    seed: Optional[int] = DEFAULT_SEED,
) -> SitingResult:
    if method == "nelder-mead":
        return optimize_nelder_mead(commuters, k, metric, x0=x0)
    if method == "l-bfgs-b":
        return optimize_lbfgsb(commuters, k, metric, x0=x0)
    if method == "differential-evolution":
        return optimize_differential_evolution(commuters, k, metric, seed=seed)
    raise ValueError(f"Unknown method {method!r}. Choose from {METHODS}")


def multistart(
    commuters: Commuters,
    k: int,
    metric: str = "home",
    method: str = "nelder-mead",
    n_starts: int = 20,
    seed: Optional[int] = DEFAULT_SEED,
    strategy: str = "random",
) -> List[SitingResult]:
    """
    Run a local optimizer from n_starts random starting points.

    Returned sorted by cost; the spread between the first and last entry is
    the local-minimum problem in one number.
    """
    if method not in ("nelder-mead", "l-bfgs-b"):
        raise ValueError(f"multistart needs a local method, got {method!r}")

    rng = np.random.default_rng(seed)
    results = []
    for i in range(n_starts):
        x0 = initial_guess(commuters, k, strategy=strategy, rng=rng)
        results.append(run_method(method, commuters, k, metric, x0=x0))
        if (i + 1) % 10 == 0:
            print(f"Finished {i + 1}/{n_starts} starts...")

    return sorted(results, key=lambda r: r.cost)


def compare_methods(
    commuters: Commuters,
    k: int,
    metric: str = "home",
    seed: Optional[int] = DEFAULT_SEED,
) -> List[SitingResult]:
    """All three methods; the local ones start from the naive centroid guess."""
    x0 = initial_guess(commuters, k, strategy="centroid")
    return [run_method(m, commuters, k, metric, x0=x0, seed=seed) for m in METHODS]


def assign_to_locations(commuters: Commuters, locations, metric: str = "home") -> Tuple[np.ndarray, np.ndarray]:
    """Index of each person's cheapest location, and that cost."""
    locations = np.asarray(locations, dtype=float).reshape(-1, 2)
    costs = distance_matrix(commuters, locations[:, 0], locations[:, 1], metric)
    idx = np.argmin(costs, axis=0)
    return idx, costs[idx, np.arange(costs.shape[1])]


def results_frame(results: Sequence[SitingResult]) -> pd.DataFrame:
    rows = []
    for r in results:
        row = {
            "method": r.method,
            "metric": r.metric,
            "cost": r.cost,
            "n_evals": r.n_evals,
            "success": r.success,
        }
        for j, (lat, lon) in enumerate(r.locations, start=1):
            row[f"lat_{j}"] = lat
            row[f"lon_{j}"] = lon
        rows.append(row)
    return pd.DataFrame(rows)
