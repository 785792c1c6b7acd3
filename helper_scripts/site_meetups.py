#!/usr/bin/env python3
"""
Find K meetup locations that minimize total commute cost for a list of people.

Inputs:
- people.csv           name, home_zip, work_zip
- zcta_bay_area.csv    zcta, lat, lon (see zcta_lookup.py to build one)

Usage examples:
- One meetup spot closest to everyone's home:
    python site_meetups.py --people people.csv --zctas zcta_bay_area.csv

- Three spots along people's commutes, every method:
    python site_meetups.py --k 3 --metric segment --method all

- Save the answer and a map:
    python site_meetups.py --k 2 --out meetups.csv --map meetup_map.html
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

import numpy as np
import pandas as pd

from commute_cost import METRICS, Commuters
from commute_stats import commute_table, describe_commutes
from people_data import PEOPLE_CSV, attach_coordinates, load_people
from siting import DEFAULT_SEED, METHODS, assign_to_locations, initial_guess, run_method
from siting_map import build_siting_map, save_map
from zcta_lookup import load_zcta_centroids, nearest_zcta

ZCTAS_CSV = "zcta_bay_area.csv"
K_LOCATIONS = 1
METRIC = "home"


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Optimize meetup locations for a list of commuters"
    )
    parser.add_argument("--people", default=PEOPLE_CSV, help=f"People CSV. Default: {PEOPLE_CSV}")
    parser.add_argument("--zctas", default=ZCTAS_CSV, help=f"ZCTA centroid CSV. Default: {ZCTAS_CSV}")
    parser.add_argument("--k", type=int, default=K_LOCATIONS, help="Number of meetup locations.")
    parser.add_argument("--metric", choices=sorted(METRICS), default=METRIC, help="Cost metric.")
    parser.add_argument(
        "--method",
        choices=METHODS + ["all"],
        default="differential-evolution",
        help="Optimizer to run.",
    )
    parser.add_argument(
        "--start",
        choices=["centroid", "random", "homes"],
        default="centroid",
        help="Starting point for the local methods.",
    )
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="Random seed.")
    parser.add_argument("--out", default=None, help="Write the best locations to this CSV.")
    parser.add_argument("--map", default=None, help="Write a folium map of the best answer here.")
    parser.add_argument("--strict", action="store_true", help="Fail on ZIPs with no centroid.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.k < 1:
        parser.error("--k must be at least 1")

    print("Loading people and ZCTA centroids...")
    zctas = load_zcta_centroids(args.zctas)
    people = attach_coordinates(load_people(args.people), zctas, strict=args.strict)
    print(f"Loaded {len(people)} people")

    table = commute_table(people)
    print(describe_commutes(table))
    print("\n")

    commuters = Commuters.from_frame(people)

    methods = METHODS if args.method == "all" else [args.method]
    x0 = None
    if any(m in ("nelder-mead", "l-bfgs-b") for m in methods):
        rng = np.random.default_rng(args.seed)
        x0 = initial_guess(commuters, args.k, strategy=args.start, rng=rng)

    results = []
    for method in methods:
        print(f"Running {method} for {args.k} location(s), metric={args.metric}...")
        r = run_method(method, commuters, args.k, args.metric, x0=x0, seed=args.seed)
        results.append(r)

        codes, dists = nearest_zcta(zctas, r.locations[:, 0], r.locations[:, 1])
        print(f"  total cost {r.cost:.2f} mi over {r.n_evals} evaluations ({r.message})")
        for j, ((lat, lon), code, d) in enumerate(zip(r.locations, codes, dists), start=1):
            print(f"  location {j}: ({lat:.5f}, {lon:.5f}) near ZCTA {code} ({d:.2f} mi)")

    best = min(results, key=lambda r: r.cost)
    print(f"\nBest: {best.method} with total cost {best.cost:.2f} mi")

    idx, costs = assign_to_locations(commuters, best.locations, args.metric)

    if args.out:
        codes, dists = nearest_zcta(zctas, best.locations[:, 0], best.locations[:, 1])
        out = pd.DataFrame(
            {
                "location": range(1, best.k + 1),
                "lat": best.locations[:, 0],
                "lon": best.locations[:, 1],
                "nearest_zcta": codes,
                "zcta_distance_mi": dists,
                "people": [int((idx == j).sum()) for j in range(best.k)],
                "cost_mi": [float(costs[idx == j].sum()) for j in range(best.k)],
            }
        )
        os.makedirs(os.path.dirname(args.out), exist_ok=True) if os.path.dirname(args.out) else None
        out.to_csv(args.out, index=False)
        print(f"Saved {args.out}", file=sys.stderr)

    if args.map:
        m = build_siting_map(people, locations=best.locations, assignments=idx)
        save_map(m, args.map)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
