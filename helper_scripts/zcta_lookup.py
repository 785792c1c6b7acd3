#!/usr/bin/env python3
"""
Resolve ZIP codes to coordinates with the Census ZCTA gazetteer.

The national gazetteer file has one row per ZIP Code Tabulation Area (ZCTA)
with an internal point (INTPTLAT / INTPTLONG). That point is what we use as
"the location" of a ZIP code everywhere else in this project.

Usage examples:
- Build a centroid CSV from an already downloaded gazetteer:
    python zcta_lookup.py --national zcta_national.txt --out zcta_centroids.csv

- Download the gazetteer first:
    python zcta_lookup.py --download --out zcta_centroids.csv

- Keep only Bay Area ZCTAs (multiple prefixes allowed):
    python zcta_lookup.py --prefix 940 --prefix 941 --prefix 945 --prefix 950
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import zipfile
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd
import requests
from sklearn.neighbors import BallTree

from commute_cost import EARTH_RADIUS_MI

GAZETTEER_URL = (
    "https://www2.census.gov/geo/docs/maps-data/data/gazetteer/"
    "2023_Gazetteer/2023_Gaz_zcta_national.zip"
)
NATIONAL_TXT = "zcta_national.txt"
OUTPUT_CSV = "zcta_centroids.csv"


def fetch_gazetteer(url: str = GAZETTEER_URL, dest: str = NATIONAL_TXT) -> str:
    """Download the zipped gazetteer and extract its .txt member to dest."""
    r = requests.get(url, timeout=60)
    r.raise_for_status()

    with zipfile.ZipFile(io.BytesIO(r.content)) as zf:
        members = [n for n in zf.namelist() if n.lower().endswith(".txt")]
        if not members:
            raise ValueError(f"No .txt file found in archive from {url}")
        data = zf.read(members[0])

    os.makedirs(os.path.dirname(dest), exist_ok=True) if os.path.dirname(dest) else None
    with open(dest, "wb") as f:
        f.write(data)
    return dest


def read_gazetteer(path: str) -> pd.DataFrame:
    """
    Read the national ZCTA gazetteer (tab-delimited) and return it with
    stripped column names and a 5-digit string GEOID.
    """
    df = pd.read_csv(path, sep="\t", dtype=str)

    # The last column name in the real file is padded with spaces
    df.columns = [c.strip() for c in df.columns]

    for col in ["GEOID", "INTPTLAT", "INTPTLONG"]:
        if col not in df.columns:
            raise ValueError(
                f"{col} column not found in header of {path}. Header: {list(df.columns)}"
            )

    df = df.dropna(subset=["GEOID", "INTPTLAT", "INTPTLONG"]).copy()
    df["GEOID"] = df["GEOID"].str.strip().str.zfill(5)
    df["INTPTLAT"] = df["INTPTLAT"].str.strip().astype(float)
    df["INTPTLONG"] = df["INTPTLONG"].str.strip().astype(float)
    return df.reset_index(drop=True)


def filter_by_prefix(df: pd.DataFrame, prefixes: List[str], column: str = "GEOID") -> pd.DataFrame:
    """
    Keep rows whose ZCTA starts with any of the provided 3-digit prefixes.
    """
    normalized = [p.strip() for p in prefixes if p and p.strip()]
    if not normalized:
        return df
    mask = df[column].astype(str).str.startswith(tuple(normalized))
    return df[mask].reset_index(drop=True)


def load_zcta_centroids(path: str) -> pd.DataFrame:
    """Load a centroid CSV as columns zcta, lat, lon."""
    df = pd.read_csv(path, dtype=str)
    df.columns = [c.strip().lower() for c in df.columns]

    # Handle both original and cleaned forms
    if "geoid" in df.columns and "zcta" not in df.columns:
        df = df.rename(columns={"geoid": "zcta"})
    if "intptlat" in df.columns and "lat" not in df.columns:
        df = df.rename(columns={"intptlat": "lat"})
    if "intptlong" in df.columns and "lon" not in df.columns:
        df = df.rename(columns={"intptlong": "lon"})

    for col in ["zcta", "lat", "lon"]:
        if col not in df.columns:
            raise ValueError(f"Missing required column: {col}")

    df["zcta"] = df["zcta"].str.strip().str.zfill(5)
    df["lat"] = df["lat"].astype(float)
    df["lon"] = df["lon"].astype(float)

    df = df.drop_duplicates(subset="zcta").reset_index(drop=True)
    return df[["zcta", "lat", "lon"]]


def nearest_zcta(zctas: pd.DataFrame, lat, lon) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return (zcta codes, distances in miles) of the nearest ZCTA internal
    point for each query point.
    """
    if zctas.empty:
        raise ValueError("No ZCTA centroids to search.")

    coords = np.radians(zctas[["lat", "lon"]].to_numpy(dtype=float))
    tree = BallTree(coords, metric="haversine")

    query = np.radians(np.column_stack([np.atleast_1d(lat), np.atleast_1d(lon)]).astype(float))
    distances, indices = tree.query(query, k=1)

    codes = zctas["zcta"].to_numpy()[indices[:, 0]]
    return codes, distances[:, 0] * EARTH_RADIUS_MI


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a zcta,lat,lon centroid CSV from the Census ZCTA gazetteer"
    )
    parser.add_argument(
        "--national",
        default=NATIONAL_TXT,
        help=f"Path to the national gazetteer TSV. Default: {NATIONAL_TXT}",
    )
    parser.add_argument(
        "--download",
        action="store_true",
        help="Download the gazetteer to --national before reading it.",
    )
    parser.add_argument(
        "--url",
        default=GAZETTEER_URL,
        help="Gazetteer zip URL used with --download.",
    )
    parser.add_argument(
        "--out",
        default=OUTPUT_CSV,
        help=f"Output CSV path. Default: {OUTPUT_CSV}",
    )
    parser.add_argument(
        "--prefix",
        action="append",
        default=[],
        help="3-digit ZIP prefix filter (e.g., 941). Can be specified multiple times.",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.download:
        print(f"Downloading gazetteer from {args.url} ...", file=sys.stderr)
        fetch_gazetteer(args.url, args.national)

    df = read_gazetteer(args.national)

    prefixes = sorted(set(args.prefix))
    if prefixes:
        before = len(df)
        df = filter_by_prefix(df, prefixes)
        print(
            f"Filtered gazetteer rows by prefixes {prefixes}: {before} -> {len(df)}",
            file=sys.stderr,
        )

    out = df.rename(columns={"GEOID": "zcta", "INTPTLAT": "lat", "INTPTLONG": "lon"})
    out = out[["zcta", "lat", "lon"]]

    os.makedirs(os.path.dirname(args.out), exist_ok=True) if os.path.dirname(args.out) else None
    out.to_csv(args.out, index=False)
    print(f"Wrote {len(out)} centroids to {args.out}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
