import sys

import pandas as pd

PEOPLE_CSV = "people.csv"

# Accepted spellings for the two ZIP columns
HOME_ALIASES = ["home_zip", "home", "home_zipcode", "home_zip_code", "homezip"]
WORK_ALIASES = ["work_zip", "work", "work_zipcode", "work_zip_code", "workzip", "office_zip"]


def _clean_zip(series: pd.Series) -> pd.Series:
    # "94110-1234" -> "94110", "2134" -> "02134"
    s = series.astype(str).str.strip().str.split("-").str[0]
    s = s.str.replace(r"\.0$", "", regex=True)
    return s.str.zfill(5)


def load_people(path: str = PEOPLE_CSV) -> pd.DataFrame:
    """Read the people CSV and normalize it to name, home_zip, work_zip."""
    df = pd.read_csv(path, dtype=str)
    df.columns = [c.strip().lower().replace(" ", "_") for c in df.columns]

    for target, aliases in [("home_zip", HOME_ALIASES), ("work_zip", WORK_ALIASES)]:
        found = next((a for a in aliases if a in df.columns), None)
        if found is None:
            raise ValueError(
                f"Could not find a {target} column. Found: {list(df.columns)}"
            )
        if found != target:
            df = df.rename(columns={found: target})

    df = df.dropna(subset=["home_zip", "work_zip"]).copy()
    df["home_zip"] = _clean_zip(df["home_zip"])
    df["work_zip"] = _clean_zip(df["work_zip"])

    if "name" not in df.columns:
        df["name"] = [f"person_{i}" for i in range(1, len(df) + 1)]

    df = df.reset_index(drop=True)
    others = [c for c in df.columns if c not in ("name", "home_zip", "work_zip")]
    return df[["name", "home_zip", "work_zip"] + others]


def attach_coordinates(people: pd.DataFrame, zctas: pd.DataFrame, strict: bool = False) -> pd.DataFrame:
    """
    Add home_lat/home_lon/work_lat/work_lon from a zcta,lat,lon table.

    Rows with a ZIP that has no centroid are dropped (or raise with strict=True).
    """
    coords = zctas.set_index("zcta")[["lat", "lon"]]

    out = people.copy()
    for prefix in ["home", "work"]:
        looked_up = coords.reindex(out[f"{prefix}_zip"])
        out[f"{prefix}_lat"] = looked_up["lat"].to_numpy()
        out[f"{prefix}_lon"] = looked_up["lon"].to_numpy()

    missing_mask = out[["home_lat", "work_lat"]].isna().any(axis=1)
    if missing_mask.any():
        bad = out.loc[missing_mask]
        unknown = sorted(
            set(bad.loc[bad["home_lat"].isna(), "home_zip"])
            | set(bad.loc[bad["work_lat"].isna(), "work_zip"])
        )
        if strict:
            raise ValueError(f"No coordinates for ZIP codes: {unknown}")
        print(
            f"Dropping {int(missing_mask.sum())} people with unknown ZIP codes: {unknown}",
            file=sys.stderr,
        )
        out = out.loc[~missing_mask]

    if out.empty:
        raise ValueError("No people left with known home and work coordinates.")

    return out.reset_index(drop=True)
