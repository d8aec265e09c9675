from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
import numpy as np
from numpy.typing import NDArray
import pandas as pd

from popglm_common.errors import DataNotFoundError
from popglm_common.settings import BASE_YEAR
from popglm_ml.features import HEADER_ALIASES, META_COLS, SCALED_COL, SERIES_COL, TARGET_COL, YEAR_COL
from popglm_ml.utils import warn

# "1970" or R-style "X1970"
_YEAR_LABEL = re.compile(r"^x?(\d{4})$", re.IGNORECASE)


@dataclass(frozen=True)
class Observation:
    series_id: str
    year: int
    scaled_year: int
    population: float


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    cols = [str(c).strip().lower() for c in out.columns]
    out.columns = [HEADER_ALIASES.get(c, c) for c in cols]
    return out


def load_population_table(path: str | Path) -> pd.DataFrame:
    """Read the wide-format dataset (one column per survey year)."""
    df: pd.DataFrame = pd.read_csv(path, low_memory=False)
    return normalize_headers(df)


def year_columns(df: pd.DataFrame) -> dict[str, int]:
    """Map each per-year column label to the year it holds."""
    out: dict[str, int] = {}
    for c in df.columns:
        m = _YEAR_LABEL.match(str(c).strip())
        if m:
            out[c] = int(m.group(1))
    return out


def to_long(df: pd.DataFrame) -> pd.DataFrame:
    """
    Melt wide year columns into (series_id, genus, species, country, year, population).
    Cells that are not numbers ("NULL", blanks) become NaN.
    """
    years = year_columns(df)
    if not years:
        raise ValueError("No per-year columns found (expected labels like '1970' or 'X1970').")

    missing = [c for c in META_COLS if c not in df.columns]
    if missing:
        raise KeyError(f"Missing columns {missing} in {list(df.columns)}")

    work = df.copy()
    # one series per source row; prefer the dataset's own id when it has one
    if "id" in work.columns:
        work[SERIES_COL] = work["id"].astype(str)
    else:
        work[SERIES_COL] = work.index.astype(str)

    long = work.melt(
        id_vars=[SERIES_COL] + META_COLS,
        value_vars=list(years),
        var_name="year_label",
        value_name=TARGET_COL,
    )
    long[YEAR_COL] = long["year_label"].map(years).astype("int64")
    long[TARGET_COL] = pd.to_numeric(long[TARGET_COL], errors="coerce")
    return long[[SERIES_COL] + META_COLS + [YEAR_COL, TARGET_COL]]


def filter_population(
    long_df: pd.DataFrame,
    genus: str,
    species: str,
    country: str,
    base_year: int = BASE_YEAR,
) -> pd.DataFrame:
    """
    Restrict long-form rows to one taxon/location and derive scaled_year.

    Null and zero counts are dropped: zero means "not surveyed" in this
    dataset, not "locally extinct". Remaining rows are sorted by year and
    must span at least two survey years.
    """
    sel = (
        (long_df["genus"].astype(str).str.strip() == genus.strip())
        & (long_df["species"].astype(str).str.strip() == species.strip())
        & (long_df["country"].astype(str).str.strip() == country.strip())
    )
    matched = long_df.loc[sel]
    if matched.empty:
        raise DataNotFoundError(genus, species, country)

    if (matched[TARGET_COL] < 0).any():
        raise ValueError(f"Negative population counts for {genus} {species} @ {country}")

    keep = matched[TARGET_COL].notna() & (matched[TARGET_COL] != 0)
    dropped = int((~keep).sum())
    out = matched.loc[keep].copy()
    if out.empty:
        raise DataNotFoundError(genus, species, country, reason="all counts missing or zero")
    if dropped:
        warn(f"{genus} {species} @ {country}: excluded {dropped} missing/zero counts")
    # a trend needs at least two survey years
    if out[YEAR_COL].nunique() < 2:
        raise DataNotFoundError(genus, species, country, reason="fewer than two distinct survey years")

    out[SCALED_COL] = out[YEAR_COL] - base_year
    out = out.sort_values([YEAR_COL, SERIES_COL], kind="mergesort").reset_index(drop=True)
    return out[[SERIES_COL] + META_COLS + [YEAR_COL, SCALED_COL, TARGET_COL]]


def load_observations(
    path: str | Path,
    genus: str,
    species: str,
    country: str,
    base_year: int = BASE_YEAR,
) -> pd.DataFrame:
    return filter_population(to_long(load_population_table(path)), genus, species, country, base_year)


def observations_from_frame(frame: pd.DataFrame) -> tuple[Observation, ...]:
    return tuple(
        Observation(
            series_id=str(r.series_id),
            year=int(r.year),
            scaled_year=int(r.scaled_year),
            population=float(r.population),
        )
        for r in frame.itertuples(index=False)
    )


def design_arrays(frame: pd.DataFrame) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    # keep pandas for selection; convert to NumPy right before model calls
    x: NDArray[np.float64] = frame[SCALED_COL].to_numpy(dtype="float64")
    y: NDArray[np.float64] = frame[TARGET_COL].to_numpy(dtype="float64")
    return x, y
