from __future__ import annotations
from pathlib import Path
import numpy as np
import pandas as pd
import pytest

from popglm_ml.dataset import filter_population, normalize_headers, to_long

SHAG = ("Phalacrocorax", "aristotelis", "United Kingdom")


@pytest.fixture(autouse=True)
def _quiet(monkeypatch):
    monkeypatch.delenv("POPGLM_VERBOSE", raising=False)


@pytest.fixture
def shag() -> tuple[str, str, str]:
    return SHAG


@pytest.fixture
def wide_df() -> pd.DataFrame:
    """Small LPI-style export: R-style headers, 'NULL' cells, zero counts."""
    return pd.DataFrame({
        "id":           [1, 2, 3, 4],
        "Genus":        ["Phalacrocorax", "Phalacrocorax", "Phalacrocorax", "Larus"],
        "Species":      ["aristotelis", "aristotelis", "aristotelis", "argentatus"],
        "Country.list": ["United Kingdom", "United Kingdom", "Norway", "United Kingdom"],
        "X1974":        [71, "NULL", 100, 5],
        "X1980":        [42, 30, 90, 6],
        "X1985":        ["NULL", 25, 80, 7],
        "X1990":        [18, 0, 70, 8],
        "X1995":        [0, 12, 60, np.nan],
    })


@pytest.fixture
def wide_csv(tmp_path: Path, wide_df: pd.DataFrame) -> Path:
    p = tmp_path / "lpi.csv"
    wide_df.to_csv(p, index=False)
    return p


@pytest.fixture
def shag_frame(wide_df: pd.DataFrame) -> pd.DataFrame:
    return filter_population(to_long(normalize_headers(wide_df)), *SHAG)
