# src/popglm_common/settings.py
from __future__ import annotations
import os
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

BASE_YEAR = 1974


class Settings(BaseModel):
    data_path: str = "data/LPIdata_Feb2016.csv"
    genus: str = "Phalacrocorax"
    species: str = "aristotelis"
    country: str = "United Kingdom"
    base_year: int = BASE_YEAR
    max_iter: int = Field(default=25, gt=0)
    tol: float = Field(default=1e-8, gt=0)
    confidence: float = Field(default=0.95, gt=0, lt=1)
    artifacts_dir: str = "artifacts"


def is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


def settings_from_env() -> Settings:
    """
    Build Settings from POPGLM_* variables; anything unset keeps its default.
    """
    env = {
        "data_path":     os.getenv("POPGLM_DATA_PATH"),
        "genus":         os.getenv("POPGLM_GENUS"),
        "species":       os.getenv("POPGLM_SPECIES"),
        "country":       os.getenv("POPGLM_COUNTRY"),
        "base_year":     os.getenv("POPGLM_BASE_YEAR"),
        "max_iter":      os.getenv("POPGLM_MAX_ITER"),
        "tol":           os.getenv("POPGLM_TOL"),
        "confidence":    os.getenv("POPGLM_CONFIDENCE"),
        "artifacts_dir": os.getenv("POPGLM_ARTIFACTS_DIR"),
    }
    values: dict[str, object] = {k: v for k, v in env.items() if v not in (None, "")}
    return Settings.model_validate(values)


def load_settings() -> Settings:
    # .env from the working directory; never override variables already exported
    load_dotenv(find_dotenv(usecwd=True), override=False)
    return settings_from_env()
