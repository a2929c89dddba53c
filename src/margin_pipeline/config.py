"""Configuration helpers and Settings container.

This module provides a small `Settings` dataclass and `get_settings` which
reads the input locations, MongoDB target and report options from the
environment (a `.env` file at the project root is loaded first).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os

from dotenv import load_dotenv

# Explicitly load .env from project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_TOP_N = 10


@dataclass(frozen=True)
class Settings:
    """Container for pipeline configuration read from the environment.

    Attributes:
        mongo_uri: MongoDB connection URI, or None when only CSV export is used.
        mongo_db: Target MongoDB database name.
        financials_path: CSV file (or glob) with the financial figures.
        products_path: Optional CSV with the product dimension.
        orders_path: Optional CSV with the order dimension.
        flat_source_path: Optional denormalized source used to derive products.
        gold_export_dir: Directory for CSV exports of Gold reports.
        top_n: Default cutoff for top-N rankings.
    """
    mongo_uri: str | None
    mongo_db: str
    financials_path: Path
    products_path: Path | None
    orders_path: Path | None
    flat_source_path: Path | None
    gold_export_dir: Path
    top_n: int


def _optional_path(name: str) -> Path | None:
    value = os.getenv(name, "").strip()
    return Path(value) if value else None


def get_settings() -> Settings:
    """Read environment variables and return a frozen `Settings` object.

    Raises:
        RuntimeError: if `TOP_N` is not a positive integer.
    """
    mongo_uri = os.getenv("MONGO_URI", "").strip() or None
    mongo_db = os.getenv("MONGO_DB", "margins")
    financials_path = Path(os.getenv("FINANCIALS_PATH", "data/financial_figures.csv"))
    gold_export_dir = Path(os.getenv("GOLD_EXPORT_DIR", "data/gold"))

    raw_top_n = os.getenv("TOP_N", str(DEFAULT_TOP_N)).strip()
    try:
        top_n = int(raw_top_n)
    except ValueError:
        top_n = 0
    if top_n <= 0:
        raise RuntimeError(
            f"TOP_N must be a positive integer, got {raw_top_n!r}. "
            "Fix it in .env or unset it to use the default."
        )

    return Settings(
        mongo_uri=mongo_uri,
        mongo_db=mongo_db,
        financials_path=financials_path,
        products_path=_optional_path("PRODUCTS_PATH"),
        orders_path=_optional_path("ORDERS_PATH"),
        flat_source_path=_optional_path("FLAT_SOURCE_PATH"),
        gold_export_dir=gold_export_dir,
        top_n=top_n,
    )
