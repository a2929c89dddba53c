"""Readers for the tabular pipeline inputs.

Financial figures are read lazily with Dask (a path or glob pattern of CSV
files); the product and order dimensions are small and read with pandas.
Source headers (`Gross Profit`, `Factory ID`, ...) are renamed to the
snake_case schema used everywhere else.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, cast

import pandas as pd
import dask.dataframe as dd

log = logging.getLogger(__name__)

FINANCIAL_COLUMNS = {
    "Financial Figures ID": "record_id",
    "Order ID": "order_id",
    "Factory ID": "factory_id",
    "Product ID": "product_id",
    "Units": "units",
    "Sales": "sales",
    "Cost": "cost",
    "Gross Profit": "gross_profit",
}

PRODUCT_COLUMNS = {
    "Product ID": "product_id",
    "Factory ID": "factory_id",
    "Product Name": "product_name",
    "Division": "division",
}

ORDER_COLUMNS = {
    "Order ID": "order_id",
    "Customer ID": "customer_id",
    "Order Date": "order_date",
    "Ship Date": "ship_date",
    "Ship Mode": "ship_mode",
}

FLAT_COLUMNS = {
    "Product Name": "product_name",
    "Factory": "factory_id",
    "Division": "division",
}


def _rename(columns: Any, mapping: dict[str, str]) -> dict[str, str]:
    """Map source headers to snake_case, leaving already-renamed columns alone."""
    return {c: mapping[c.strip()] for c in columns if c.strip() in mapping}


def read_financial_figures(path: Path | str, blocksize: str | None = "64MB") -> Any:
    """Read financial figures CSV file(s) into a Dask DataFrame.

    Args:
        path: CSV path or glob pattern.
        blocksize: Dask partition size for large files.

    Returns:
        Lazy Dask DataFrame with snake_case columns.
    """
    dd_mod = cast(Any, dd)
    ddf = dd_mod.read_csv(
        str(path),
        blocksize=blocksize,
        assume_missing=True,
        dtype={
            "Factory ID": "object",
            "Product ID": "object",
            "factory_id": "object",
            "product_id": "object",
        },
    )
    ddf = ddf.rename(columns=_rename(ddf.columns, FINANCIAL_COLUMNS))
    log.info("Reading financial figures from %s (%d partitions)", path, ddf.npartitions)
    return ddf


def read_products(path: Path | str) -> pd.DataFrame:
    """Read the product dimension CSV."""
    pdf = pd.read_csv(path, dtype=str)
    return pdf.rename(columns=_rename(pdf.columns, PRODUCT_COLUMNS))


def read_orders(path: Path | str) -> pd.DataFrame:
    """Read the order dimension CSV; unparseable dates become NaT."""
    pdf = pd.read_csv(path)
    pdf = pdf.rename(columns=_rename(pdf.columns, ORDER_COLUMNS))
    for col in ("order_date", "ship_date"):
        if col in pdf.columns:
            pdf[col] = pd.to_datetime(pdf[col], errors="coerce")
    return pdf


def read_flat_source(path: Path | str) -> pd.DataFrame:
    """Read the denormalized source table (only the product-related columns)."""
    pdf = pd.read_csv(path, dtype=str)
    return pdf.rename(columns=_rename(pdf.columns, FLAT_COLUMNS))
