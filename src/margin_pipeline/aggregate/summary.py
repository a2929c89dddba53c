"""Per-dimension summaries and headline KPIs.

These aggregates are not banded: they roll clean records up per product,
factory (or any key combination) and produce the totals, margins and
per-transaction economics used by the ranking and watchlist reports.
"""
from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import pandas as pd

from margin_pipeline.aggregate.banding import apply_universe
from margin_pipeline.aggregate.universe import Universe
from margin_pipeline.clean.transform import round_half_away, to_float_array

log = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    "num_records",
    "pct_of_volume",
    "total_sales",
    "total_cost",
    "total_profit",
    "gross_margin_pct",
    "avg_margin_pct",
    "min_margin_pct",
    "max_margin_pct",
    "avg_sales_per_txn",
    "avg_cost_per_txn",
    "avg_profit_per_txn",
    "profit_per_unit",
]


def safe_pct(numerator: pd.Series, denominator: pd.Series, scale: float = 100.0) -> pd.Series:
    """Return `scale * numerator / denominator`, NaN where the denominator is 0 or null."""
    den = to_float_array(denominator)
    num = to_float_array(numerator)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(den == 0, np.nan, scale * num / den)
    return pd.Series(ratio, index=numerator.index, dtype="float64")


def summarize_by(
    pdf: pd.DataFrame,
    keys: str | Sequence[str],
    *,
    universe: Universe,
) -> pd.DataFrame:
    """Summarize clean records per key.

    Sums treat null amounts as zero; averages, minima and maxima skip nulls.
    `gross_margin_pct` is the aggregate margin `100 * Σprofit / Σsales`, while
    `avg_margin_pct` is the mean of the record margins.

    Args:
        pdf: Clean frame.
        keys: Grouping column name(s).
        universe: Predicate selecting the records to summarize; its count is
            the `pct_of_volume` denominator.

    Returns:
        One row per observed key, ordered by key, with `SUMMARY_COLUMNS`.
    """
    keys = [keys] if isinstance(keys, str) else list(keys)
    base = apply_universe(pdf, universe, keys)
    universe_count = len(base)

    if base.empty:
        return pd.DataFrame(columns=[*keys, *SUMMARY_COLUMNS])

    g = base.groupby(keys, sort=True)
    out = g.agg(
        num_records=("gross_margin_pct", "size"),
        total_sales=("sales", "sum"),
        total_cost=("cost", "sum"),
        total_profit=("gross_profit", "sum"),
        total_units=("units", "sum"),
        avg_margin_pct=("gross_margin_pct", "mean"),
        min_margin_pct=("gross_margin_pct", "min"),
        max_margin_pct=("gross_margin_pct", "max"),
        avg_sales_per_txn=("sales", "mean"),
        avg_cost_per_txn=("cost", "mean"),
        avg_profit_per_txn=("gross_profit", "mean"),
    )

    out["pct_of_volume"] = safe_pct(out["num_records"], pd.Series(universe_count, index=out.index))
    out["gross_margin_pct"] = safe_pct(out["total_profit"], out["total_sales"])
    out["profit_per_unit"] = safe_pct(out["total_profit"], out["total_units"], scale=1.0)

    for col in SUMMARY_COLUMNS:
        if col != "num_records":
            out[col] = round_half_away(out[col], 2)
    out["num_records"] = out["num_records"].astype(int)

    return out.reset_index()[[*keys, *SUMMARY_COLUMNS]]


def kpi_overview(pdf: pd.DataFrame) -> pd.DataFrame:
    """Headline KPIs in long format (`metric`, `value`).

    Totals count every record; margin statistics only records with a
    defined margin.
    """
    total_sales = float(pdf["sales"].sum())
    total_profit = float(pdf["gross_profit"].sum())
    margins = pdf["gross_margin_pct"]

    values = {
        "total_sales": total_sales,
        "total_cost": float(pdf["cost"].sum()),
        "total_profit": total_profit,
        "gross_margin_pct": 100.0 * total_profit / total_sales if total_sales else np.nan,
        "min_margin_pct": margins.min(),
        "max_margin_pct": margins.max(),
        "avg_margin_pct": margins.mean(),
    }
    out = pd.DataFrame({"metric": list(values), "value": list(values.values())})
    out["value"] = round_half_away(out["value"], 2)
    return out
