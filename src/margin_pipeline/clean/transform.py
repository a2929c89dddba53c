"""Cleaning and normalization utilities.

This module turns raw financial figures into the Clean view: monetary fields
cast to 2-decimal fixed point, units cast to integers, and a derived
`gross_margin_pct` column. The transform is applied partition-wise using
Dask; the output schema is stable and suitable for Pydantic validation.

Rounding is round-half-away-from-zero (`decimal.ROUND_HALF_UP`) applied to
the shortest decimal representation of each value, so `0.125` becomes
`0.13` and `-0.125` becomes `-0.13`. Results are stored as float64.
"""
from __future__ import annotations

import logging
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)

MONEY_COLUMNS = ["sales", "cost", "gross_profit"]
KEY_COLUMNS = ["record_id", "order_id", "factory_id", "product_id"]
CLEAN_COLUMNS = [*KEY_COLUMNS, "units", *MONEY_COLUMNS, "gross_margin_pct"]


# Enough significant digits to quantize any finite float64 to cents.
DECIMAL_PRECISION = 400


def _quantize(value: Decimal, quantum: Decimal) -> float:
    """Round half away from zero to `quantum`; NaN when the result is not a finite float."""
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        try:
            out = float(value.quantize(quantum, rounding=ROUND_HALF_UP))
        except InvalidOperation:
            return np.nan
    return out if math.isfinite(out) else np.nan


def _round_value(value: float, quantum: Decimal) -> float:
    if not math.isfinite(value):
        return np.nan
    return _quantize(Decimal(str(value)), quantum)


def to_float_array(values: Any) -> np.ndarray:
    """Coerce values to a float64 array; unparseable entries and NA become NaN."""
    numeric = pd.to_numeric(pd.Series(values, copy=False), errors="coerce")
    return numeric.to_numpy(dtype="float64", na_value=np.nan)


def round_half_away(values: pd.Series, places: int = 2) -> pd.Series:
    """Round a numeric Series half away from zero.

    Non-numeric entries become NaN; NaN stays NaN.

    Args:
        values: Series of numbers (any numeric or object dtype).
        places: Number of decimal places to keep.

    Returns:
        float64 Series with the same index.
    """
    quantum = Decimal(1).scaleb(-places)
    arr = to_float_array(values)
    out = [np.nan if np.isnan(v) else _round_value(v, quantum) for v in arr]
    return pd.Series(out, index=values.index, dtype="float64")


def margin_pct(gross_profit: float, sales: float) -> float:
    """Return `round(100 * gross_profit / sales, 2)` or NaN when undefined."""
    if np.isnan(sales) or sales == 0 or np.isnan(gross_profit):
        return np.nan
    with localcontext() as ctx:
        ctx.prec = DECIMAL_PRECISION
        pct = Decimal(str(gross_profit)) * 100 / Decimal(str(sales))
    return _quantize(pct, Decimal("0.01"))


def clean_financial_frame(pdf: pd.DataFrame) -> pd.DataFrame:
    """Clean a pandas frame of financial figures.

    Rows keep their order and index; there is exactly one output row per
    input row. Missing columns are added as nulls and unparseable numbers
    become nulls, so the function never raises on malformed input.

    Args:
        pdf: Frame with (some of) the columns `record_id`, `order_id`,
            `factory_id`, `product_id`, `units`, `sales`, `cost`,
            `gross_profit`.

    Returns:
        Frame with exactly the `CLEAN_COLUMNS` columns.
    """
    pdf = pdf.copy()

    for col in [*KEY_COLUMNS, "units", *MONEY_COLUMNS]:
        if col not in pdf.columns:
            pdf[col] = None

    # -----------------------------
    # Fixed-point money
    # -----------------------------
    for col in MONEY_COLUMNS:
        pdf[col] = round_half_away(pdf[col], 2)

    # -----------------------------
    # Integer units
    # -----------------------------
    units = pd.Series(to_float_array(pdf["units"]), index=pdf.index)
    pdf["units"] = units.round().astype("Int64")

    # -----------------------------
    # Derived margin (undefined when sales is null or zero)
    # -----------------------------
    pdf["gross_margin_pct"] = pd.Series(
        [
            margin_pct(gp, s)
            for gp, s in zip(pdf["gross_profit"].to_numpy(), pdf["sales"].to_numpy())
        ],
        index=pdf.index,
        dtype="float64",
    )

    return pdf[CLEAN_COLUMNS]


def clean_financial_ddf(ddf: Any) -> Any:
    """Apply `clean_financial_frame` to every partition of a Dask DataFrame.

    Returns:
        Lazy Dask DataFrame with the Clean schema.
    """
    log.info("Starting clean_financial_ddf transformation")

    # Dask needs the output schema up front; derive it from the empty meta frame.
    meta = clean_financial_frame(ddf._meta)
    return ddf.map_partitions(clean_financial_frame, meta=meta)
