"""Joins between the Clean view and the product / order dimensions."""

from __future__ import annotations

import logging

import pandas as pd

log = logging.getLogger(__name__)


def attach_product_names(pdf: pd.DataFrame, products: pd.DataFrame | None) -> pd.DataFrame:
    """Add `product_name` to rows keyed by `product_id`.

    Rows whose product is missing from the product dimension are dropped,
    matching an inner join on the product table. Without a product
    dimension the product id doubles as the name.
    """
    if products is None:
        return pdf.assign(product_name=pdf["product_id"])

    names = products[["product_id", "product_name"]].drop_duplicates("product_id")
    out = pdf.merge(names, on="product_id", how="inner")
    dropped = len(pdf) - len(out)
    if dropped:
        log.warning("%d rows reference products missing from the product dimension", dropped)
    return out


def month_start(dates: pd.Series) -> pd.Series:
    """Return the first day of each date's month (NaT stays NaT)."""
    parsed = pd.to_datetime(dates, errors="coerce")
    return parsed.dt.to_period("M").dt.to_timestamp()


def attach_order_month(pdf: pd.DataFrame, orders: pd.DataFrame) -> pd.DataFrame:
    """Add `order_date` and `month_start` from the order dimension.

    This is a left join: records whose order is unknown, or has no date,
    get NaT.
    """
    dates = orders[["order_id", "order_date"]].drop_duplicates("order_id")
    out = pdf.merge(dates, on="order_id", how="left")
    out["month_start"] = month_start(out["order_date"])
    return out
