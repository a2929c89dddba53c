"""Static product name → product code lookup.

The codes are a fixed reference table. Names that are not listed here are
excluded from the product dimension; new codes are never inferred.
"""

from __future__ import annotations

import logging

import pandas as pd

log = logging.getLogger(__name__)

PRODUCT_CODES = {
    "Wonka Bar": "WB",
    "Wonka Bar - Triple Dazzle Caramel": "WBTC",
    "Wonka Bar - Scrumdiddlyumptious": "WBSL",
    "Wonka Bar - Fudge Mallows": "WBFM",
    "Wonka Bar - Milk Chocolate": "WBMC",
    "Wonka Bar - Nutty Crunch Surprise": "WBNS",
    "Wonka Gum": "WG",
    "SweeTARTS": "ST",
    "Lickable Wallpaper": "LW",
    "Kazookles": "KK",
    "Everlasting Gobstopper": "EG",
    "Fizzly Lifting Drinks": "FLD",
    "Nerds": "ND",
    "Fun Dip": "FD",
    "Laffy-Taffy": "LT",
    "Hair Toffee": "HT",
}


def get_product_code(name: str | None) -> str | None:
    """Return the product code for a product name if available.

    Args:
        name: Product name exactly as it appears in the source.

    Returns:
        Short product code or ``None`` when the name is unmapped.
    """
    if name is None:
        return None
    return PRODUCT_CODES.get(name)


def build_product_dimension(flat: pd.DataFrame) -> pd.DataFrame:
    """Derive the product dimension from the denormalized source.

    Args:
        flat: Source frame with `product_name`, `factory_id` and `division`.

    Returns:
        pandas DataFrame with columns `product_id`, `factory_id`,
        `product_name`, `division`, one row per product code.
    """
    cols = ["product_name", "factory_id", "division"]
    products = flat[cols].drop_duplicates().copy()
    products["product_id"] = products["product_name"].map(get_product_code)

    unmapped = products["product_id"].isna()
    if unmapped.any():
        log.warning(
            "Excluding %d unmapped product names: %s",
            int(unmapped.sum()),
            sorted(products.loc[unmapped, "product_name"].dropna().astype(str).unique()),
        )
    products = products[~unmapped]

    duplicated = products["product_id"].duplicated(keep="first")
    if duplicated.any():
        log.warning("%d products appear under several factories; keeping the first", int(duplicated.sum()))
        products = products[~duplicated]

    return products[["product_id", "factory_id", "product_name", "division"]].sort_values(
        "product_id"
    ).reset_index(drop=True)
