"""Band aggregation over the Clean view.

`aggregate_by_band` is the single implementation behind every margin-band
report: distribution over all bands, sub-bands of the high-margin segment,
per-product and per-factory band breakdowns, and monthly band stability.

Expectations:
- Input: a pandas frame with the Clean schema (`gross_margin_pct`,
  `gross_profit`, `sales`, `cost`) plus any group key columns.
- Output: one row per (band × observed group key), bands never pruned by
  data sparsity. Columns: `margin_band`, the group keys, `num_records`,
  `pct_of_volume`, `total_profit`, `total_sales`, `total_cost`,
  `avg_margin_pct`.
"""
from __future__ import annotations

import itertools
import logging
from typing import Iterable, Literal, Sequence

import numpy as np
import pandas as pd

from margin_pipeline.aggregate.bands import OutOfRange, assign_bands, band_labels, validate_bands
from margin_pipeline.aggregate.universe import Universe
from margin_pipeline.clean.transform import round_half_away
from margin_pipeline.models import MarginBand

log = logging.getLogger(__name__)

TOTAL_COLUMNS = {"total_profit": "gross_profit", "total_sales": "sales", "total_cost": "cost"}
BAND_COLUMNS = [
    "num_records",
    "pct_of_volume",
    "total_profit",
    "total_sales",
    "total_cost",
    "avg_margin_pct",
]


def _key_list(group_by: str | Sequence[str] | None) -> list[str]:
    if group_by is None:
        return []
    if isinstance(group_by, str):
        return [group_by]
    return list(group_by)


def apply_universe(pdf: pd.DataFrame, universe: Universe, keys: Iterable[str] = ()) -> pd.DataFrame:
    """Filter `pdf` to the universe; rows with a null group key are dropped.

    Dropped null-key rows are logged, since they leave the universe count.
    """
    mask = universe(pdf).fillna(False).astype(bool)
    filtered = pdf[mask]
    keys = list(keys)
    if keys:
        has_keys = filtered[keys].notna().all(axis=1)
        n_missing = int((~has_keys).sum())
        if n_missing:
            log.warning("%d records without %s left out of the universe", n_missing, "/".join(keys))
            filtered = filtered[has_keys]
    return filtered


def aggregate_by_band(
    pdf: pd.DataFrame,
    bands: Iterable[MarginBand],
    *,
    universe: Universe,
    out_of_range: OutOfRange,
    group_by: str | Sequence[str] | None = None,
    volume_scope: Literal["universe", "group"] = "universe",
) -> pd.DataFrame:
    """Aggregate clean records per margin band (and optional group keys).

    Args:
        pdf: Clean frame.
        bands: Band reference list; validated and ordered by lower bound.
        universe: Predicate selecting the records the report is about.
        out_of_range: Policy for defined margins matching no band; the
            caller always chooses between the unclassified row and exclusion.
        group_by: Optional column name(s) to break each band down by.
        volume_scope: `"universe"` divides `num_records` by the universe
            count (computed once); `"group"` divides by the record count of
            the row's group key instead.

    Returns:
        pandas DataFrame ordered by band reference order then group keys.
    """
    ordered = validate_bands(bands)
    keys = _key_list(group_by)
    labels = band_labels(ordered, out_of_range)

    base = apply_universe(pdf, universe, keys)
    universe_count = len(base)

    banded = base.assign(margin_band=assign_bands(base["gross_margin_pct"], ordered, out_of_range))
    n_unbanded = int(banded["margin_band"].isna().sum())
    if n_unbanded:
        log.info("%d of %d universe records carry no band", n_unbanded, universe_count)
    banded = banded[banded["margin_band"].notna()]

    # Left-outer: every band label crossed with every observed key.
    if keys:
        observed = base[keys].drop_duplicates().sort_values(keys)
        combos = [
            (label, *key)
            for label, key in itertools.product(labels, observed.itertuples(index=False, name=None))
        ]
        if not combos:
            return pd.DataFrame(columns=["margin_band", *keys, *BAND_COLUMNS])
        full_index = pd.MultiIndex.from_tuples(combos, names=["margin_band", *keys])
    else:
        full_index = pd.Index(labels, name="margin_band")

    if banded.empty:
        out = pd.DataFrame(
            np.nan,
            index=full_index,
            columns=["num_records", *TOTAL_COLUMNS, "avg_margin_pct"],
        )
    else:
        agg = banded.groupby(["margin_band", *keys], sort=False).agg(
            num_records=("gross_margin_pct", "size"),
            total_profit=("gross_profit", "sum"),
            total_sales=("sales", "sum"),
            total_cost=("cost", "sum"),
            avg_margin_pct=("gross_margin_pct", "mean"),
        )
        out = agg.reindex(full_index)

    out["num_records"] = out["num_records"].fillna(0).astype(int)
    for col in TOTAL_COLUMNS:
        out[col] = round_half_away(out[col].fillna(0.0), 2)
    out["avg_margin_pct"] = round_half_away(out["avg_margin_pct"], 2)

    if volume_scope == "group" and keys:
        denominator = out.groupby(level=keys, sort=False)["num_records"].transform("sum")
    else:
        denominator = pd.Series(universe_count, index=out.index)
    pct = 100.0 * out["num_records"] / denominator.replace(0, np.nan)
    out["pct_of_volume"] = round_half_away(pct, 2)

    return out.reset_index()[["margin_band", *keys, *BAND_COLUMNS]]
