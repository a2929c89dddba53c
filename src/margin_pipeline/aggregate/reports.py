"""Gold report catalogue.

Every report is a function of `ReportInputs` returning a small pandas
DataFrame. Reports are thin configurations of the shared building blocks:
a universe predicate, a band list for `aggregate_by_band`, a key for
`summarize_by`, and a ranking for `rank_groups`.

`GOLD_REPORTS` maps the Gold collection name to its builder, the fields used
as the upsert key and an optional Pydantic row model.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import pandas as pd
from pydantic import BaseModel

from margin_pipeline.aggregate.banding import aggregate_by_band
from margin_pipeline.aggregate.bands import (
    COARSE_BANDS,
    CORE_VOLUME_BANDS,
    DECILE_BANDS,
    HIGH_MARGIN_SUB_BANDS,
    OutOfRange,
)
from margin_pipeline.aggregate.dimensions import attach_order_month, attach_product_names
from margin_pipeline.aggregate.rank import RankMethod, rank_groups
from margin_pipeline.aggregate.summary import kpi_overview, safe_pct, summarize_by
from margin_pipeline.aggregate.universe import (
    Universe,
    all_records,
    both,
    has_value,
    margin_at_least,
    margin_below,
    margin_between,
    with_margin,
)
from margin_pipeline.clean.inspect import inspect_financials, inspection_frame
from margin_pipeline.clean.transform import round_half_away
from margin_pipeline.config import DEFAULT_TOP_N
from margin_pipeline.models import AggregatedGroup, KpiMetric, RankedGroup

log = logging.getLogger(__name__)

HIGH_MARGIN = margin_between(40, 100)
CORE_VOLUME = margin_between(60, 80, inclusive="left")
EXTREME_MARGIN = margin_between(80, 100)
BEST_WORST_N = 5


@dataclass(frozen=True)
class ReportInputs:
    """Inputs shared by all Gold reports.

    Attributes:
        clean: Clean view of the financial figures.
        products: Optional product dimension (`product_id`, `product_name`).
        orders: Optional order dimension (`order_id`, `order_date`).
        top_n: Cutoff for top-N rankings.
    """
    clean: pd.DataFrame
    products: pd.DataFrame | None = None
    orders: pd.DataFrame | None = None
    top_n: int = DEFAULT_TOP_N


# =========================================================
# OVERVIEW
# =========================================================

def data_quality(inputs: ReportInputs) -> pd.DataFrame:
    """Inspection counts (`check`, `count`)."""
    return inspection_frame(inspect_financials(inputs.clean))


def kpi_report(inputs: ReportInputs) -> pd.DataFrame:
    """Total sales, cost, profit, aggregate margin and margin statistics."""
    return kpi_overview(inputs.clean)


# =========================================================
# MARGIN BAND DISTRIBUTIONS
# =========================================================

def margin_groups(inputs: ReportInputs) -> pd.DataFrame:
    """Low / medium / high margin structure over records with a margin."""
    return aggregate_by_band(
        inputs.clean, COARSE_BANDS, universe=with_margin, out_of_range=OutOfRange.EXCLUDE
    )


def margin_distribution(inputs: ReportInputs) -> pd.DataFrame:
    """All ten 10pp bands, including empty ones.

    Margins outside [0, 101) (losses, cost above sales) land in the
    unclassified row so the band counts add up to the universe.
    """
    return aggregate_by_band(
        inputs.clean,
        DECILE_BANDS,
        universe=with_margin,
        out_of_range=OutOfRange.UNCLASSIFIED,
    )


def high_margin_sub_bands(inputs: ReportInputs) -> pd.DataFrame:
    """10pp sub-bands inside the 40-100% segment."""
    return aggregate_by_band(
        inputs.clean, HIGH_MARGIN_SUB_BANDS, universe=HIGH_MARGIN, out_of_range=OutOfRange.EXCLUDE
    )


# =========================================================
# PRODUCTS
# =========================================================

def _product_summary(inputs: ReportInputs, universe: Universe) -> pd.DataFrame:
    summary = summarize_by(inputs.clean, "product_id", universe=universe)
    named = attach_product_names(summary, inputs.products)
    cols = ["product_id", "product_name", *[c for c in summary.columns if c != "product_id"]]
    return named[cols]


def product_profitability(inputs: ReportInputs) -> pd.DataFrame:
    """Totals, margin and profit per unit per product, best margin first."""
    out = _product_summary(inputs, all_records)
    return out.sort_values(
        ["gross_margin_pct", "product_id"],
        ascending=[False, True],
        na_position="last",
        kind="mergesort",
    ).reset_index(drop=True)


def best_products_by_margin(inputs: ReportInputs) -> pd.DataFrame:
    return rank_groups(
        _product_summary(inputs, all_records),
        "gross_margin_pct",
        method=RankMethod.ROW_NUMBER,
        top_n=BEST_WORST_N,
        tie_break=["product_id"],
    )


def worst_products_by_margin(inputs: ReportInputs) -> pd.DataFrame:
    return rank_groups(
        _product_summary(inputs, all_records),
        "gross_margin_pct",
        method=RankMethod.ROW_NUMBER,
        top_n=BEST_WORST_N,
        tie_break=["product_id"],
        ascending=True,
    )


def top_products_high_margin(inputs: ReportInputs) -> pd.DataFrame:
    """Top-N products by gross profit within the 40-100% margin universe.

    Ties share a rank and the rank after a tie skips positions.
    """
    return rank_groups(
        _product_summary(inputs, HIGH_MARGIN),
        "total_profit",
        method=RankMethod.STANDARD,
        top_n=inputs.top_n,
        tie_break=["product_id"],
    )


def _top_by_core_band(inputs: ReportInputs, key: str) -> pd.DataFrame:
    banded = aggregate_by_band(
        inputs.clean,
        CORE_VOLUME_BANDS,
        universe=CORE_VOLUME,
        out_of_range=OutOfRange.EXCLUDE,
        group_by=key,
    )
    banded = banded[banded["num_records"] > 0]
    if key == "product_id":
        banded = attach_product_names(banded, inputs.products)
    return rank_groups(
        banded,
        "total_profit",
        method=RankMethod.ROW_NUMBER,
        top_n=inputs.top_n,
        tie_break=[key],
        partition_by=["margin_band"],
    )


def top_products_by_core_band(inputs: ReportInputs) -> pd.DataFrame:
    """Top-N products per band inside 60-79.99%, one rank sequence per band."""
    return _top_by_core_band(inputs, "product_id")


def low_margin_products(inputs: ReportInputs) -> pd.DataFrame:
    """Products with records below 10% margin, largest sales first."""
    out = _product_summary(inputs, margin_below(10))
    return out.sort_values(
        ["total_sales", "product_id"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)


def _watchlist(summary: pd.DataFrame, key: str) -> pd.DataFrame:
    return summary.sort_values(
        ["avg_margin_pct", "num_records", key],
        ascending=[False, False, True],
        kind="mergesort",
    ).reset_index(drop=True)


def extreme_margin_products(inputs: ReportInputs) -> pd.DataFrame:
    """Watchlist of products with 80-100% margins (not a ranking)."""
    return _watchlist(_product_summary(inputs, EXTREME_MARGIN), "product_id")


# =========================================================
# FACTORIES
# =========================================================

def top_factories_high_margin(inputs: ReportInputs) -> pd.DataFrame:
    """Top-N factories by gross profit within 40-100%, dense ranks."""
    return rank_groups(
        summarize_by(inputs.clean, "factory_id", universe=HIGH_MARGIN),
        "total_profit",
        method=RankMethod.DENSE,
        top_n=inputs.top_n,
        tie_break=["factory_id"],
    )


def top_factories_by_core_band(inputs: ReportInputs) -> pd.DataFrame:
    return _top_by_core_band(inputs, "factory_id")


def factory_profit_share(inputs: ReportInputs) -> pd.DataFrame:
    """Factory profit and its share of total profit for margins >= 40%."""
    out = summarize_by(inputs.clean, "factory_id", universe=margin_at_least(40))
    total = pd.Series(out["total_profit"].sum(), index=out.index)
    out["profit_share_pct"] = round_half_away(safe_pct(out["total_profit"], total), 2)
    return out.sort_values(
        ["total_profit", "factory_id"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)


def extreme_margin_factories(inputs: ReportInputs) -> pd.DataFrame:
    """Watchlist of factories with 80-100% margins."""
    return _watchlist(summarize_by(inputs.clean, "factory_id", universe=EXTREME_MARGIN), "factory_id")


def factory_unit_economics(inputs: ReportInputs) -> pd.DataFrame:
    """Per-transaction cost, sales and profit per factory within 40-100%."""
    out = summarize_by(inputs.clean, "factory_id", universe=HIGH_MARGIN)
    cols = [
        "factory_id",
        "num_records",
        "total_cost",
        "total_sales",
        "total_profit",
        "avg_cost_per_txn",
        "avg_sales_per_txn",
        "avg_profit_per_txn",
        "gross_margin_pct",
    ]
    return out[cols].sort_values(
        ["avg_profit_per_txn", "gross_margin_pct", "factory_id"],
        ascending=[False, False, True],
        kind="mergesort",
    ).reset_index(drop=True)


# =========================================================
# CROSS-DIMENSION
# =========================================================

def product_factory_dependency(inputs: ReportInputs) -> pd.DataFrame:
    """For the top-N products (40-100%), which factories carry their volume."""
    top = rank_groups(
        _product_summary(inputs, HIGH_MARGIN),
        "total_profit",
        method=RankMethod.ROW_NUMBER,
        top_n=inputs.top_n,
        tie_break=["product_id"],
    )
    subset = inputs.clean[inputs.clean["product_id"].isin(top["product_id"])]
    contrib = summarize_by(subset, ["product_id", "factory_id"], universe=HIGH_MARGIN)
    contrib["pct_product_volume_in_factory"] = round_half_away(
        safe_pct(
            contrib["num_records"],
            contrib.groupby("product_id")["num_records"].transform("sum"),
        ),
        2,
    )
    contrib = contrib.merge(top[["product_id", "product_name"]], on="product_id", how="inner")

    cols = [
        "product_name",
        "product_id",
        "factory_id",
        "num_records",
        "pct_product_volume_in_factory",
        "total_cost",
        "total_sales",
        "total_profit",
        "gross_margin_pct",
    ]
    return contrib[cols].sort_values(
        ["product_name", "total_profit", "factory_id"],
        ascending=[True, False, True],
        kind="mergesort",
    ).reset_index(drop=True)


def factory_margin_stability(inputs: ReportInputs) -> pd.DataFrame:
    """Monthly band distribution per factory; shares are within factory-month."""
    keys = ["factory_id", "month_start"]
    if inputs.orders is None:
        log.warning("No order dimension configured; factory_margin_stability is empty")
        return pd.DataFrame(columns=["margin_band", *keys])

    dated = attach_order_month(inputs.clean, inputs.orders)
    out = aggregate_by_band(
        dated,
        DECILE_BANDS,
        universe=both(with_margin, has_value("month_start")),
        group_by=keys,
        out_of_range=OutOfRange.UNCLASSIFIED,
        volume_scope="group",
    )
    return out.sort_values(keys, kind="mergesort").reset_index(drop=True)


# =========================================================
# CATALOGUE
# =========================================================

@dataclass(frozen=True)
class GoldReport:
    """A Gold report: builder, upsert key fields and optional row model."""
    name: str
    build: Callable[[ReportInputs], pd.DataFrame]
    key_fields: tuple[str, ...]
    model: type[BaseModel] | None = None


GOLD_REPORTS: dict[str, GoldReport] = {
    r.name: r
    for r in (
        GoldReport("gold_data_quality", data_quality, ("check",)),
        GoldReport("gold_kpi_overview", kpi_report, ("metric",), KpiMetric),
        GoldReport("gold_margin_groups", margin_groups, ("margin_band",), AggregatedGroup),
        GoldReport("gold_margin_distribution", margin_distribution, ("margin_band",), AggregatedGroup),
        GoldReport("gold_high_margin_sub_bands", high_margin_sub_bands, ("margin_band",), AggregatedGroup),
        GoldReport("gold_product_profitability", product_profitability, ("product_id",)),
        GoldReport("gold_best_products_by_margin", best_products_by_margin, ("product_id",), RankedGroup),
        GoldReport("gold_worst_products_by_margin", worst_products_by_margin, ("product_id",), RankedGroup),
        GoldReport("gold_top_products_high_margin", top_products_high_margin, ("product_id",), RankedGroup),
        GoldReport(
            "gold_top_products_by_core_band",
            top_products_by_core_band,
            ("margin_band", "product_id"),
            RankedGroup,
        ),
        GoldReport("gold_low_margin_products", low_margin_products, ("product_id",)),
        GoldReport("gold_extreme_margin_products", extreme_margin_products, ("product_id",)),
        GoldReport("gold_top_factories_high_margin", top_factories_high_margin, ("factory_id",), RankedGroup),
        GoldReport(
            "gold_top_factories_by_core_band",
            top_factories_by_core_band,
            ("margin_band", "factory_id"),
            RankedGroup,
        ),
        GoldReport("gold_factory_profit_share", factory_profit_share, ("factory_id",)),
        GoldReport("gold_extreme_margin_factories", extreme_margin_factories, ("factory_id",)),
        GoldReport("gold_factory_unit_economics", factory_unit_economics, ("factory_id",)),
        GoldReport(
            "gold_product_factory_dependency",
            product_factory_dependency,
            ("product_id", "factory_id"),
        ),
        GoldReport(
            "gold_factory_margin_stability",
            factory_margin_stability,
            ("factory_id", "month_start", "margin_band"),
            AggregatedGroup,
        ),
    )
}
