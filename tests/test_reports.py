from __future__ import annotations

import pandas as pd
import pytest

from margin_pipeline.aggregate.bands import DECILE_BANDS
from margin_pipeline.aggregate.load_gold import to_documents, validate_rows
from margin_pipeline.aggregate.reports import (
    GOLD_REPORTS,
    ReportInputs,
    factory_margin_stability,
    factory_profit_share,
    margin_distribution,
    product_factory_dependency,
    top_factories_high_margin,
    top_products_by_core_band,
    top_products_high_margin,
)


@pytest.fixture
def inputs(clean_figures: pd.DataFrame, products: pd.DataFrame, orders: pd.DataFrame) -> ReportInputs:
    return ReportInputs(clean=clean_figures, products=products, orders=orders, top_n=3)


@pytest.mark.parametrize("name", sorted(GOLD_REPORTS))
def test_every_report_builds_valid_rows(name: str, inputs: ReportInputs) -> None:
    report = GOLD_REPORTS[name]
    pdf = report.build(inputs)
    assert isinstance(pdf, pd.DataFrame)

    docs = to_documents(pdf)
    for doc in docs:
        assert all(k in doc for k in report.key_fields)
    if report.model is not None:
        validate_rows(docs, report.model)

    # upsert keys identify rows uniquely
    if not pdf.empty:
        assert not pdf.duplicated(list(report.key_fields)).any()


def test_distribution_keeps_every_band(inputs: ReportInputs) -> None:
    out = margin_distribution(inputs)
    assert out["margin_band"].tolist()[:-1] == [b.label for b in DECILE_BANDS]
    assert out["num_records"].sum() == 7
    assert out.set_index("margin_band").loc["unclassified", "num_records"] == 1


def test_top_products_high_margin_uses_named_products(inputs: ReportInputs) -> None:
    out = top_products_high_margin(inputs)
    # XX has no product name and is left out by the product join
    assert out["product_id"].tolist() == ["WB", "LT", "EG"]
    assert out["product_name"].tolist() == ["Wonka Bar", "Laffy-Taffy", "Everlasting Gobstopper"]
    assert out["rank"].tolist() == [1, 2, 3]
    assert out["total_profit"].tolist() == [100.0, 81.0, 80.0]


def test_top_products_by_core_band_ranks_within_band(inputs: ReportInputs) -> None:
    out = top_products_by_core_band(inputs)
    assert out[["margin_band", "product_id", "rank"]].values.tolist() == [
        ["60-69.99%", "WB", 1],
        ["70-79.99%", "WB", 1],
    ]


def test_top_factories_high_margin_dense(inputs: ReportInputs) -> None:
    out = top_factories_high_margin(inputs)
    # F1: 70 + 30 + 81, F2: 80 + 18
    assert out["factory_id"].tolist() == ["F1", "F2"]
    assert out["total_profit"].tolist() == [181.0, 98.0]
    assert out["rank"].tolist() == [1, 2]


def test_factory_profit_share_sums_to_100(inputs: ReportInputs) -> None:
    out = factory_profit_share(inputs)
    assert abs(out["profit_share_pct"].sum() - 100.0) <= 0.01 * len(out)


def test_product_factory_dependency_shares(inputs: ReportInputs) -> None:
    out = product_factory_dependency(inputs)
    assert set(out["product_id"]) == {"WB", "LT", "EG"}
    per_product = out.groupby("product_id")["pct_product_volume_in_factory"].sum()
    assert (per_product == 100.0).all()


def test_factory_margin_stability_shares_within_month(inputs: ReportInputs) -> None:
    out = factory_margin_stability(inputs)
    assert {"factory_id", "month_start", "margin_band", "pct_of_volume"} <= set(out.columns)
    sums = out.groupby(["factory_id", "month_start"])["pct_of_volume"].sum()
    assert all(abs(v - 100.0) <= 0.1 for v in sums)
    # record 8 has no order date and is left out
    assert out["num_records"].sum() == 6


def test_factory_margin_stability_without_orders(clean_figures: pd.DataFrame) -> None:
    out = factory_margin_stability(ReportInputs(clean=clean_figures))
    assert out.empty
