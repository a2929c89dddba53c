from __future__ import annotations

import logging

import pandas as pd
import pytest

from margin_pipeline.aggregate.banding import aggregate_by_band
from margin_pipeline.aggregate.bands import (
    COARSE_BANDS,
    DECILE_BANDS,
    HIGH_MARGIN_SUB_BANDS,
    OutOfRange,
)
from margin_pipeline.aggregate.summary import kpi_overview
from margin_pipeline.aggregate.universe import all_records, margin_between, with_margin
from margin_pipeline.clean.transform import clean_financial_frame


def _example() -> pd.DataFrame:
    return clean_financial_frame(pd.DataFrame([
        {"record_id": 1, "sales": 100.0, "cost": 60.0, "gross_profit": 40.0},
        {"record_id": 2, "sales": 50.0, "cost": 55.0, "gross_profit": -5.0},
    ]))


def test_example_records_land_in_expected_bands() -> None:
    out = aggregate_by_band(
        _example(), DECILE_BANDS, universe=with_margin, out_of_range=OutOfRange.UNCLASSIFIED
    )
    assert out["margin_band"].tolist() == [b.label for b in DECILE_BANDS] + ["unclassified"]

    rows = out.set_index("margin_band")
    assert rows.loc["40-49.99%", "num_records"] == 1
    assert rows.loc["40-49.99%", "total_profit"] == 40.0
    assert rows.loc["40-49.99%", "avg_margin_pct"] == 40.0
    assert rows.loc["unclassified", "num_records"] == 1
    assert rows.loc["unclassified", "total_profit"] == -5.0
    assert out["num_records"].sum() == 2


def test_empty_bands_are_emitted_with_zero_totals() -> None:
    out = aggregate_by_band(
        _example(), DECILE_BANDS, universe=with_margin, out_of_range=OutOfRange.EXCLUDE
    )
    empty = out[out["margin_band"] == "0-9.99%"].iloc[0]
    assert empty["num_records"] == 0
    assert empty["total_profit"] == 0
    assert empty["total_sales"] == 0
    assert pd.isna(empty["avg_margin_pct"])
    assert empty["pct_of_volume"] == 0


def test_excluded_margins_are_logged_not_dropped_silently(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        out = aggregate_by_band(
            _example(), DECILE_BANDS, universe=with_margin, out_of_range=OutOfRange.EXCLUDE
        )
    assert "excluded" in caplog.text
    assert "unclassified" not in out["margin_band"].tolist()
    assert out["num_records"].sum() == 1
    # the universe still counts the excluded record
    rows = out.set_index("margin_band")
    assert rows.loc["40-49.99%", "pct_of_volume"] == 50.0


def test_full_coverage_and_volume_sums_to_100(clean_figures: pd.DataFrame) -> None:
    out = aggregate_by_band(
        clean_figures, DECILE_BANDS, universe=with_margin, out_of_range=OutOfRange.UNCLASSIFIED
    )
    n_with_margin = int(clean_figures["gross_margin_pct"].notna().sum())
    assert out["num_records"].sum() == n_with_margin
    assert abs(out["pct_of_volume"].sum() - 100.0) <= 0.01 * len(out)


def test_null_sales_excluded_from_bands_but_kept_in_totals() -> None:
    clean = clean_financial_frame(pd.DataFrame([
        {"record_id": 1, "sales": 100.0, "cost": 60.0, "gross_profit": 40.0},
        {"record_id": 2, "sales": None, "cost": 5.0, "gross_profit": 10.0},
    ]))
    banded = aggregate_by_band(
        clean, COARSE_BANDS, universe=all_records, out_of_range=OutOfRange.EXCLUDE
    )
    assert banded["num_records"].sum() == 1
    assert banded["total_profit"].sum() == 40.0

    overview = kpi_overview(clean)
    kpis = dict(zip(overview["metric"], overview["value"]))
    assert kpis["total_profit"] == 50.0
    assert kpis["total_cost"] == 65.0


def test_grouped_rows_cover_every_band_for_every_key(clean_figures: pd.DataFrame) -> None:
    out = aggregate_by_band(
        clean_figures,
        DECILE_BANDS,
        universe=with_margin,
        group_by="factory_id",
        out_of_range=OutOfRange.UNCLASSIFIED,
    )
    factories = sorted(clean_figures["factory_id"].unique())
    assert len(out) == (len(DECILE_BANDS) + 1) * len(factories)
    # band order first, then key
    assert out["factory_id"].iloc[: len(factories)].tolist() == factories
    assert out["margin_band"].iloc[0] == "0-9.99%"

    per_factory = out.groupby("factory_id")["num_records"].sum()
    expected = clean_figures[clean_figures["gross_margin_pct"].notna()].groupby("factory_id").size()
    assert per_factory.to_dict() == expected.to_dict()


def test_group_volume_scope_sums_to_100_per_group(clean_figures: pd.DataFrame) -> None:
    out = aggregate_by_band(
        clean_figures,
        DECILE_BANDS,
        universe=with_margin,
        group_by="factory_id",
        out_of_range=OutOfRange.UNCLASSIFIED,
        volume_scope="group",
    )
    sums = out.groupby("factory_id")["pct_of_volume"].sum()
    assert all(abs(v - 100.0) <= 0.01 * len(DECILE_BANDS) for v in sums)


def test_universe_restricts_denominator(clean_figures: pd.DataFrame) -> None:
    out = aggregate_by_band(
        clean_figures,
        HIGH_MARGIN_SUB_BANDS,
        universe=margin_between(40, 100),
        out_of_range=OutOfRange.EXCLUDE,
    )
    rows = out.set_index("margin_band")
    # 40, 60, 70, 90, 90 -> five records in the universe
    assert out["num_records"].sum() == 5
    assert rows.loc["90-100%", "num_records"] == 2
    assert rows.loc["90-100%", "pct_of_volume"] == 40.0
    assert rows.loc["50-59.99%", "num_records"] == 0


def test_empty_universe() -> None:
    clean = _example()
    out = aggregate_by_band(
        clean, DECILE_BANDS, universe=margin_between(200, 300), out_of_range=OutOfRange.EXCLUDE
    )
    assert len(out) == len(DECILE_BANDS)
    assert (out["num_records"] == 0).all()
    assert out["pct_of_volume"].isna().all()

    grouped = aggregate_by_band(
        clean,
        DECILE_BANDS,
        universe=margin_between(200, 300),
        out_of_range=OutOfRange.EXCLUDE,
        group_by="product_id",
    )
    assert grouped.empty


def test_out_of_range_policy_must_be_chosen() -> None:
    with pytest.raises(TypeError):
        aggregate_by_band(_example(), DECILE_BANDS, universe=with_margin)  # type: ignore[call-arg]
