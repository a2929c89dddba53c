from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from margin_pipeline.models import AggregatedGroup, CleanRecord, MarginBand, RankedGroup


def test_clean_record_validates() -> None:
    rec = CleanRecord.model_validate({
        "record_id": 1,
        "order_id": 10,
        "factory_id": "F1",
        "product_id": "WB",
        "units": 3,
        "sales": 100.0,
        "cost": 60.25,
        "gross_profit": 39.75,
        "gross_margin_pct": 39.75,
    })
    assert rec.sales == Decimal("100.0")
    assert rec.gross_margin_pct == Decimal("39.75")


def test_clean_record_rejects_extra_fields_and_three_decimals() -> None:
    with pytest.raises(ValidationError):
        CleanRecord.model_validate({"record_id": 1, "discount": 5})
    with pytest.raises(ValidationError):
        CleanRecord.model_validate({"record_id": 1, "sales": Decimal("1.005")})


def test_margin_band_allows_infinite_bounds() -> None:
    band = MarginBand(label=">=40%", min_pct=40, max_pct=float("inf"))
    assert band.contains(1e9)
    with pytest.raises(ValidationError):
        MarginBand(label="nan", min_pct=float("nan"), max_pct=10)


def test_gold_models_keep_group_keys() -> None:
    row = AggregatedGroup.model_validate({
        "margin_band": "60-69.99%",
        "product_id": "WB",
        "num_records": 0,
        "pct_of_volume": None,
        "total_profit": 0.0,
        "total_sales": 0.0,
        "total_cost": 0.0,
        "avg_margin_pct": None,
    })
    assert row.model_dump()["product_id"] == "WB"

    with pytest.raises(ValidationError):
        RankedGroup.model_validate({"rank": 0, "num_records": 1, "total_profit": 1.0})
