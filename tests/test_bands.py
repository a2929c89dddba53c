from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest
from pydantic import ValidationError

from margin_pipeline.aggregate.bands import (
    COARSE_BANDS,
    CORE_VOLUME_BANDS,
    DECILE_BANDS,
    HIGH_MARGIN_SUB_BANDS,
    UNCLASSIFIED,
    OutOfRange,
    assign_bands,
    reference_order,
    validate_bands,
)
from margin_pipeline.models import MarginBand


def test_reference_band_lists() -> None:
    assert [b.label for b in DECILE_BANDS][:2] == ["0-9.99%", "10-19.99%"]
    assert DECILE_BANDS[-1].label == "90-100%"
    assert DECILE_BANDS[-1].max_pct == 101
    assert [b.min_pct for b in HIGH_MARGIN_SUB_BANDS] == [40, 50, 60, 70, 80, 90]
    assert [b.label for b in CORE_VOLUME_BANDS] == ["60-69.99%", "70-79.99%"]
    assert COARSE_BANDS[0].min_pct == -math.inf


def test_last_decile_band_includes_exactly_100() -> None:
    last = DECILE_BANDS[-1]
    assert last.contains(100.0)
    assert last.contains(90.0)
    assert not last.contains(89.99)
    assert not last.contains(101.0)
    assert not last.contains(None)


def test_assign_bands_labels_and_policies() -> None:
    margins = pd.Series([5.0, 40.0, 99.99, np.nan, -10.0, 150.0])

    excluded = assign_bands(margins, validate_bands(DECILE_BANDS), OutOfRange.EXCLUDE)
    assert excluded.tolist()[:3] == ["0-9.99%", "40-49.99%", "90-100%"]
    assert excluded.iloc[3:].isna().all()

    routed = assign_bands(margins, validate_bands(DECILE_BANDS), OutOfRange.UNCLASSIFIED)
    assert routed.iloc[4] == UNCLASSIFIED
    assert routed.iloc[5] == UNCLASSIFIED
    # undefined margins never get a band, even the unclassified one
    assert routed.iloc[3] is None


def test_catch_all_band_covers_negative_margins() -> None:
    labels = assign_bands(
        pd.Series([-10.0, 12.0, 400.0]), validate_bands(COARSE_BANDS), OutOfRange.EXCLUDE
    )
    assert labels.tolist() == ["<10%", "10-39.99%", ">=40%"]


def test_validate_bands_orders_by_lower_bound() -> None:
    shuffled = [DECILE_BANDS[3], DECILE_BANDS[0], DECILE_BANDS[1]]
    assert [b.min_pct for b in validate_bands(shuffled)] == [0, 10, 30]


def test_validate_bands_rejects_overlap() -> None:
    bands = [
        MarginBand(label="a", min_pct=0, max_pct=10),
        MarginBand(label="b", min_pct=5, max_pct=15),
    ]
    with pytest.raises(ValueError, match="overlap"):
        validate_bands(bands)


def test_validate_bands_rejects_duplicates_and_reserved_labels() -> None:
    with pytest.raises(ValueError):
        validate_bands([])
    with pytest.raises(ValueError, match="duplicate"):
        validate_bands([
            MarginBand(label="a", min_pct=0, max_pct=10),
            MarginBand(label="a", min_pct=10, max_pct=20),
        ])
    with pytest.raises(ValueError, match="reserved"):
        validate_bands([MarginBand(label=UNCLASSIFIED, min_pct=0, max_pct=10)])


def test_band_bounds_must_be_increasing() -> None:
    with pytest.raises(ValidationError):
        MarginBand(label="bad", min_pct=10, max_pct=10)


def test_reference_order_sorts_by_lower_bound() -> None:
    shuffled = ["unclassified", "90-100%", "0-9.99%", "40-49.99%", "0-9.99%"]
    assert reference_order(shuffled) == ["0-9.99%", "40-49.99%", "90-100%", "unclassified"]
    assert reference_order([">=40%", "<10%", "10-39.99%"]) == ["<10%", "10-39.99%", ">=40%"]
