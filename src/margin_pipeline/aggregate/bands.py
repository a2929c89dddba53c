"""Margin band reference lists and record classification.

Band lists are plain data: every report that buckets records by gross margin
picks one of the lists below (or builds its own) and hands it to the band
aggregator, instead of re-expressing the buckets as conditional logic.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from margin_pipeline.models import MarginBand

log = logging.getLogger(__name__)

UNCLASSIFIED = "unclassified"


class OutOfRange(str, Enum):
    """What to do with a defined margin that matches no band."""
    EXCLUDE = "exclude"
    UNCLASSIFIED = "unclassified"


def _band(label: str, lo: float, hi: float) -> MarginBand:
    return MarginBand(label=label, min_pct=lo, max_pct=hi)


# 10pp bands over [0, 100]; the last one ends at 101 so that exactly 100% is included.
DECILE_BANDS: tuple[MarginBand, ...] = (
    *(_band(f"{lo}-{lo + 9}.99%", lo, lo + 10) for lo in range(0, 90, 10)),
    _band("90-100%", 90, 101),
)

HIGH_MARGIN_SUB_BANDS: tuple[MarginBand, ...] = tuple(b for b in DECILE_BANDS if b.min_pct >= 40)

COARSE_BANDS: tuple[MarginBand, ...] = (
    _band("<10%", -math.inf, 10),
    _band("10-39.99%", 10, 40),
    _band(">=40%", 40, math.inf),
)

CORE_VOLUME_BANDS: tuple[MarginBand, ...] = tuple(
    b for b in DECILE_BANDS if b.min_pct in (60, 70)
)


def validate_bands(bands: Iterable[MarginBand]) -> tuple[MarginBand, ...]:
    """Return the bands ordered by lower bound after sanity checks.

    Gaps between bands are allowed; values falling in a gap are handled by
    the caller's `OutOfRange` policy.

    Raises:
        ValueError: if the list is empty, labels repeat, a label collides with
            the unclassified bucket, or two bands overlap.
    """
    ordered = tuple(sorted(bands, key=lambda b: (b.min_pct, b.max_pct)))
    if not ordered:
        raise ValueError("at least one margin band is required")

    labels = [b.label for b in ordered]
    if len(set(labels)) != len(labels):
        raise ValueError(f"duplicate band labels: {labels}")
    if UNCLASSIFIED in labels:
        raise ValueError(f"{UNCLASSIFIED!r} is reserved for out-of-range margins")

    for prev, cur in zip(ordered, ordered[1:]):
        if cur.min_pct < prev.max_pct:
            raise ValueError(
                f"bands {prev.label!r} and {cur.label!r} overlap "
                f"([{prev.min_pct}, {prev.max_pct}) vs [{cur.min_pct}, {cur.max_pct}))"
            )
    return ordered


def band_labels(bands: Sequence[MarginBand], out_of_range: OutOfRange) -> list[str]:
    """Labels in output order, including the unclassified bucket when routed."""
    labels = [b.label for b in bands]
    if out_of_range is OutOfRange.UNCLASSIFIED:
        labels.append(UNCLASSIFIED)
    return labels


def assign_bands(
    margins: pd.Series,
    bands: Sequence[MarginBand],
    out_of_range: OutOfRange,
) -> pd.Series:
    """Classify each margin into a band label.

    Records with an undefined margin get no band. Defined margins outside
    every band go to `UNCLASSIFIED` or get no band, depending on
    `out_of_range`; either way the count is logged.

    Args:
        margins: Series of gross margin percentages (NaN when undefined).
        bands: Validated, ordered band list.
        out_of_range: Policy for margins matching no band.

    Returns:
        object Series of labels (None where no band applies), same index.
    """
    values = pd.to_numeric(margins, errors="coerce").to_numpy(dtype="float64", na_value=np.nan)
    conditions = [(values >= b.min_pct) & (values < b.max_pct) for b in bands]
    labels = np.select(conditions, [b.label for b in bands], default="")
    out = pd.Series([lbl or None for lbl in labels], index=margins.index, dtype=object)

    defined = ~np.isnan(values)
    unmatched = defined & out.isna().to_numpy()
    n_unmatched = int(unmatched.sum())
    if n_unmatched:
        if out_of_range is OutOfRange.UNCLASSIFIED:
            out[unmatched] = UNCLASSIFIED
            log.info("%d records routed to %r band", n_unmatched, UNCLASSIFIED)
        else:
            log.warning("%d records with margins outside every band were excluded", n_unmatched)

    return out


def reference_order(labels: Iterable[str]) -> list[str]:
    """Distinct band labels sorted by lower bound across the reference lists.

    Labels outside the reference lists follow in name order and
    `unclassified` always comes last.
    """
    bounds = {b.label: b.min_pct for b in (*COARSE_BANDS, *DECILE_BANDS)}
    return sorted(
        dict.fromkeys(labels),
        key=lambda lbl: (lbl == UNCLASSIFIED, bounds.get(lbl, math.inf), lbl),
    )
