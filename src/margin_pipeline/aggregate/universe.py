"""Universe predicates.

A universe is the subset of clean records a report is computed over; its
record count is the denominator of `pct_of_volume`. Every aggregation takes
its universe as an explicit argument.
"""

from __future__ import annotations

from typing import Callable, Literal

import pandas as pd

Universe = Callable[[pd.DataFrame], pd.Series]


def all_records(pdf: pd.DataFrame) -> pd.Series:
    """Every record, including those without a defined margin."""
    return pd.Series(True, index=pdf.index)


def with_margin(pdf: pd.DataFrame) -> pd.Series:
    """Records whose gross margin is defined."""
    return pdf["gross_margin_pct"].notna()


def margin_between(
    lo: float,
    hi: float,
    inclusive: Literal["both", "neither", "left", "right"] = "both",
) -> Universe:
    """Records with `lo <= margin <= hi` (bounds per `inclusive`)."""

    def _predicate(pdf: pd.DataFrame) -> pd.Series:
        return pdf["gross_margin_pct"].between(lo, hi, inclusive=inclusive)

    return _predicate


def margin_at_least(lo: float) -> Universe:
    def _predicate(pdf: pd.DataFrame) -> pd.Series:
        return pdf["gross_margin_pct"] >= lo

    return _predicate


def margin_below(hi: float) -> Universe:
    def _predicate(pdf: pd.DataFrame) -> pd.Series:
        return pdf["gross_margin_pct"] < hi

    return _predicate


def both(first: Universe, second: Universe) -> Universe:
    """Intersection of two universes."""

    def _predicate(pdf: pd.DataFrame) -> pd.Series:
        return first(pdf) & second(pdf)

    return _predicate


def has_value(column: str) -> Universe:
    """Records where `column` is not null."""

    def _predicate(pdf: pd.DataFrame) -> pd.Series:
        return pdf[column].notna()

    return _predicate
