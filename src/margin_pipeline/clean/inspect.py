"""Data inspection checks over the Clean view.

The checks count nulls, losses, break-even rows and other anomalies. They
surface problems for the analyst; nothing is corrected.
"""
from __future__ import annotations

import logging

import pandas as pd

from margin_pipeline.models import DataInspection

log = logging.getLogger(__name__)

# Tolerance for the gross_profit == sales - cost check (half a cent).
PROFIT_TOLERANCE = 0.005


def inspect_financials(pdf: pd.DataFrame) -> DataInspection:
    """Run the inspection checks on a clean frame.

    Args:
        pdf: Frame with `sales`, `cost`, `gross_profit`, `gross_margin_pct`.

    Returns:
        `DataInspection` with one count per check.
    """
    sales, cost, profit = pdf["sales"], pdf["cost"], pdf["gross_profit"]
    complete = sales.notna() & cost.notna() & profit.notna()
    mismatch = complete & ((profit - (sales - cost)).abs() > PROFIT_TOLERANCE)

    result = DataInspection(
        total_rows=len(pdf),
        null_sales=int(sales.isna().sum()),
        null_cost=int(cost.isna().sum()),
        null_profit=int(profit.isna().sum()),
        loss_rows=int((profit < 0).sum()),
        zero_profit_rows=int((profit == 0).sum()),
        cost_greater_than_sales=int((cost > sales).sum()),
        margin_over_100=int((pdf["gross_margin_pct"] > 100).sum()),
        profit_mismatch_rows=int(mismatch.sum()),
    )

    for check in ("loss_rows", "cost_greater_than_sales", "margin_over_100", "profit_mismatch_rows"):
        count = getattr(result, check)
        if count:
            log.warning("Inspection %s: %d of %d rows", check, count, result.total_rows)

    return result


def inspection_frame(result: DataInspection) -> pd.DataFrame:
    """Return the inspection counts in long format (`check`, `count`)."""
    return pd.DataFrame(
        [{"check": k, "count": v} for k, v in result.model_dump().items()]
    )
