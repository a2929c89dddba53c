"""Pydantic models used for Clean and Gold validation.

These models define the expected schema for financial records before and
after cleaning, the margin-band reference definitions, and the Gold outputs
used by the dashboard and tests.
"""

from __future__ import annotations

import math
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FinancialRecord(BaseModel):
    """Schema for a raw financial figures row (one per order line)."""
    model_config = ConfigDict(extra="forbid")
    record_id: int | str
    order_id: int | None = None
    factory_id: str | None = None
    product_id: str | None = None
    units: int | None = None
    sales: float | None = None
    cost: float | None = None
    gross_profit: float | None = None


class CleanRecord(BaseModel):
    """Schema for a cleaned financial record.

    Attributes:
        record_id: Surrogate key of the source row.
        order_id: Order reference (numeric).
        factory_id: Factory code.
        product_id: Product code.
        units: Integer quantity, if known.
        sales: Sales amount, 2-decimal fixed point.
        cost: Cost amount, 2-decimal fixed point.
        gross_profit: Gross profit, 2-decimal fixed point.
        gross_margin_pct: `100 * gross_profit / sales` rounded to 2 places;
            None when sales is missing or zero.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    record_id: int | str
    order_id: int | None = None
    factory_id: str | None = None
    product_id: str | None = None
    units: int | None = None
    sales: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    cost: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    gross_profit: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    gross_margin_pct: Decimal | None = Field(default=None, decimal_places=2)


class MarginBand(BaseModel):
    """A named half-open interval `[min_pct, max_pct)` over gross margin %.

    Bounds may be infinite, which is how catch-all bands are expressed.
    """
    model_config = ConfigDict(extra="forbid", frozen=True)
    label: str = Field(..., min_length=1)
    min_pct: float
    max_pct: float

    @model_validator(mode="after")
    def _check_bounds(self) -> "MarginBand":
        if math.isnan(self.min_pct) or math.isnan(self.max_pct):
            raise ValueError("band bounds must be numbers")
        if self.min_pct >= self.max_pct:
            raise ValueError(
                f"band {self.label!r}: min_pct {self.min_pct} must be below max_pct {self.max_pct}"
            )
        return self

    def contains(self, pct: float | None) -> bool:
        """Return True when `pct` falls inside the band."""
        if pct is None or math.isnan(pct):
            return False
        return self.min_pct <= pct < self.max_pct


class AggregatedGroup(BaseModel):
    """Gold model for one (margin band × group key) aggregate row.

    Group key columns (product_id, factory_id, month_start, ...) vary per
    report and are accepted as extra fields.
    """
    model_config = ConfigDict(extra="allow")
    margin_band: str
    num_records: int = Field(..., ge=0)
    pct_of_volume: float | None = None
    total_profit: float
    total_sales: float
    total_cost: float
    avg_margin_pct: float | None = None


class RankedGroup(BaseModel):
    """Gold model for a row of a top-N ranking."""
    model_config = ConfigDict(extra="allow")
    rank: int = Field(..., ge=1)
    num_records: int = Field(..., ge=0)
    total_profit: float


class KpiMetric(BaseModel):
    """Gold model for long-format KPI rows (`metric`, `value`)."""
    model_config = ConfigDict(extra="forbid")
    metric: str
    value: float | None = None


class DataInspection(BaseModel):
    """Counts produced by the data inspection checks."""
    model_config = ConfigDict(extra="forbid")
    total_rows: int = Field(..., ge=0)
    null_sales: int = Field(..., ge=0)
    null_cost: int = Field(..., ge=0)
    null_profit: int = Field(..., ge=0)
    loss_rows: int = Field(..., ge=0)
    zero_profit_rows: int = Field(..., ge=0)
    cost_greater_than_sales: int = Field(..., ge=0)
    margin_over_100: int = Field(..., ge=0)
    profit_mismatch_rows: int = Field(..., ge=0)
