"""Validation utilities for the Clean view.

This module validates partition data against the Pydantic `CleanRecord` model.
Pandas nulls (NaN, NA) are converted to None before validation so optional
fields stay optional.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable

import pandas as pd
from pydantic import ValidationError

from margin_pipeline.clean.transform import clean_financial_frame
from margin_pipeline.models import CleanRecord, FinancialRecord

log = logging.getLogger(__name__)


def _to_python(rec: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in rec.items():
        if v is None or (not isinstance(v, str) and pd.isna(v)):
            out[k] = None
        elif k in ("record_id", "order_id", "units") and isinstance(v, float) and v.is_integer():
            out[k] = int(v)
        else:
            out[k] = v
    return out


def _validate(rec: dict[str, Any]) -> CleanRecord | None:
    try:
        return CleanRecord.model_validate(_to_python(rec))
    except ValidationError as e:
        log.debug("Rejected clean record %s: %s", rec.get("record_id"), e)
        return None


def validate_partition(pdf: pd.DataFrame) -> tuple[list[dict[str, Any]], int]:
    """Validate a pandas partition of clean records using Pydantic.

    Args:
        pdf: Pandas DataFrame produced by `clean_financial_frame`.

    Returns:
        A tuple of (list_of_validated_records, bad_count).
    """
    good: list[dict[str, Any]] = []
    bad = 0

    for rec in pdf.to_dict(orient="records"):
        m = _validate(rec)
        if m is None:
            bad += 1
        else:
            good.append(m.model_dump(mode="python"))

    if bad:
        log.warning("Clean validation rejected %d of %d rows", bad, len(pdf))
    return good, bad


def drop_invalid(pdf: pd.DataFrame) -> pd.DataFrame:
    """Keep the rows of a clean frame that satisfy `CleanRecord`.

    Rejected rows are counted in a warning; the frame keeps its dtypes and
    index.
    """
    keep = [_validate(rec) is not None for rec in pdf.to_dict(orient="records")]
    mask = pd.Series(keep, index=pdf.index, dtype=bool)
    n_bad = int((~mask).sum())
    if n_bad:
        log.warning("Dropping %d of %d rows that failed clean validation", n_bad, len(pdf))
    return pdf[mask]


def clean_records(records: Iterable[FinancialRecord]) -> list[CleanRecord]:
    """Clean a sequence of financial records one-to-one, keeping their order.

    Raises:
        ValidationError: if a cleaned row does not satisfy `CleanRecord`.
    """
    rows = [r.model_dump() for r in records]
    pdf = clean_financial_frame(pd.DataFrame(rows, columns=list(FinancialRecord.model_fields)))
    return [CleanRecord.model_validate(_to_python(rec)) for rec in pdf.to_dict(orient="records")]
