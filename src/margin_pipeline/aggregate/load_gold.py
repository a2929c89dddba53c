"""Utilities for publishing Gold DataFrames.

Gold datasets are small (aggregated) pandas frames. They are either upserted
into dedicated MongoDB collections or exported as CSV files. This module
centralizes the document conversion, optional row validation and logging.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel

from margin_pipeline.db import bulk_upsert, delete_stale

log = logging.getLogger(__name__)


def to_documents(pdf: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert a frame to BSON-friendly dicts (NaN/NaT/NA → None, numpy → Python)."""
    docs: list[dict[str, Any]] = []
    for rec in pdf.to_dict("records"):
        doc: dict[str, Any] = {}
        for k, v in rec.items():
            if v is None or (np.isscalar(v) and pd.isna(v)) or v is pd.NA or v is pd.NaT:
                doc[k] = None
            elif isinstance(v, np.generic):
                doc[k] = v.item()
            elif isinstance(v, pd.Timestamp):
                doc[k] = v.to_pydatetime()
            else:
                doc[k] = v
        docs.append(doc)
    return docs


def validate_rows(docs: list[dict[str, Any]], model: type[BaseModel]) -> None:
    """Validate every Gold row against `model`; raises on the first bad row."""
    for doc in docs:
        model.model_validate(doc)


def load_gold(
    collection: Any,
    pdf: pd.DataFrame,
    key_fields: Sequence[str],
    model: type[BaseModel] | None = None,
) -> int:
    """Replace the contents of a Gold collection with a report.

    Strategy:
    - Convert rows to plain documents
    - Validate them when a row model is given
    - Upsert by `key_fields` (deterministic, stable)
    - Delete documents whose key left the report (for example after a
      smaller top-N)

    Args:
        collection: Target PyMongo collection.
        pdf: Gold report rows.
        key_fields: Fields used as the upsert key.
        model: Optional Pydantic model every row must satisfy.

    Returns:
        Number of rows written.
    """
    log.info("Generating gold collection: %s", collection.name)

    if pdf.empty:
        removed = delete_stale(collection, [], key_fields)
        log.warning("No rows to load for %s (%d stale rows removed)", collection.name, removed)
        return 0

    docs = to_documents(pdf)
    if model is not None:
        validate_rows(docs, model)

    written = bulk_upsert(collection, docs, key_fields)
    removed = delete_stale(collection, docs, key_fields)
    if removed:
        log.info("Removed %d stale rows from %s", removed, collection.name)
    log.info("Gold load complete for %s: %d rows", collection.name, written)
    return written


def export_gold_csv(pdf: pd.DataFrame, out_dir: Path, name: str) -> Path:
    """Write a Gold report to `<out_dir>/<name>.csv` and return the path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{name}.csv"
    pdf.to_csv(out_path, index=False)
    log.info("Exported %s (%d rows) to %s", name, len(pdf), out_path)
    return out_path
