"""Top-N ranking of aggregated groups.

Ordering is deterministic: rows are sorted by the metric, then by the
tie-break columns ascending, with a stable sort. Ties on the metric therefore
come out in tie-break order for every ranking method.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Sequence

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)


class RankMethod(str, Enum):
    """Ranking flavours.

    DENSE: ties share a rank; the next distinct value gets rank + 1.
    STANDARD: ties share a rank; the next value skips the tied positions.
    ROW_NUMBER: every row gets a unique, increasing rank.
    """
    DENSE = "dense"
    STANDARD = "rank"
    ROW_NUMBER = "row_number"


def rank_groups(
    pdf: pd.DataFrame,
    metric: str,
    *,
    method: RankMethod = RankMethod.DENSE,
    top_n: int | None = None,
    tie_break: Sequence[str] = (),
    partition_by: Sequence[str] = (),
    ascending: bool = False,
    rank_column: str = "rank",
) -> pd.DataFrame:
    """Rank rows by `metric` and keep the first `top_n` ranks.

    Args:
        pdf: Aggregated rows.
        metric: Column to rank by.
        method: One of `RankMethod`.
        top_n: Keep rows whose rank is <= top_n; None keeps every row.
        tie_break: Columns ordering rows with an equal metric (ascending).
        partition_by: Columns to rank within independently.
        ascending: Rank the smallest metric first instead of the largest.
        rank_column: Name of the output rank column.

    Returns:
        Ranked rows ordered by partition, rank and tie-break columns. Rows
        with a null metric are not ranked and are left out.

    Raises:
        ValueError: if `top_n` is not positive.
    """
    if top_n is not None and top_n < 1:
        raise ValueError(f"top_n must be positive, got {top_n}")

    method = RankMethod(method)
    partition_by = list(partition_by)
    tie_break = list(tie_break)

    unranked = pdf[metric].isna()
    if unranked.any():
        log.info("%d rows without %s left out of the ranking", int(unranked.sum()), metric)

    ranked = pdf[~unranked].sort_values(
        [*partition_by, metric, *tie_break],
        ascending=[True] * len(partition_by) + [ascending] + [True] * len(tie_break),
        kind="mergesort",
    )

    if method is RankMethod.ROW_NUMBER:
        if partition_by:
            ranks = ranked.groupby(partition_by, sort=False, dropna=False).cumcount() + 1
        else:
            ranks = pd.Series(np.arange(1, len(ranked) + 1), index=ranked.index)
    else:
        pandas_method = "dense" if method is RankMethod.DENSE else "min"
        if partition_by:
            ranks = ranked.groupby(partition_by, sort=False, dropna=False)[metric].rank(
                method=pandas_method, ascending=ascending
            )
        else:
            ranks = ranked[metric].rank(method=pandas_method, ascending=ascending)

    ranked = ranked.assign(**{rank_column: ranks.astype(int)})
    if top_n is not None:
        ranked = ranked[ranked[rank_column] <= top_n]
    return ranked.reset_index(drop=True)
