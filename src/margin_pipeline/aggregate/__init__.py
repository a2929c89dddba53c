"""Gold-layer aggregation helpers.

This package contains the margin-band reference lists, the band aggregator,
per-dimension summaries and the top-N ranker, plus the catalogue of Gold
reports built from them. Gold outputs are small enough to compute eagerly
and store in MongoDB (or CSV) as read-optimized tables.
"""
