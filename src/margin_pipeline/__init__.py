"""margin_pipeline package.

Contains modules for reading normalized financial figures, cleaning them into
fixed-precision records with a derived gross-margin percentage, classifying
records into margin bands, ranking products and factories, and publishing
Gold-layer report tables for a Streamlit dashboard.

Architecture:
- Input CSV → Clean view (recomputed on every run) → Gold reports
- Dask is used for partitioned cleaning of the input
- Pydantic models validate Clean rows and Gold outputs
- Gold reports are upserted into MongoDB or exported as CSV
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
