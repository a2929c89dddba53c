from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt
from dotenv import dotenv_values

from margin_pipeline.aggregate.bands import reference_order
from margin_pipeline.db import get_client

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="Margin Analytics", layout="wide")
st.title("📊 Sales, Cost & Gross Margin Dashboard")

# =====================================================
# MongoDB connection (strict: read from .env only)
# =====================================================
_env = dotenv_values(".env")
MONGO_URI = _env.get("MONGO_URI")
MONGO_DB = _env.get("MONGO_DB") or "margins"

if not MONGO_URI:
    st.error(
        "Missing `MONGO_URI` in `.env`. Please create a `.env` file with `MONGO_URI=<your mongodb uri>` (do not put secrets in source control)."
    )
    st.stop()

try:
    client = get_client(MONGO_URI)
    # fail fast: ensure the client can reach the server
    client.admin.command("ping")
    db = client[MONGO_DB]
except Exception as exc:  # pragma: no cover - runtime failure handling
    st.error(f"Unable to connect to MongoDB: {exc}")
    st.stop()


# =====================================================
# Helpers
# =====================================================
def load_collection(name: str) -> pd.DataFrame:
    """Load an entire Gold collection into a pandas DataFrame for display.

    Args:
        name: Collection name in the configured Mongo database.

    Returns:
        pandas.DataFrame with the collection rows or an empty DataFrame.
    """
    docs = list(db[name].find({}, {"_id": 0}))
    return pd.DataFrame(docs) if docs else pd.DataFrame()


def band_order(df: pd.DataFrame) -> list[str]:
    """Band labels in reference order, whatever order the documents came back in."""
    return reference_order(df["margin_band"].dropna())


def band_chart(df: pd.DataFrame, value: str, title: str) -> alt.Chart:
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("margin_band:N", sort=band_order(df), title="Margin band"),
            y=alt.Y(f"{value}:Q", title=title),
            tooltip=["margin_band:N", "num_records:Q", "pct_of_volume:Q", "total_profit:Q"],
        )
        .properties(height=300)
    )


def ranking_chart(df: pd.DataFrame, label: str) -> alt.Chart:
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X(f"{label}:N", sort=alt.SortField("total_profit", order="descending"), title=None),
            y=alt.Y("total_profit:Q", title="Gross Profit"),
            tooltip=[f"{label}:N", "rank:Q", "total_profit:Q", "num_records:Q"],
        )
        .properties(height=300)
    )


# =====================================================
# SECTION 0 — EXECUTIVE OVERVIEW
# =====================================================
st.header("📌 Executive Overview")

df_kpi = load_collection("gold_kpi_overview")
if df_kpi.empty:
    st.warning("KPI data not available. Run `margin_pipeline report`.")
else:
    kpis = dict(zip(df_kpi["metric"], df_kpi["value"]))
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Sales", f"{kpis.get('total_sales', 0):,.2f}")
    c2.metric("Total Cost", f"{kpis.get('total_cost', 0):,.2f}")
    c3.metric("Gross Profit", f"{kpis.get('total_profit', 0):,.2f}")
    c4.metric("Gross Margin %", kpis.get("gross_margin_pct"))

df_quality = load_collection("gold_data_quality")
if not df_quality.empty:
    with st.expander("Data quality checks"):
        st.dataframe(df_quality, width="stretch")

st.divider()

# =====================================================
# SECTION 1 — MARGIN DISTRIBUTION
# =====================================================
st.header("📈 Margin Distribution")

view = st.radio(
    "Bands",
    ["All bands", "Low / mid / high", "High-margin sub-bands"],
    horizontal=True,
)
collection = {
    "All bands": "gold_margin_distribution",
    "Low / mid / high": "gold_margin_groups",
    "High-margin sub-bands": "gold_high_margin_sub_bands",
}[view]

df_bands = load_collection(collection)
if df_bands.empty:
    st.info("Band data not available.")
else:
    metric = st.selectbox("Metric", ["num_records", "pct_of_volume", "total_profit"], index=0)
    st.altair_chart(band_chart(df_bands, metric, metric.replace("_", " ").title()), width="stretch")
    st.dataframe(df_bands, width="stretch")

st.divider()

# =====================================================
# SECTION 2 — TOP PRODUCTS & FACTORIES
# =====================================================
st.header("🏆 Top Contributors (margin 40-100%)")

left, right = st.columns(2)
with left:
    st.subheader("Products")
    df_top_products = load_collection("gold_top_products_high_margin")
    if df_top_products.empty:
        st.info("Top product data not available.")
    else:
        st.altair_chart(ranking_chart(df_top_products, "product_name"), width="stretch")
with right:
    st.subheader("Factories")
    df_top_factories = load_collection("gold_top_factories_high_margin")
    if df_top_factories.empty:
        st.info("Top factory data not available.")
    else:
        st.altair_chart(ranking_chart(df_top_factories, "factory_id"), width="stretch")

df_core = load_collection("gold_top_products_by_core_band")
if not df_core.empty:
    st.subheader("Top products per core band")
    band = st.selectbox("Band", band_order(df_core))
    st.dataframe(df_core[df_core["margin_band"] == band], width="stretch")

st.divider()

# =====================================================
# SECTION 3 — MARGIN STABILITY
# =====================================================
st.header("🏭 Factory Margin Stability")

df_stability = load_collection("gold_factory_margin_stability")
if df_stability.empty:
    st.info("Stability data not available (requires ORDERS_PATH).")
else:
    df_stability["month_start"] = pd.to_datetime(df_stability["month_start"], errors="coerce")
    factories = sorted(df_stability["factory_id"].dropna().unique())
    factory = st.selectbox("Factory", factories)
    df_f = df_stability[(df_stability["factory_id"] == factory) & (df_stability["num_records"] > 0)]
    chart = (
        alt.Chart(df_f)
        .mark_bar()
        .encode(
            x=alt.X("month_start:T", title="Month"),
            y=alt.Y("pct_of_volume:Q", stack="normalize", title="Share of monthly volume"),
            color=alt.Color("margin_band:N", sort=band_order(df_stability), title="Band"),
            tooltip=["month_start:T", "margin_band:N", "num_records:Q", "pct_of_volume:Q"],
        )
        .properties(height=320)
    )
    st.altair_chart(chart, width="stretch")

st.divider()

# =====================================================
# SECTION 4 — WATCHLISTS
# =====================================================
st.header("🔎 Watchlists")

tab_low, tab_prod, tab_fact = st.tabs(
    ["Low-margin products (<10%)", "Extreme-margin products", "Extreme-margin factories"]
)
for tab, name in (
    (tab_low, "gold_low_margin_products"),
    (tab_prod, "gold_extreme_margin_products"),
    (tab_fact, "gold_extreme_margin_factories"),
):
    with tab:
        df_watch = load_collection(name)
        if df_watch.empty:
            st.info("Nothing to report.")
        else:
            st.dataframe(df_watch, width="stretch")

# =====================================================
# Footer
# =====================================================
st.caption("Financial Figures • pandas • Dask • MongoDB • Streamlit • Gold-Layer Analytics")
