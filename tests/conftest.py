from __future__ import annotations

import pandas as pd
import pytest

from margin_pipeline.clean.transform import clean_financial_frame


@pytest.fixture
def raw_figures() -> pd.DataFrame:
    """Financial figures covering high, core, low, negative and undefined margins."""
    return pd.DataFrame([
        {"record_id": 1, "order_id": 1, "factory_id": "F1", "product_id": "WB",
         "units": 10, "sales": 100.0, "cost": 30.0, "gross_profit": 70.0},    # 70%
        {"record_id": 2, "order_id": 2, "factory_id": "F1", "product_id": "WB",
         "units": 5, "sales": 50.0, "cost": 20.0, "gross_profit": 30.0},      # 60%
        {"record_id": 3, "order_id": 3, "factory_id": "F2", "product_id": "EG",
         "units": 4, "sales": 200.0, "cost": 120.0, "gross_profit": 80.0},    # 40%
        {"record_id": 4, "order_id": 4, "factory_id": "F2", "product_id": "EG",
         "units": 1, "sales": 10.0, "cost": 9.5, "gross_profit": 0.5},        # 5%
        {"record_id": 5, "order_id": 5, "factory_id": "F3", "product_id": "ND",
         "units": 2, "sales": 40.0, "cost": 44.0, "gross_profit": -4.0},      # -10%
        {"record_id": 6, "order_id": 6, "factory_id": "F3", "product_id": "ND",
         "units": None, "sales": None, "cost": 5.0, "gross_profit": None},    # undefined
        {"record_id": 7, "order_id": 7, "factory_id": "F1", "product_id": "LT",
         "units": 3, "sales": 90.0, "cost": 9.0, "gross_profit": 81.0},       # 90%
        {"record_id": 8, "order_id": 8, "factory_id": "F2", "product_id": "XX",
         "units": 1, "sales": 20.0, "cost": 2.0, "gross_profit": 18.0},       # 90%, unknown product
    ])


@pytest.fixture
def clean_figures(raw_figures: pd.DataFrame) -> pd.DataFrame:
    return clean_financial_frame(raw_figures)


@pytest.fixture
def products() -> pd.DataFrame:
    return pd.DataFrame([
        {"product_id": "WB", "factory_id": "F1", "product_name": "Wonka Bar", "division": "Chocolate"},
        {"product_id": "EG", "factory_id": "F2", "product_name": "Everlasting Gobstopper", "division": "Sugar"},
        {"product_id": "ND", "factory_id": "F3", "product_name": "Nerds", "division": "Sugar"},
        {"product_id": "LT", "factory_id": "F1", "product_name": "Laffy-Taffy", "division": "Sugar"},
    ])


@pytest.fixture
def orders() -> pd.DataFrame:
    return pd.DataFrame({
        "order_id": [1, 2, 3, 4, 5, 6, 7, 8],
        "order_date": pd.to_datetime([
            "2024-01-03", "2024-01-20", "2024-01-05", "2024-02-11",
            "2024-02-12", "2024-02-13", "2024-02-28", None,
        ]),
    })
