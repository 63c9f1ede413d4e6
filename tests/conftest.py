"""Shared test fixtures for drilldash tests."""

from __future__ import annotations

import pytest

from drilldash.config import reset_settings
from drilldash.query.models import DataSourceConfig, QueryMode


@pytest.fixture(autouse=True)
def _reset_settings(monkeypatch):
    """Reset settings singleton between tests and isolate from the caller's env."""
    for var in (
        "DRILLDASH_BACKEND_URL",
        "DRILLDASH_API_KEY",
        "DRILLDASH_CHART_DATA_PATH",
        "DRILLDASH_REQUEST_TIMEOUT",
        "DRILLDASH_DEFAULT_LIMIT",
        "DRILLDASH_AUTO_REFRESH_INTERVAL",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sales_rows() -> list[dict]:
    """Three sales rows across two regions."""
    return [
        {"region": "N", "sales": 10},
        {"region": "S", "sales": 7},
        {"region": "N", "sales": 5},
    ]


@pytest.fixture
def order_rows() -> list[dict]:
    """Orders with a region > city hierarchy and a product label."""
    return [
        {"region": "N", "city": "Oslo", "product": "Widget", "revenue": 100, "units": 2},
        {"region": "N", "city": "Oslo", "product": "Gadget", "revenue": 50, "units": 1},
        {"region": "N", "city": "Bergen", "product": "Widget", "revenue": 30, "units": 3},
        {"region": "S", "city": "Rome", "product": "Widget", "revenue": 80, "units": 4},
        {"region": "S", "city": "Milan", "product": "Gizmo", "revenue": 20, "units": 1},
    ]


@pytest.fixture
def import_config(order_rows) -> DataSourceConfig:
    return DataSourceConfig(
        query_mode=QueryMode.IMPORT,
        x_axis="region",
        y_axis=["revenue"],
        drill_down_label_field="city",
        imported_data=order_rows,
    )
