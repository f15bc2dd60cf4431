"""
Test Suite Configuration
"""
from datetime import date
from decimal import Decimal

import pytest
import polars as pl

from gold_analytics.config import Settings
from gold_analytics.engine import DatasetStore, ReportEngine


AS_OF = date(2025, 6, 1)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
def as_of() -> date:
    """Fixed reference date for age metrics"""
    return AS_OF


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Customer dimension; customers 5 and 6 never order"""
    return pl.DataFrame({
        "customer_key": [1, 2, 3, 4, 5, 6],
        "first_name": ["Jon", "Eugene", "Ruben", "Christy", "Elizabeth", "Julio"],
        "last_name": ["Yang", "Huang", "Torres", "Zhu", "Johnson", "Ruiz"],
        "country": ["United States", "United States", "Germany", None, "France", "United States"],
        "gender": ["Male", "Female", "Female", "Male", None, "Female"],
        "birthdate": [
            date(1980, 5, 10),
            date(1995, 12, 31),
            date(1970, 1, 1),
            date(2000, 7, 15),
            date(1988, 3, 3),
            date(1965, 11, 11),
        ],
    })


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Product dimension"""
    return pl.DataFrame({
        "product_key": [10, 20, 30, 40],
        "product_name": ["Road-150", "Mountain-200", "Sport-100 Helmet", "Long-Sleeve Jersey"],
        "category": ["Bikes", "Bikes", "Accessories", "Clothing"],
        "subcategory": ["Road Bikes", "Mountain Bikes", "Helmets", "Jerseys"],
        "cost": [Decimal("60.00"), Decimal("180.00"), Decimal("10.00"), Decimal("30.00")],
    })


@pytest.fixture
def sample_sales_df() -> pl.DataFrame:
    """
    Fact rows; SO1 has two lines, product 99 and customer 42 are orphans.

    Totals: sales 675, quantity 13, 7 lines, 6 orders, 5 ordering customers.
    """
    return pl.DataFrame({
        "order_number": ["SO1", "SO1", "SO2", "SO3", "SO4", "SO5", "SO6"],
        "product_key": [10, 30, 20, 10, 99, 40, 30],
        "customer_key": [1, 1, 2, 3, 2, 42, 4],
        "order_date": [
            date(2021, 1, 5),
            date(2021, 1, 5),
            date(2022, 3, 10),
            date(2023, 7, 1),
            date(2023, 8, 15),
            date(2024, 2, 29),
            date(2024, 5, 5),
        ],
        "sales_amount": [
            Decimal("100.00"),
            Decimal("50.00"),
            Decimal("300.00"),
            Decimal("100.00"),
            Decimal("40.00"),
            Decimal("60.00"),
            Decimal("25.00"),
        ],
        "quantity": [1, 2, 1, 1, 4, 3, 1],
        "price": [
            Decimal("100.00"),
            Decimal("25.00"),
            Decimal("300.00"),
            Decimal("100.00"),
            Decimal("10.00"),
            Decimal("20.00"),
            Decimal("25.00"),
        ],
    })


@pytest.fixture
def sample_store(sample_sales_df, sample_customers_df, sample_products_df) -> DatasetStore:
    """Store over the sample gold tables"""
    return DatasetStore({
        "fact_sales": sample_sales_df,
        "dim_customers": sample_customers_df,
        "dim_products": sample_products_df,
    })


@pytest.fixture
def report_engine(sample_store) -> ReportEngine:
    """Report engine over the sample store"""
    return ReportEngine(sample_store)
