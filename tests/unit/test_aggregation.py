"""
Unit Tests - Aggregation Engine
"""
from datetime import date
from decimal import Decimal

import pytest
import polars as pl

from gold_analytics.engine import AggregationEngine, GroupedResult, MetricResult, MetricSpec
from gold_analytics.engine.aggregation import years_between
from gold_analytics.errors import EmptyAggregationError, InvalidRequestError


def metric(kind: str, field: str, name: str = None) -> MetricSpec:
    return MetricSpec(kind=kind, field=field, name=name)


class TestScalarMetrics:
    """Tests for ungrouped metrics"""

    def test_sum_is_decimal(self, sample_store, as_of):
        """Monetary sums accumulate as decimals"""
        facts = sample_store.rows("fact_sales")
        result = AggregationEngine(as_of).aggregate(facts, metric("SUM", "sales_amount", "total_sales"))

        assert isinstance(result, MetricResult)
        assert result.name == "total_sales"
        assert isinstance(result.value, Decimal)
        assert result.value == Decimal("675")

    def test_sum_integer_field(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        result = AggregationEngine(as_of).aggregate(facts, metric("SUM", "quantity"))

        assert result.name == "sum_quantity"
        assert result.value == 13

    def test_count_includes_duplicates(self, sample_store, as_of):
        """COUNT counts every non-null occurrence"""
        facts = sample_store.rows("fact_sales")
        engine = AggregationEngine(as_of)

        count, distinct = engine.summarize(facts, [
            metric("COUNT", "order_number"),
            metric("COUNT_DISTINCT", "order_number"),
        ])

        assert count.value == 7
        assert distinct.value == 6
        assert count.value >= distinct.value

    def test_count_equals_distinct_without_multi_line_orders(self, as_of):
        df = pl.DataFrame({"order_number": ["SO1", "SO2", "SO3"]})
        engine = AggregationEngine(as_of)

        count, distinct = engine.summarize(df, [
            metric("COUNT", "order_number"),
            metric("COUNT_DISTINCT", "order_number"),
        ])

        assert count.value == distinct.value == 3

    def test_count_skips_nulls(self, as_of):
        df = pl.DataFrame({"country": ["US", None, "US", "DE"]})
        engine = AggregationEngine(as_of)

        count, distinct = engine.summarize(df, [
            metric("COUNT", "country"),
            metric("COUNT_DISTINCT", "country"),
        ])

        assert count.value == 3
        assert distinct.value == 2

    def test_avg_is_exact_decimal_mean(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        result = AggregationEngine(as_of).aggregate(facts, metric("AVG", "price", "avg_price"))

        assert result.value == Decimal(580) / 7

    def test_avg_ignores_nulls(self, as_of):
        df = pl.DataFrame({"price": [10, None, 20]})
        result = AggregationEngine(as_of).aggregate(df, metric("AVG", "price"))

        assert result.value == Decimal(15)

    def test_avg_on_empty_input_raises(self, sample_store, as_of):
        """AVG over no rows is undefined, never zero"""
        empty = sample_store.rows("fact_sales").head(0)

        with pytest.raises(EmptyAggregationError):
            AggregationEngine(as_of).aggregate(empty, metric("AVG", "price"))

    def test_avg_on_all_null_values_raises(self, as_of):
        df = pl.DataFrame({"price": [None, None]}, schema={"price": pl.Int64})

        with pytest.raises(EmptyAggregationError):
            AggregationEngine(as_of).aggregate(df, metric("AVG", "price"))

    def test_counts_on_empty_input_are_zero(self, sample_store, as_of):
        empty = sample_store.rows("fact_sales").head(0)
        count, distinct = AggregationEngine(as_of).summarize(empty, [
            metric("COUNT", "order_number"),
            metric("COUNT_DISTINCT", "order_number"),
        ])

        assert count.value == 0
        assert distinct.value == 0

    def test_date_range_metrics(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        first, last, span = AggregationEngine(as_of).summarize(facts, [
            metric("MIN", "order_date"),
            metric("MAX", "order_date"),
            metric("YEAR_SPAN", "order_date"),
        ])

        assert first.value == date(2021, 1, 5)
        assert last.value == date(2024, 5, 5)
        assert span.value == 3

    def test_ages_use_single_reference_date(self, sample_store):
        customers = sample_store.rows("dim_customers")
        engine = AggregationEngine(as_of=date(2025, 6, 1))

        youngest, oldest = engine.summarize(customers, [
            metric("MIN_AGE", "birthdate"),
            metric("MAX_AGE", "birthdate"),
        ])

        assert youngest.value == 25
        assert oldest.value == 60
        assert engine.as_of == date(2025, 6, 1)

    def test_unknown_field(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")

        with pytest.raises(InvalidRequestError):
            AggregationEngine(as_of).aggregate(facts, metric("SUM", "discount"))

    def test_sum_of_text_field_is_rejected(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")

        with pytest.raises(InvalidRequestError):
            AggregationEngine(as_of).aggregate(facts, metric("SUM", "order_number"))


class TestGroupedMetrics:
    """Tests for magnitude breakdowns"""

    def test_spec_example(self, as_of):
        """SUM(amount) by product"""
        df = pl.DataFrame({
            "product": ["A", "B", "A"],
            "amount": [100, 300, 50],
        })

        result = AggregationEngine(as_of).aggregate(df, metric("SUM", "amount"), group_by=["product"])

        assert isinstance(result, GroupedResult)
        assert {row.dimensions["product"]: row.metrics["sum_amount"] for row in result} == {
            "A": 150,
            "B": 300,
        }

    def test_null_bucket_sorted_last(self, as_of):
        df = pl.DataFrame({
            "category": [None, "Bikes", "Accessories", None],
            "amount": [5, 10, 20, 7],
        })

        result = AggregationEngine(as_of).aggregate(df, metric("SUM", "amount"), group_by=["category"])

        assert result.values("category") == ["Accessories", "Bikes", None]
        assert result.values("sum_amount") == [20, 10, 12]

    def test_grouping_is_lossless(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        engine = AggregationEngine(as_of)
        spec = metric("SUM", "sales_amount")
        total = engine.aggregate(facts, spec).value

        for field in ["order_number", "product_key", "customer_key", "order_date"]:
            grouped = engine.aggregate(facts, spec, group_by=[field])
            assert grouped.total("sum_sales_amount") == total

    def test_multiple_grouping_fields(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        result = AggregationEngine(as_of).group(
            facts,
            [metric("COUNT", "order_number", "lines")],
            ["customer_key", "order_number"],
        )

        assert result.group_by == ("customer_key", "order_number")
        assert result.rows[0].dimensions == {"customer_key": 1, "order_number": "SO1"}
        assert result.rows[0].metrics == {"lines": 2}
        assert len(result) == 6

    def test_grouped_avg_marks_undefined_groups(self, as_of):
        df = pl.DataFrame({
            "category": ["X", "X", "Y"],
            "cost": [None, None, 5],
        })

        result = AggregationEngine(as_of).aggregate(df, metric("AVG", "cost", "avg_cost"), group_by=["category"])

        x_row, y_row = result.rows
        assert not x_row.is_defined("avg_cost")
        assert x_row.metrics["avg_cost"] is None
        assert y_row.metrics["avg_cost"] == Decimal(5)

    def test_distinct_listing_without_metrics(self, sample_store, as_of):
        products = sample_store.rows("dim_products")
        result = AggregationEngine(as_of).group(products, [], ["category", "subcategory"])

        assert [tuple(row.dimensions.values()) for row in result] == [
            ("Accessories", "Helmets"),
            ("Bikes", "Mountain Bikes"),
            ("Bikes", "Road Bikes"),
            ("Clothing", "Jerseys"),
        ]
        assert result.metric_names == ()

    def test_unknown_grouping_field(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")

        with pytest.raises(InvalidRequestError):
            AggregationEngine(as_of).aggregate(facts, metric("SUM", "quantity"), group_by=["region"])

    def test_to_frame(self, sample_store, as_of):
        facts = sample_store.rows("fact_sales")
        result = AggregationEngine(as_of).aggregate(facts, metric("SUM", "quantity"), group_by=["customer_key"])

        frame = result.to_frame()

        assert frame.columns == ["customer_key", "sum_quantity"]
        assert frame["sum_quantity"].sum() == 13


class TestYearsBetween:
    """Tests for DATEDIFF(year) semantics"""

    def test_counts_calendar_years(self):
        assert years_between(date(2021, 12, 31), date(2022, 1, 1)) == 1
        assert years_between(date(2021, 1, 1), date(2021, 12, 31)) == 0

    def test_negative_when_reversed(self):
        assert years_between(date(2024, 1, 1), date(2020, 6, 1)) == -4
