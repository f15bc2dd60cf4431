"""
Unit Tests - Request Models and Errors
"""
import pytest
from pydantic import ValidationError

from gold_analytics.engine import (
    JoinSpec,
    MeasureRequest,
    MetricKind,
    MetricSpec,
    ReportRequest,
    SortDirection,
    parse_request,
)
from gold_analytics.errors import InvalidRequestError, NotFoundError, ReportingError


class TestMetricSpec:
    """Tests for metric specifications"""

    def test_default_label(self):
        assert MetricSpec(kind="SUM", field="sales_amount").label == "sum_sales_amount"
        assert MetricSpec(kind="AVG", field="price", name="avg_price").label == "avg_price"

    def test_kind_is_normalized(self):
        assert MetricSpec(kind="count distinct", field="order_number").kind == MetricKind.COUNT_DISTINCT
        assert MetricSpec(kind="sum", field="quantity").kind == MetricKind.SUM

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            MetricSpec(kind="MEDIAN", field="price")

    def test_frozen(self):
        spec = MetricSpec(kind="SUM", field="quantity")

        with pytest.raises(ValidationError):
            spec.field = "price"


class TestReportRequest:
    """Tests for request shape validation"""

    def test_defaults(self):
        request = ReportRequest(metrics=[MetricSpec(kind="COUNT", field="order_number")])

        assert request.table == "fact_sales"
        assert request.group_by == []
        assert request.join is None
        assert request.order is None
        assert request.limit is None

    def test_parse_ranked_request(self):
        request = parse_request(ReportRequest, {
            "metrics": [{"kind": "SUM", "field": "sales_amount", "name": "total_revenue"}],
            "group_by": ["product_name"],
            "join": {"dimension": "dim_products", "key": "product_key"},
            "order": {"field": "total_revenue", "direction": "asc"},
            "limit": 5,
        })

        assert request.order.direction == SortDirection.ASCENDING
        assert request.join.keys == ["product_key"]
        assert request.metric_names == ["total_revenue"]

    def test_composite_join_key(self):
        join = JoinSpec(dimension="dim_prices", key=["store", "sku"])

        assert join.keys == ["store", "sku"]

    @pytest.mark.parametrize("payload", [
        {},
        {"metrics": [{"kind": "MEDIAN", "field": "price"}]},
        {"metrics": [{"kind": "SUM", "field": "quantity"}], "limit": 3},
        {"metrics": [{"kind": "SUM", "field": "quantity"}], "order": {"field": "sum_quantity"}},
        {
            "metrics": [{"kind": "SUM", "field": "quantity"}, {"kind": "SUM", "field": "quantity"}],
        },
        {
            "metrics": [{"kind": "SUM", "field": "quantity", "name": "country"}],
            "group_by": ["country"],
        },
        {
            "metrics": [{"kind": "SUM", "field": "quantity"}],
            "group_by": ["country", "country"],
        },
        {
            "metrics": [{"kind": "SUM", "field": "quantity"}],
            "group_by": ["country"],
            "order": {"field": "revenue"},
        },
        {
            "metrics": [{"kind": "SUM", "field": "quantity"}],
            "group_by": ["country"],
            "order": {"field": "sum_quantity"},
            "limit": -1,
        },
        {
            "metrics": [{"kind": "SUM", "field": "quantity"}],
            "join": {"dimension": "dim_customers", "key": []},
        },
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(InvalidRequestError) as exc_info:
            parse_request(ReportRequest, payload)

        assert exc_info.value.details["errors"]

    def test_order_by_grouping_field(self):
        request = parse_request(ReportRequest, {
            "group_by": ["country"],
            "order": {"field": "country", "direction": "ascending"},
        })

        assert request.metrics == []

    def test_measure_request_needs_name(self):
        with pytest.raises(InvalidRequestError):
            parse_request(MeasureRequest, {"name": "", "metric": {"kind": "SUM", "field": "quantity"}})


class TestErrors:
    """Tests for the error hierarchy"""

    def test_to_dict(self):
        error = NotFoundError("Table 'x' not found", details={"table": "x"})

        assert error.to_dict() == {
            "error": "NotFoundError",
            "message": "Table 'x' not found",
            "details": {"table": "x"},
        }

    def test_hierarchy(self):
        assert issubclass(NotFoundError, ReportingError)
        assert issubclass(InvalidRequestError, ReportingError)
