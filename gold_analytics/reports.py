"""
Named Report Definitions

The exploratory report collection over the gold layer, expressed as request
data: database exploration, key metrics, magnitude analysis and ranking.
"""

from datetime import date
from typing import Dict, List, Optional

from gold_analytics.config import get_settings
from gold_analytics.engine import (
    JoinSpec,
    MeasureReport,
    MeasureRequest,
    MetricSpec,
    OrderSpec,
    ReportAssembler,
    ReportEngine,
    ReportRequest,
)
from gold_analytics.engine.assembler import ReportOutput
from gold_analytics.errors import NotFoundError

_store_settings = get_settings().store

FACT_SALES = _store_settings.fact_table
DIM_CUSTOMERS = _store_settings.customers_table
DIM_PRODUCTS = _store_settings.products_table

JOIN_PRODUCTS = JoinSpec(dimension=DIM_PRODUCTS, key="product_key")
JOIN_CUSTOMERS = JoinSpec(dimension=DIM_CUSTOMERS, key="customer_key")

# Dimension-side key: every orphan customer key lands in one null bucket
CUSTOMER_IDENTITY = ["customer_key_dim", "first_name", "last_name"]

TOTAL_REVENUE = MetricSpec(kind="SUM", field="sales_amount", name="total_revenue")


# =============================================================================
# KEY METRICS
# =============================================================================

KEY_METRICS: List[MeasureRequest] = [
    MeasureRequest(
        name="Total Sales",
        table=FACT_SALES,
        metric=MetricSpec(kind="SUM", field="sales_amount", name="total_sales"),
    ),
    MeasureRequest(
        name="Total Quantity",
        table=FACT_SALES,
        metric=MetricSpec(kind="SUM", field="quantity", name="total_quantity"),
    ),
    MeasureRequest(
        name="Average Price",
        table=FACT_SALES,
        metric=MetricSpec(kind="AVG", field="price", name="avg_price"),
    ),
    MeasureRequest(
        name="Total Nr. Orders",
        table=FACT_SALES,
        metric=MetricSpec(kind="COUNT_DISTINCT", field="order_number", name="total_orders"),
    ),
    MeasureRequest(
        name="Total Nr. Products",
        table=DIM_PRODUCTS,
        metric=MetricSpec(kind="COUNT", field="product_name", name="total_products"),
    ),
    MeasureRequest(
        name="Total Nr. Customers",
        table=DIM_CUSTOMERS,
        metric=MetricSpec(kind="COUNT", field="customer_key", name="total_customers"),
    ),
]


# =============================================================================
# NAMED REPORTS
# =============================================================================

REPORTS: Dict[str, ReportRequest] = {
    # Database exploration
    "countries": ReportRequest(
        table=DIM_CUSTOMERS,
        group_by=["country"],
    ),
    "product_hierarchy": ReportRequest(
        table=DIM_PRODUCTS,
        group_by=["category", "subcategory", "product_name"],
    ),
    "order_date_range": ReportRequest(
        table=FACT_SALES,
        metrics=[
            MetricSpec(kind="MIN", field="order_date", name="first_order_date"),
            MetricSpec(kind="MAX", field="order_date", name="last_order_date"),
            MetricSpec(kind="YEAR_SPAN", field="order_date", name="order_range_years"),
        ],
    ),
    "customer_age_range": ReportRequest(
        table=DIM_CUSTOMERS,
        metrics=[
            MetricSpec(kind="MAX", field="birthdate", name="youngest_birthdate"),
            MetricSpec(kind="MIN_AGE", field="birthdate", name="youngest_age"),
            MetricSpec(kind="MIN", field="birthdate", name="oldest_birthdate"),
            MetricSpec(kind="MAX_AGE", field="birthdate", name="oldest_age"),
        ],
    ),

    # Measures exploration
    "ordering_customers": ReportRequest(
        table=FACT_SALES,
        metrics=[MetricSpec(kind="COUNT_DISTINCT", field="customer_key", name="total_customers")],
    ),

    # Magnitude analysis
    "customers_by_country": ReportRequest(
        table=DIM_CUSTOMERS,
        metrics=[MetricSpec(kind="COUNT", field="customer_key", name="total_customers")],
        group_by=["country"],
        order=OrderSpec(field="total_customers", direction="descending"),
    ),
    "customers_by_gender": ReportRequest(
        table=DIM_CUSTOMERS,
        metrics=[MetricSpec(kind="COUNT", field="customer_key", name="total_customers")],
        group_by=["gender"],
        order=OrderSpec(field="total_customers", direction="descending"),
    ),
    "products_by_category": ReportRequest(
        table=DIM_PRODUCTS,
        metrics=[MetricSpec(kind="COUNT", field="product_key", name="total_products")],
        group_by=["category"],
        order=OrderSpec(field="total_products", direction="descending"),
    ),
    "avg_cost_by_category": ReportRequest(
        table=DIM_PRODUCTS,
        metrics=[MetricSpec(kind="AVG", field="cost", name="avg_costs")],
        group_by=["category"],
        order=OrderSpec(field="avg_costs", direction="descending"),
    ),
    "revenue_by_category": ReportRequest(
        table=FACT_SALES,
        metrics=[TOTAL_REVENUE],
        group_by=["category"],
        join=JOIN_PRODUCTS,
        order=OrderSpec(field="total_revenue", direction="descending"),
    ),
    "revenue_by_customer": ReportRequest(
        table=FACT_SALES,
        metrics=[TOTAL_REVENUE],
        group_by=CUSTOMER_IDENTITY,
        join=JOIN_CUSTOMERS,
        order=OrderSpec(field="total_revenue", direction="descending"),
    ),
    "sold_items_by_country": ReportRequest(
        table=FACT_SALES,
        metrics=[MetricSpec(kind="SUM", field="quantity", name="total_sold_items")],
        group_by=["country"],
        join=JOIN_CUSTOMERS,
        order=OrderSpec(field="total_sold_items", direction="descending"),
    ),

    # Ranking analysis
    "top_products_by_revenue": ReportRequest(
        table=FACT_SALES,
        metrics=[TOTAL_REVENUE],
        group_by=["product_name"],
        join=JOIN_PRODUCTS,
        order=OrderSpec(field="total_revenue", direction="descending"),
        limit=5,
    ),
    "bottom_products_by_revenue": ReportRequest(
        table=FACT_SALES,
        metrics=[TOTAL_REVENUE],
        group_by=["product_name"],
        join=JOIN_PRODUCTS,
        order=OrderSpec(field="total_revenue", direction="ascending"),
        limit=5,
    ),
    "top_customers_by_revenue": ReportRequest(
        table=FACT_SALES,
        metrics=[TOTAL_REVENUE],
        group_by=CUSTOMER_IDENTITY,
        join=JOIN_CUSTOMERS,
        order=OrderSpec(field="total_revenue", direction="descending"),
        limit=10,
    ),
    "customers_with_fewest_orders": ReportRequest(
        table=FACT_SALES,
        metrics=[MetricSpec(kind="COUNT_DISTINCT", field="order_number", name="total_orders")],
        group_by=CUSTOMER_IDENTITY,
        join=JOIN_CUSTOMERS,
        order=OrderSpec(field="total_orders", direction="ascending"),
        limit=3,
    ),
}


def get_report(name: str) -> ReportRequest:
    """Look up a named report definition"""
    try:
        return REPORTS[name]
    except KeyError:
        raise NotFoundError(
            f"Report '{name}' not found",
            details={"report": name, "available": sorted(REPORTS)},
        ) from None


def run_report(engine: ReportEngine, name: str, as_of: Optional[date] = None) -> ReportOutput:
    """Execute a named report"""
    return engine.run(get_report(name), as_of=as_of)


def key_metrics_report(engine: ReportEngine, as_of: Optional[date] = None) -> MeasureReport:
    """Union of the headline business measures"""
    return ReportAssembler(engine).assemble(KEY_METRICS, as_of=as_of)
