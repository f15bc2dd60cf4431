"""
Gold Analytics Reporting Engine

Read-only metrics, magnitude breakdowns and leaderboards over the gold
star schema (fact_sales, dim_customers, dim_products).
"""

__version__ = "1.0.0"
