"""
Unit Tests - Join Resolver
"""
import pytest
import polars as pl

from gold_analytics.engine import JoinResolver
from gold_analytics.engine.joins import joined_columns
from gold_analytics.errors import InvalidRequestError, NotFoundError


class TestJoinResolver:
    """Tests for the left outer join"""

    def test_every_fact_row_kept(self, sample_store):
        """Orphan fact rows survive the join"""
        facts = sample_store.rows("fact_sales")
        products = sample_store.rows("dim_products")

        joined = JoinResolver().join(facts, products, "product_key")

        assert len(joined) == len(facts)
        orphans = joined.filter(pl.col("product_key") == 99)
        assert len(orphans) == 1
        assert orphans["category"].to_list() == [None]
        assert orphans["product_name"].to_list() == [None]
        assert orphans["product_key_dim"].to_list() == [None]
        assert joined["product_key_dim"].null_count() == 1

    def test_row_count_with_no_matches(self, sample_store):
        facts = sample_store.rows("fact_sales")
        empty_dimension = sample_store.rows("dim_customers").head(0)

        joined = JoinResolver().join(facts, empty_dimension, "customer_key")

        assert len(joined) == len(facts)
        assert joined["country"].null_count() == len(facts)

    def test_duplicate_dimension_keys_collapsed(self):
        facts = pl.DataFrame({"product_key": [1, 1, 2], "amount": [10, 20, 30]})
        products = pl.DataFrame({
            "product_key": [1, 1, 2],
            "category": ["Bikes", "Clothing", "Accessories"],
        })

        joined = JoinResolver().join(facts, products, "product_key")

        assert len(joined) == 3
        assert joined.filter(pl.col("product_key") == 1)["category"].to_list() == ["Bikes", "Bikes"]

    def test_composite_key(self):
        facts = pl.DataFrame({
            "store": ["N", "N", "S"],
            "sku": [1, 2, 1],
            "amount": [5, 6, 7],
        })
        prices = pl.DataFrame({
            "store": ["N", "S"],
            "sku": [1, 1],
            "list_price": [9, 8],
        })

        joined = JoinResolver().join(facts, prices, ["store", "sku"])

        assert len(joined) == 3
        assert joined.sort(["store", "sku"])["list_price"].to_list() == [9, None, 8]

    def test_colliding_columns_get_suffix(self):
        facts = pl.DataFrame({"product_key": [1], "name": ["line"]})
        products = pl.DataFrame({"product_key": [1], "name": ["Road-150"]})

        joined = JoinResolver().join(facts, products, "product_key")

        assert joined.columns == joined_columns(facts.columns, products.columns, "product_key")
        assert joined.columns == ["product_key", "name", "product_key_dim", "name_dim"]
        assert joined["name_dim"].to_list() == ["Road-150"]

    def test_mismatched_key_dtypes(self):
        facts = pl.DataFrame({"product_key": [1, 2]}, schema={"product_key": pl.Int32})
        products = pl.DataFrame({"product_key": [1], "category": ["Bikes"]})

        joined = JoinResolver().join(facts, products, "product_key")

        assert joined["category"].to_list() == ["Bikes", None]

    def test_missing_key(self, sample_store):
        facts = sample_store.rows("fact_sales")
        products = sample_store.rows("dim_products")

        with pytest.raises(NotFoundError):
            JoinResolver().join(facts, products, "sku")

    def test_orphan_keys_share_one_null_key(self):
        facts = pl.DataFrame({"customer_key": [1, 42, 43], "amount": [10, 20, 30]})
        customers = pl.DataFrame({"customer_key": [1], "first_name": ["Jon"]})

        joined = JoinResolver().join(facts, customers, "customer_key")

        assert joined["customer_key"].to_list() == [1, 42, 43]
        assert joined["customer_key_dim"].to_list() == [1, None, None]
        assert joined.select(["customer_key_dim", "first_name"]).unique().height == 2

    def test_numeric_text_keys_are_cast(self):
        facts = pl.DataFrame({"product_key": [1, 2]})
        products = pl.DataFrame({"product_key": ["1", "2"], "category": ["Bikes", "Helmets"]})

        joined = JoinResolver().join(facts, products, "product_key")

        assert joined["category"].to_list() == ["Bikes", "Helmets"]
        assert joined.schema["product_key_dim"] == facts.schema["product_key"]

    def test_incomparable_key_dtypes(self):
        facts = pl.DataFrame({"product_key": [1, 2]})
        products = pl.DataFrame({"product_key": ["A", "B"], "category": ["Bikes", "Helmets"]})

        with pytest.raises(InvalidRequestError) as exc_info:
            JoinResolver().join(facts, products, "product_key")

        assert exc_info.value.details["keys"] == ["product_key"]
        assert exc_info.value.details["dimension_types"] == ["String"]
