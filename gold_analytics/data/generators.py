"""
Synthetic Gold Dataset Generator

Generates a realistic gold-layer star schema for development and demos:
- dim_customers with demographics, some of whom never order
- dim_products across a category / subcategory hierarchy
- fact_sales order lines, a few of which reference unknown keys
"""

import random
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import polars as pl
import structlog
from faker import Faker

from gold_analytics.config import get_settings

logger = structlog.get_logger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

CATEGORIES = [
    ("Bikes", ["Mountain Bikes", "Road Bikes", "Touring Bikes"]),
    ("Components", ["Handlebars", "Wheels", "Brakes", "Chains"]),
    ("Clothing", ["Jerseys", "Gloves", "Shorts", "Caps"]),
    ("Accessories", ["Helmets", "Bottles and Cages", "Tires and Tubes", "Locks"]),
]

COUNTRIES = ["United States", "Australia", "United Kingdom", "Germany", "France", "Canada"]
GENDERS = [("Male", 0.48), ("Female", 0.48), (None, 0.04)]

BASE_PRICE = {
    "Bikes": (500, 3500),
    "Components": (20, 400),
    "Clothing": (8, 90),
    "Accessories": (3, 60),
}


def _money(value: float) -> Decimal:
    return Decimal(str(round(value, 2)))


# =============================================================================
# GENERATORS
# =============================================================================

class CustomerGenerator:
    """Generate customer dimension rows"""

    def __init__(self, fake: Faker):
        self.fake = fake

    def generate(self, n: int = 1000) -> pl.DataFrame:
        customers = []
        for key in range(1, n + 1):
            gender = random.choices(
                [g[0] for g in GENDERS],
                weights=[g[1] for g in GENDERS],
            )[0]
            customers.append({
                "customer_key": key,
                "first_name": self.fake.first_name(),
                "last_name": self.fake.last_name(),
                "country": random.choice(COUNTRIES) if random.random() > 0.02 else None,
                "gender": gender,
                "birthdate": self.fake.date_of_birth(minimum_age=18, maximum_age=90),
            })
        return pl.DataFrame(customers, infer_schema_length=None)


class ProductGenerator:
    """Generate product dimension rows"""

    def __init__(self, fake: Faker):
        self.fake = fake

    def generate(self, n: int = 200) -> pl.DataFrame:
        products = []
        for key in range(1, n + 1):
            category, subcategories = random.choice(CATEGORIES)
            subcategory = random.choice(subcategories)
            low, high = BASE_PRICE[category]
            products.append({
                "product_key": key,
                "product_name": f"{self.fake.word().title()} {subcategory} {key:04d}",
                "category": category,
                "subcategory": subcategory,
                "cost": _money(random.uniform(low, high) * 0.6),
            })
        return pl.DataFrame(products, infer_schema_length=None)


class SalesGenerator:
    """
    Generate fact_sales order lines.

    Orders have one to several lines. A share of customers never orders and
    a small fraction of lines reference product or customer keys that are not
    in the dimensions (orphans), exercising left-join semantics.
    """

    def __init__(
        self,
        customers_df: pl.DataFrame,
        products_df: pl.DataFrame,
        ordering_share: float = 0.8,
        orphan_rate: float = 0.01,
    ):
        customer_keys = customers_df["customer_key"].to_list()
        n_ordering = max(1, int(len(customer_keys) * ordering_share))
        self.customer_keys = customer_keys[:n_ordering]
        self.max_customer_key = max(customer_keys)
        self.products = products_df.select(["product_key", "cost"]).to_dicts()
        self.max_product_key = max(p["product_key"] for p in self.products)
        self.orphan_rate = orphan_rate

    def generate(
        self,
        n_orders: int = 5000,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> pl.DataFrame:
        end_date = end_date or date(2024, 12, 31)
        start_date = start_date or end_date - timedelta(days=4 * 365)
        span_days = (end_date - start_date).days

        lines = []
        for order_idx in range(1, n_orders + 1):
            order_number = f"SO{43000 + order_idx}"
            customer_key = random.choice(self.customer_keys)
            if random.random() < self.orphan_rate:
                customer_key = self.max_customer_key + random.randint(1, 50)
            order_date = start_date + timedelta(days=random.randint(0, span_days))

            num_lines = int(np.random.choice([1, 2, 3, 4], p=[0.55, 0.25, 0.15, 0.05]))
            for _ in range(num_lines):
                product = random.choice(self.products)
                product_key = product["product_key"]
                if random.random() < self.orphan_rate:
                    product_key = self.max_product_key + random.randint(1, 50)

                quantity = int(np.random.choice([1, 2, 3], p=[0.85, 0.10, 0.05]))
                price = _money(float(product["cost"]) * random.uniform(1.2, 1.8))
                lines.append({
                    "order_number": order_number,
                    "product_key": product_key,
                    "customer_key": customer_key,
                    "order_date": order_date,
                    "sales_amount": price * quantity,
                    "quantity": quantity,
                    "price": price,
                })

        return pl.DataFrame(lines, infer_schema_length=None)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class GoldDatasetGenerator:
    """Generate and optionally save the three gold tables"""

    def __init__(self, output_dir: Optional[str] = None, seed: int = 42):
        self.output_dir = Path(output_dir or get_settings().store.data_path)
        self.seed = seed

    def generate_all(
        self,
        n_customers: int = 1000,
        n_products: int = 200,
        n_orders: int = 5000,
        save: bool = True,
        file_format: str = "csv",
    ) -> Dict[str, pl.DataFrame]:
        random.seed(self.seed)
        np.random.seed(self.seed)
        fake = Faker()
        fake.seed_instance(self.seed)

        customers_df = CustomerGenerator(fake).generate(n_customers)
        products_df = ProductGenerator(fake).generate(n_products)
        sales_df = SalesGenerator(customers_df, products_df).generate(n_orders)

        data = {
            "dim_customers": customers_df,
            "dim_products": products_df,
            "fact_sales": sales_df,
        }
        logger.info(
            "Gold dataset generated",
            tables={name: len(df) for name, df in data.items()},
        )

        if save:
            self._save_data(data, file_format)
        return data

    def _save_data(self, data: Dict[str, pl.DataFrame], file_format: str) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for name, df in data.items():
            path = self.output_dir / f"{name}.{file_format}"
            if file_format == "parquet":
                df.write_parquet(path)
            else:
                df.write_csv(path)
            logger.info("Table saved", table=name, rows=len(df), path=str(path))


if __name__ == "__main__":
    GoldDatasetGenerator().generate_all()
