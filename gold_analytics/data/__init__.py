"""
Data Generation Module
"""
from .generators import GoldDatasetGenerator, CustomerGenerator, ProductGenerator, SalesGenerator

__all__ = [
    "GoldDatasetGenerator",
    "CustomerGenerator",
    "ProductGenerator",
    "SalesGenerator",
]
