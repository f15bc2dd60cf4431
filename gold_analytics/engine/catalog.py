"""
Schema Catalog

The catalog is an external collaborator: anything that can list tables and
their ordered (column, semantic type) metadata. StoreCatalog adapts the
DataFrame schemas of a DatasetStore to that contract.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Protocol

import polars as pl

from gold_analytics.engine.store import DatasetStore


class SemanticType(str, Enum):
    """Column types as seen by request validation"""
    INTEGER = "integer"
    DECIMAL = "decimal"
    FLOAT = "float"
    STRING = "string"
    DATE = "date"
    BOOLEAN = "boolean"
    OTHER = "other"

    @property
    def is_numeric(self) -> bool:
        return self in (SemanticType.INTEGER, SemanticType.DECIMAL, SemanticType.FLOAT)

    @property
    def is_orderable(self) -> bool:
        return self.is_numeric or self in (SemanticType.STRING, SemanticType.DATE)


@dataclass(frozen=True)
class ColumnInfo:
    """Single column metadata entry"""
    name: str
    semantic_type: SemanticType


class SchemaCatalog(Protocol):
    """Table and column metadata provider"""

    def tables(self) -> List[str]:
        ...

    def columns(self, table: str) -> List[ColumnInfo]:
        ...


def semantic_type_of(dtype: pl.DataType) -> SemanticType:
    """Map a polars dtype onto a SemanticType"""
    if dtype.is_integer():
        return SemanticType.INTEGER
    if dtype.is_decimal():
        return SemanticType.DECIMAL
    if dtype.is_float():
        return SemanticType.FLOAT
    if dtype.is_temporal():
        return SemanticType.DATE
    if dtype == pl.String or dtype == pl.Categorical:
        return SemanticType.STRING
    if dtype == pl.Boolean:
        return SemanticType.BOOLEAN
    return SemanticType.OTHER


class StoreCatalog:
    """SchemaCatalog backed by the schemas of a DatasetStore"""

    def __init__(self, store: DatasetStore):
        self.store = store

    def tables(self) -> List[str]:
        return self.store.tables()

    def columns(self, table: str) -> List[ColumnInfo]:
        schema = self.store.rows(table).schema
        return [
            ColumnInfo(name=name, semantic_type=semantic_type_of(dtype))
            for name, dtype in schema.items()
        ]


def column_types(catalog: SchemaCatalog, table: str) -> Dict[str, SemanticType]:
    """Ordered column name -> semantic type mapping for a table"""
    return {col.name: col.semantic_type for col in catalog.columns(table)}
