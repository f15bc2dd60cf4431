"""
Reporting Engine Module
"""
from .aggregation import AggregationEngine, GroupedResult, GroupedRow, MetricResult
from .assembler import MeasureReport, MeasureRow, ReportAssembler, ReportEngine
from .catalog import ColumnInfo, SchemaCatalog, SemanticType, StoreCatalog
from .joins import JoinResolver
from .ranking import RankedResult, RankedRow, RankingEngine
from .requests import (
    JoinSpec,
    MeasureRequest,
    MetricKind,
    MetricSpec,
    OrderSpec,
    ReportRequest,
    SortDirection,
    parse_request,
)
from .store import DatasetStore

__all__ = [
    "AggregationEngine",
    "GroupedResult",
    "GroupedRow",
    "MetricResult",
    "MeasureReport",
    "MeasureRow",
    "ReportAssembler",
    "ReportEngine",
    "ColumnInfo",
    "SchemaCatalog",
    "SemanticType",
    "StoreCatalog",
    "JoinResolver",
    "RankedResult",
    "RankedRow",
    "RankingEngine",
    "JoinSpec",
    "MeasureRequest",
    "MetricKind",
    "MetricSpec",
    "OrderSpec",
    "ReportRequest",
    "SortDirection",
    "parse_request",
    "DatasetStore",
]
