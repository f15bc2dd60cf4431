"""
Report Execution and Assembly

ReportEngine runs one ReportRequest end to end:
validate -> join -> aggregate -> rank.

ReportAssembler concatenates independently computed scalar measures into a
single union-compatible (measure_name, measure_value) report, the shape of
the "key metrics" report.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import polars as pl
import structlog

from gold_analytics.engine.aggregation import (
    AggregationEngine,
    GroupedResult,
    MetricResult,
    produces_number,
    to_decimal,
    validate_metric,
)
from gold_analytics.engine.catalog import SchemaCatalog, SemanticType, StoreCatalog, column_types
from gold_analytics.engine.joins import JoinResolver, joined_columns
from gold_analytics.engine.ranking import RankedResult, RankingEngine
from gold_analytics.engine.requests import JoinSpec, MeasureRequest, ReportRequest
from gold_analytics.engine.store import DatasetStore
from gold_analytics.errors import InvalidRequestError, NotFoundError

logger = structlog.get_logger(__name__)

ReportOutput = Union[List[MetricResult], GroupedResult, RankedResult]


@dataclass(frozen=True)
class MeasureRow:
    """Uniform row of a measures report"""
    measure_name: str
    measure_value: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"measure_name": self.measure_name, "measure_value": self.measure_value}


@dataclass(frozen=True)
class MeasureReport:
    """Measures in caller-declared order"""
    rows: Tuple[MeasureRow, ...]
    as_of: date

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[MeasureRow]:
        return iter(self.rows)

    def value(self, measure_name: str) -> Decimal:
        """Value of the first measure with the given name"""
        for row in self.rows:
            if row.measure_name == measure_name:
                return row.measure_value
        raise KeyError(measure_name)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self.rows]

    def to_frame(self) -> pl.DataFrame:
        if not self.rows:
            return pl.DataFrame(schema={"measure_name": pl.String, "measure_value": pl.Decimal(38, 10)})
        return pl.DataFrame({
            "measure_name": [row.measure_name for row in self.rows],
            "measure_value": [row.measure_value for row in self.rows],
        })


class ReportEngine:
    """
    Executes parameterized report requests against a DatasetStore.

    Requests are validated against the schema catalog before any data is
    read. The as_of date is captured once per run and shared by every
    metric in it.

    Example:
        engine = ReportEngine(store)
        top5 = engine.run(ReportRequest(
            metrics=[MetricSpec(kind="SUM", field="sales_amount", name="total_revenue")],
            group_by=["product_name"],
            join=JoinSpec(dimension="dim_products", key="product_key"),
            order=OrderSpec(field="total_revenue", direction="descending"),
            limit=5,
        ))
    """

    def __init__(
        self,
        store: DatasetStore,
        catalog: Optional[SchemaCatalog] = None,
        resolver: Optional[JoinResolver] = None,
        ranking: Optional[RankingEngine] = None,
    ):
        self.store = store
        self.catalog = catalog or StoreCatalog(store)
        self.resolver = resolver or JoinResolver()
        self.ranking = ranking or RankingEngine()

    def column_types(self, table: str, join: Optional[JoinSpec] = None) -> Dict[str, SemanticType]:
        """
        Columns visible to a request on table, after the optional join.

        Raises:
            NotFoundError: table or dimension unknown to the catalog
            InvalidRequestError: join key missing on either side
        """
        types = self._table_types(table)
        if join is None:
            return types

        dimension_types = self._table_types(join.dimension)
        for side, side_types in ((table, types), (join.dimension, dimension_types)):
            missing = [k for k in join.keys if k not in side_types]
            if missing:
                raise InvalidRequestError(
                    f"Join key {missing} not found in '{side}'",
                    details={"table": side, "missing": missing},
                )

        names = joined_columns(list(types), list(dimension_types), join.keys)
        joined = dict(types)
        for name, source in zip(names[len(types):], dimension_types):
            joined[name] = dimension_types[source]
        return joined

    def validate(self, request: ReportRequest) -> Dict[str, SemanticType]:
        types = self.column_types(request.table, request.join)
        for field in request.group_by:
            if field not in types:
                raise InvalidRequestError(
                    f"Unknown grouping field '{field}'",
                    details={"field": field, "available": list(types)},
                )
        for spec in request.metrics:
            validate_metric(spec, types)
        return types

    def prepare(self, table: str, join: Optional[JoinSpec] = None) -> pl.DataFrame:
        """Base table rows, left-joined onto the dimension when requested"""
        rows = self.store.rows(table)
        if join is not None:
            rows = self.resolver.join(rows, self.store.rows(join.dimension), join.keys)
        return rows

    def run(self, request: ReportRequest, as_of: Optional[date] = None) -> ReportOutput:
        """
        Execute a report request.

        Returns:
            List of MetricResult when there is no grouping, a RankedResult
            when an order directive is given, a GroupedResult otherwise
        """
        self.validate(request)
        aggregator = AggregationEngine(as_of or date.today())
        rows = self.prepare(request.table, request.join)

        if not request.group_by:
            result: ReportOutput = aggregator.summarize(rows, request.metrics)
        else:
            result = aggregator.group(rows, request.metrics, request.group_by)
            if request.order is not None:
                result = self.ranking.rank(
                    result,
                    order_by=request.order.field,
                    direction=request.order.direction,
                    limit=request.limit,
                )

        logger.info(
            "Report executed",
            table=request.table,
            join=request.join.dimension if request.join else None,
            group_by=request.group_by,
            metrics=request.metric_names,
            input_rows=len(rows),
            output_rows=len(result),
            as_of=str(aggregator.as_of),
        )
        return result

    def _table_types(self, table: str) -> Dict[str, SemanticType]:
        if table not in self.catalog.tables():
            raise NotFoundError(
                f"Table '{table}' not found",
                details={"table": table, "available": self.catalog.tables()},
            )
        return column_types(self.catalog, table)


class ReportAssembler:
    """
    Builds union-compatible measures reports.

    Every request is validated before any is executed, so a report either
    fully succeeds or fails as a whole.

    Example:
        assembler = ReportAssembler(ReportEngine(store))
        report = assembler.assemble(KEY_METRICS)
    """

    def __init__(self, engine: ReportEngine):
        self.engine = engine

    def assemble(
        self,
        named_metric_requests: Sequence[MeasureRequest],
        as_of: Optional[date] = None,
    ) -> MeasureReport:
        for request in named_metric_requests:
            self._validate(request)

        aggregator = AggregationEngine(as_of or date.today())
        rows = []
        for request in named_metric_requests:
            source = self.engine.prepare(request.table, request.join)
            metric = aggregator.summarize(source, [request.metric])[0]
            rows.append(MeasureRow(
                measure_name=request.name,
                measure_value=to_decimal(metric.value),
            ))

        logger.info(
            "Measures report assembled",
            measures=[row.measure_name for row in rows],
            as_of=str(aggregator.as_of),
        )
        return MeasureReport(rows=tuple(rows), as_of=aggregator.as_of)

    def _validate(self, request: MeasureRequest) -> None:
        types = self.engine.column_types(request.table, request.join)
        validate_metric(request.metric, types)
        if not produces_number(request.metric, types[request.metric.field]):
            raise InvalidRequestError(
                f"Measure '{request.name}' does not produce a number",
                details={
                    "measure": request.name,
                    "kind": request.metric.kind.value,
                    "field": request.metric.field,
                },
            )
