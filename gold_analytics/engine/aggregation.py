"""
Aggregation Engine

Reduces fact or dimension rows to scalar metrics or to one row per distinct
combination of grouping values.

Semantics:
- SUM ignores nulls; monetary columns are decimals, so sums never drift
- COUNT counts non-null values including duplicates
- COUNT_DISTINCT counts distinct non-null values
- AVG is decimal sum / count over non-null values and is undefined on empty
  input (EmptyAggregationError for scalars, None inside a group)
- Date differences use DATEDIFF(year) semantics against one as_of date
  captured when the engine is created
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import polars as pl
import structlog

from gold_analytics.engine.catalog import SemanticType, semantic_type_of
from gold_analytics.engine.requests import MetricKind, MetricSpec
from gold_analytics.errors import EmptyAggregationError, InvalidRequestError

logger = structlog.get_logger(__name__)

NUMERIC_KINDS = {MetricKind.SUM, MetricKind.AVG}
ORDERABLE_KINDS = {MetricKind.MIN, MetricKind.MAX}
DATE_KINDS = {MetricKind.YEAR_SPAN, MetricKind.MIN_AGE, MetricKind.MAX_AGE}

# Kinds whose value is undefined when no non-null value was aggregated
UNDEFINED_ON_EMPTY = {MetricKind.AVG} | ORDERABLE_KINDS | DATE_KINDS


def years_between(start: date, end: date) -> int:
    """Whole calendar years from start to end, DATEDIFF(year, start, end)"""
    return end.year - start.year


def to_decimal(value: Any) -> Decimal:
    """Exact decimal view of a numeric value"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def validate_metric(spec: MetricSpec, column_types: Mapping[str, SemanticType]) -> None:
    """
    Check that a metric references a known column of a suitable type.

    Raises:
        InvalidRequestError: unknown field or kind not applicable to its type
    """
    if spec.field not in column_types:
        raise InvalidRequestError(
            f"Unknown field '{spec.field}' for metric '{spec.label}'",
            details={"field": spec.field, "available": list(column_types)},
        )

    column_type = column_types[spec.field]
    if spec.kind in NUMERIC_KINDS and not column_type.is_numeric:
        reason = "a numeric field"
    elif spec.kind in ORDERABLE_KINDS and not column_type.is_orderable:
        reason = "an orderable field"
    elif spec.kind in DATE_KINDS and column_type != SemanticType.DATE:
        reason = "a date field"
    else:
        return

    raise InvalidRequestError(
        f"{spec.kind.value} requires {reason}, '{spec.field}' is {column_type.value}",
        details={"field": spec.field, "kind": spec.kind.value, "type": column_type.value},
    )


def produces_number(spec: MetricSpec, column_type: SemanticType) -> bool:
    """Whether the metric's value is a number rather than e.g. a date"""
    if spec.kind in ORDERABLE_KINDS:
        return column_type.is_numeric
    return True


@dataclass(frozen=True)
class MetricResult:
    """Named scalar metric"""
    name: str
    kind: MetricKind
    field: str
    value: Any

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class GroupedRow:
    """One distinct combination of grouping values with its metrics"""
    dimensions: Dict[str, Any]
    metrics: Dict[str, Any]

    def get(self, field: str) -> Any:
        """Value of a metric or grouping field"""
        if field in self.metrics:
            return self.metrics[field]
        return self.dimensions[field]

    def is_defined(self, metric: str) -> bool:
        return self.metrics[metric] is not None

    def to_dict(self) -> Dict[str, Any]:
        return {**self.dimensions, **self.metrics}


@dataclass(frozen=True)
class GroupedResult:
    """Grouped metrics ordered by grouping values ascending, nulls last"""
    group_by: Tuple[str, ...]
    metric_names: Tuple[str, ...]
    rows: Tuple[GroupedRow, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[GroupedRow]:
        return iter(self.rows)

    @property
    def columns(self) -> List[str]:
        return list(self.group_by) + list(self.metric_names)

    def values(self, field: str) -> List[Any]:
        return [row.get(field) for row in self.rows]

    def total(self, metric: str) -> Any:
        """Sum of a metric over all groups, skipping undefined values"""
        return sum((v for v in self.values(metric) if v is not None), 0)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self.rows]

    def to_frame(self) -> pl.DataFrame:
        return records_frame(self.to_dicts(), self.columns)


def records_frame(records: List[Dict[str, Any]], columns: Sequence[str]) -> pl.DataFrame:
    if not records:
        return pl.DataFrame({col: [] for col in columns})
    return pl.from_dicts(records, infer_schema_length=None).select(list(columns))


def _helper_name(label: str, part: str) -> str:
    return f"__{label}__{part}"


class AggregationEngine:
    """
    Scalar and grouped metric computation over polars DataFrames.

    The as_of date used by age metrics is fixed at construction, so one
    engine instance gives deterministic results for a whole report run.

    Example:
        engine = AggregationEngine(as_of=date(2025, 1, 1))
        total = engine.aggregate(facts, MetricSpec(kind="SUM", field="sales_amount"))
        by_category = engine.aggregate(joined, spec, group_by=["category"])
    """

    def __init__(self, as_of: Optional[date] = None):
        self.as_of = as_of or date.today()

    def aggregate(
        self,
        rows: pl.DataFrame,
        metric: MetricSpec,
        group_by: Optional[Sequence[str]] = None,
    ) -> Union[MetricResult, GroupedResult]:
        """Compute one metric, grouped when group_by is non-empty"""
        if group_by:
            return self.group(rows, [metric], group_by)
        return self.summarize(rows, [metric])[0]

    def summarize(self, rows: pl.DataFrame, metrics: Sequence[MetricSpec]) -> List[MetricResult]:
        """
        Compute scalar metrics over all rows.

        Raises:
            InvalidRequestError: unknown field or unsupported kind
            EmptyAggregationError: an undefined-on-empty metric saw no values
        """
        self._validate(rows, metrics, [])
        if not metrics:
            return []

        reduced = rows.select(self._expressions(metrics)).row(0, named=True)

        results = []
        for spec in metrics:
            value = self._finalize(spec, reduced)
            if value is None and spec.kind in UNDEFINED_ON_EMPTY:
                raise EmptyAggregationError(
                    f"{spec.kind.value}({spec.field}) is undefined over zero values",
                    details={"metric": spec.label, "rows": len(rows)},
                )
            results.append(MetricResult(
                name=spec.label,
                kind=spec.kind,
                field=spec.field,
                value=value,
            ))

        logger.debug("Metrics summarized", rows=len(rows), metrics=[m.label for m in metrics])
        return results

    def group(
        self,
        rows: pl.DataFrame,
        metrics: Sequence[MetricSpec],
        group_by: Sequence[str],
    ) -> GroupedResult:
        """
        Compute metrics per distinct combination of grouping values.

        Null grouping values form their own bucket. Output is sorted by the
        grouping values ascending with nulls last; that order is the stable
        secondary order used by ranking.
        """
        keys = list(group_by)
        if not keys:
            raise InvalidRequestError("Grouping requires at least one field")
        self._validate(rows, metrics, keys)

        if metrics:
            grouped = rows.group_by(keys).agg(self._expressions(metrics))
        else:
            grouped = rows.select(keys).unique()
        grouped = grouped.sort(keys, nulls_last=True)

        result_rows = []
        for reduced in grouped.iter_rows(named=True):
            result_rows.append(GroupedRow(
                dimensions={key: reduced[key] for key in keys},
                metrics={spec.label: self._finalize(spec, reduced) for spec in metrics},
            ))

        logger.debug(
            "Metrics grouped",
            rows=len(rows),
            group_by=keys,
            groups=len(result_rows),
        )
        return GroupedResult(
            group_by=tuple(keys),
            metric_names=tuple(spec.label for spec in metrics),
            rows=tuple(result_rows),
        )

    def _validate(
        self,
        rows: pl.DataFrame,
        metrics: Sequence[MetricSpec],
        group_by: Sequence[str],
    ) -> None:
        column_types = {name: semantic_type_of(dtype) for name, dtype in rows.schema.items()}
        for field in group_by:
            if field not in column_types:
                raise InvalidRequestError(
                    f"Unknown grouping field '{field}'",
                    details={"field": field, "available": list(column_types)},
                )
        for spec in metrics:
            validate_metric(spec, column_types)

    def _expressions(self, metrics: Sequence[MetricSpec]) -> List[pl.Expr]:
        exprs: List[pl.Expr] = []
        for spec in metrics:
            col = pl.col(spec.field)
            label = spec.label
            if spec.kind == MetricKind.SUM:
                exprs.append(col.sum().alias(label))
            elif spec.kind == MetricKind.COUNT:
                exprs.append(col.is_not_null().sum().alias(label))
            elif spec.kind == MetricKind.COUNT_DISTINCT:
                exprs.append(col.drop_nulls().n_unique().alias(label))
            elif spec.kind == MetricKind.AVG:
                exprs.append(col.sum().alias(_helper_name(label, "sum")))
                exprs.append(col.is_not_null().sum().alias(_helper_name(label, "count")))
            elif spec.kind in ORDERABLE_KINDS or spec.kind in DATE_KINDS:
                exprs.append(col.min().alias(_helper_name(label, "min")))
                exprs.append(col.max().alias(_helper_name(label, "max")))
            else:
                raise InvalidRequestError(f"Unsupported metric kind '{spec.kind}'")
        return exprs

    def _finalize(self, spec: MetricSpec, reduced: Mapping[str, Any]) -> Any:
        label = spec.label
        if spec.kind == MetricKind.SUM:
            value = reduced[label]
            return value if value is not None else 0
        if spec.kind in (MetricKind.COUNT, MetricKind.COUNT_DISTINCT):
            return int(reduced[label] or 0)
        if spec.kind == MetricKind.AVG:
            count = int(reduced[_helper_name(label, "count")] or 0)
            if count == 0:
                return None
            return to_decimal(reduced[_helper_name(label, "sum")]) / count

        low = reduced[_helper_name(label, "min")]
        high = reduced[_helper_name(label, "max")]
        if spec.kind == MetricKind.MIN:
            return low
        if spec.kind == MetricKind.MAX:
            return high
        if low is None or high is None:
            return None
        if spec.kind == MetricKind.YEAR_SPAN:
            return years_between(low, high)
        if spec.kind == MetricKind.MIN_AGE:
            return years_between(high, self.as_of)
        return years_between(low, self.as_of)
