"""
Ranking Engine

Orders grouped rows by a metric (or grouping field) and numbers them with
row-number semantics: every row gets a distinct sequential rank, ties
included. Ties keep the incoming order through a stable sort, and the
incoming grouped order is grouping values ascending with nulls last, so
results are reproducible for identical input. Rows whose sort value is
undefined (null) always rank after every defined row.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

import polars as pl
import structlog

from gold_analytics.engine.aggregation import GroupedResult, GroupedRow, records_frame
from gold_analytics.engine.requests import SortDirection, normalize_direction
from gold_analytics.errors import InvalidRequestError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RankedRow:
    """Grouped row with its sequential rank"""
    rank: int
    dimensions: Dict[str, Any]
    metrics: Dict[str, Any]

    def get(self, field: str) -> Any:
        if field in self.metrics:
            return self.metrics[field]
        return self.dimensions[field]

    def to_dict(self) -> Dict[str, Any]:
        return {**self.dimensions, **self.metrics, "rank": self.rank}


@dataclass(frozen=True)
class RankedResult:
    """Leaderboard truncated to limit rows"""
    order_by: str
    direction: SortDirection
    limit: Optional[int]
    group_by: Tuple[str, ...]
    metric_names: Tuple[str, ...]
    rows: Tuple[RankedRow, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[RankedRow]:
        return iter(self.rows)

    @property
    def columns(self) -> List[str]:
        return list(self.group_by) + list(self.metric_names) + ["rank"]

    def values(self, field: str) -> List[Any]:
        return [row.get(field) for row in self.rows]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [row.to_dict() for row in self.rows]

    def to_frame(self) -> pl.DataFrame:
        return records_frame(self.to_dicts(), self.columns)


RankInput = Union[GroupedResult, RankedResult, Iterable[Union[GroupedRow, RankedRow]]]


class RankingEngine:
    """
    Stable sort plus enumerate.

    Example:
        ranking = RankingEngine()
        top5 = ranking.rank(revenue_by_product, "total_revenue", SortDirection.DESCENDING, limit=5)
    """

    def rank(
        self,
        grouped_rows: RankInput,
        order_by: str,
        direction: Union[SortDirection, str] = SortDirection.DESCENDING,
        limit: Optional[int] = None,
    ) -> RankedResult:
        try:
            direction = SortDirection(normalize_direction(direction))
        except ValueError:
            raise InvalidRequestError(
                f"Unknown sort direction '{direction}'",
                details={"direction": str(direction), "allowed": [d.value for d in SortDirection]},
            ) from None
        if limit is not None and limit < 0:
            raise InvalidRequestError("Limit must be non-negative", details={"limit": limit})

        rows = list(grouped_rows)
        group_by, metric_names = self._shape(grouped_rows, rows)

        if rows and order_by not in rows[0].metrics and order_by not in rows[0].dimensions:
            raise InvalidRequestError(
                f"Unknown order field '{order_by}'",
                details={"field": order_by, "available": group_by + metric_names},
            )

        defined = [row for row in rows if row.get(order_by) is not None]
        undefined = [row for row in rows if row.get(order_by) is None]

        # sorted() keeps equal keys in input order, also with reverse=True
        ordered = sorted(
            defined,
            key=lambda row: row.get(order_by),
            reverse=direction == SortDirection.DESCENDING,
        ) + undefined

        if limit is not None:
            ordered = ordered[:limit]

        ranked = tuple(
            RankedRow(rank=position, dimensions=dict(row.dimensions), metrics=dict(row.metrics))
            for position, row in enumerate(ordered, start=1)
        )

        logger.debug(
            "Rows ranked",
            order_by=order_by,
            direction=direction.value,
            limit=limit,
            input_rows=len(rows),
            output_rows=len(ranked),
        )
        return RankedResult(
            order_by=order_by,
            direction=direction,
            limit=limit,
            group_by=tuple(group_by),
            metric_names=tuple(metric_names),
            rows=ranked,
        )

    @staticmethod
    def _shape(source: RankInput, rows: List[Any]) -> Tuple[List[str], List[str]]:
        if isinstance(source, (GroupedResult, RankedResult)):
            return list(source.group_by), list(source.metric_names)
        if rows:
            return list(rows[0].dimensions), list(rows[0].metrics)
        return [], []
