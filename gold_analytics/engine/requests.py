"""
Report Request Models

A single parameterized request shape consumed by the report engine. Named
reports are instances of these models rather than bespoke code paths.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from gold_analytics.errors import InvalidRequestError

ModelT = TypeVar("ModelT", bound=BaseModel)


class MetricKind(str, Enum):
    """Supported aggregate functions"""
    SUM = "SUM"
    COUNT = "COUNT"
    COUNT_DISTINCT = "COUNT_DISTINCT"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"
    YEAR_SPAN = "YEAR_SPAN"  # whole years between MIN(field) and MAX(field)
    MIN_AGE = "MIN_AGE"  # whole years between MAX(field) and as_of
    MAX_AGE = "MAX_AGE"  # whole years between MIN(field) and as_of


class SortDirection(str, Enum):
    """Ranking direction"""
    ASCENDING = "ascending"
    DESCENDING = "descending"


DIRECTION_ALIASES = {"asc": "ascending", "desc": "descending"}


def normalize_direction(value: Any) -> Any:
    """Lower-case direction text and resolve the asc/desc aliases"""
    if isinstance(value, str) and not isinstance(value, SortDirection):
        value = value.strip().lower()
        return DIRECTION_ALIASES.get(value, value)
    return value


class MetricSpec(BaseModel):
    """One aggregate over one field, e.g. SUM(sales_amount) AS total_sales"""

    model_config = ConfigDict(frozen=True)

    kind: MetricKind
    field: str = Field(min_length=1)
    name: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper().replace(" ", "_")
        return v

    @property
    def label(self) -> str:
        """Output name of the metric"""
        return self.name or f"{self.kind.value.lower()}_{self.field}"


class JoinSpec(BaseModel):
    """Left join of the base table onto a dimension table"""

    model_config = ConfigDict(frozen=True)

    dimension: str
    key: Union[str, List[str]]

    @property
    def keys(self) -> List[str]:
        return [self.key] if isinstance(self.key, str) else list(self.key)

    @field_validator("key")
    @classmethod
    def validate_key(cls, v: Union[str, List[str]]) -> Union[str, List[str]]:
        if not v:
            raise ValueError("Join key must not be empty")
        return v


class OrderSpec(BaseModel):
    """Ranking directive"""

    model_config = ConfigDict(frozen=True)

    field: str
    direction: SortDirection = SortDirection.DESCENDING

    @field_validator("direction", mode="before")
    @classmethod
    def resolve_direction(cls, v: Any) -> Any:
        return normalize_direction(v)


class ReportRequest(BaseModel):
    """
    Parameterized report request.

    No group_by gives scalar metrics; group_by gives a magnitude breakdown;
    an order directive ranks the groups, optionally truncated by limit.
    Grouping without metrics lists the distinct value combinations.
    """

    model_config = ConfigDict(frozen=True)

    table: str = "fact_sales"
    metrics: List[MetricSpec] = Field(default_factory=list)
    group_by: List[str] = Field(default_factory=list)
    join: Optional[JoinSpec] = None
    order: Optional[OrderSpec] = None
    limit: Optional[int] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_shape(self) -> "ReportRequest":
        if not self.metrics and not self.group_by:
            raise ValueError("A report needs at least one metric or grouping field")

        labels = [m.label for m in self.metrics]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"Duplicate metric names: {duplicates}")

        clashes = sorted(set(labels) & set(self.group_by))
        if clashes:
            raise ValueError(f"Metric names clash with grouping fields: {clashes}")

        if len(set(self.group_by)) != len(self.group_by):
            raise ValueError("Grouping fields must be distinct")

        if self.order is not None:
            if not self.group_by:
                raise ValueError("Ordering requires grouping fields")
            if self.order.field not in labels and self.order.field not in self.group_by:
                raise ValueError(
                    f"Order field '{self.order.field}' is neither a metric nor a grouping field"
                )

        if self.limit is not None and self.order is None:
            raise ValueError("A limit requires an order directive")
        return self

    @property
    def metric_names(self) -> List[str]:
        return [m.label for m in self.metrics]


class MeasureRequest(BaseModel):
    """One named row of a union-compatible measures report"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    table: str = "fact_sales"
    metric: MetricSpec
    join: Optional[JoinSpec] = None


def parse_request(model: Type[ModelT], payload: Dict[str, Any]) -> ModelT:
    """
    Validate a raw payload into a request model.

    Raises:
        InvalidRequestError: payload is malformed
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(
            f"Invalid {model.__name__}",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
