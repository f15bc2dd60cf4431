"""
Report API Endpoints

REST API over the reporting engine: named reports, the key metrics report,
ad-hoc report requests and catalog metadata.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
import structlog

from gold_analytics.engine import GroupedResult, RankedResult, ReportEngine, ReportRequest
from gold_analytics.engine.assembler import ReportOutput
from gold_analytics.errors import NotFoundError
from gold_analytics.reports import KEY_METRICS, REPORTS, get_report, key_metrics_report

router = APIRouter()
logger = structlog.get_logger(__name__)


class ReportResponse(BaseModel):
    """Scalar, grouped or ranked report"""
    report: Optional[str]
    result_type: str
    as_of: date
    columns: List[str]
    rows: List[Dict[str, Any]]


class MeasureValue(BaseModel):
    """Single row of the measures report"""
    measure_name: str
    measure_value: float


class MeasuresResponse(BaseModel):
    """Union-compatible measures report"""
    as_of: date
    rows: List[MeasureValue]


class ReportListing(BaseModel):
    """Available named reports"""
    reports: List[str]
    key_metrics: List[str]


class ColumnResponse(BaseModel):
    """Catalog column metadata"""
    name: str
    semantic_type: str


def get_engine(request: Request) -> ReportEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise NotFoundError("No dataset store is loaded")
    return engine


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _json_rows(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [{key: _json_value(value) for key, value in row.items()} for row in rows]


def _to_response(result: ReportOutput, as_of: date, report: Optional[str] = None) -> ReportResponse:
    if isinstance(result, RankedResult):
        result_type, columns, rows = "ranked", result.columns, result.to_dicts()
    elif isinstance(result, GroupedResult):
        result_type, columns, rows = "grouped", result.columns, result.to_dicts()
    else:
        result_type = "scalar"
        columns = ["name", "value"]
        rows = [metric.to_dict() for metric in result]

    return ReportResponse(
        report=report,
        result_type=result_type,
        as_of=as_of,
        columns=columns,
        rows=_json_rows(rows),
    )


@router.get("", response_model=ReportListing)
def list_reports() -> ReportListing:
    """List the named reports"""
    return ReportListing(
        reports=sorted(REPORTS),
        key_metrics=[measure.name for measure in KEY_METRICS],
    )


@router.get("/key-metrics", response_model=MeasuresResponse)
def get_key_metrics(
    as_of: Optional[date] = Query(None, description="Reference date, defaults to today"),
    engine: ReportEngine = Depends(get_engine),
) -> MeasuresResponse:
    """Headline business measures as one (measure_name, measure_value) table"""
    report = key_metrics_report(engine, as_of=as_of)
    return MeasuresResponse(
        as_of=report.as_of,
        rows=[
            MeasureValue(measure_name=row.measure_name, measure_value=float(row.measure_value))
            for row in report
        ],
    )


@router.post("/run", response_model=ReportResponse)
def run_ad_hoc_report(
    report_request: ReportRequest,
    as_of: Optional[date] = Query(None, description="Reference date, defaults to today"),
    engine: ReportEngine = Depends(get_engine),
) -> ReportResponse:
    """Execute an ad-hoc report request"""
    as_of = as_of or date.today()
    logger.info("Ad-hoc report requested", table=report_request.table)
    return _to_response(engine.run(report_request, as_of=as_of), as_of)


@router.get("/{name}", response_model=ReportResponse)
def run_named_report(
    name: str,
    as_of: Optional[date] = Query(None, description="Reference date, defaults to today"),
    engine: ReportEngine = Depends(get_engine),
) -> ReportResponse:
    """Execute a named report"""
    as_of = as_of or date.today()
    return _to_response(engine.run(get_report(name), as_of=as_of), as_of, report=name)


catalog_router = APIRouter()


@catalog_router.get("/tables", response_model=List[str])
def list_tables(engine: ReportEngine = Depends(get_engine)) -> List[str]:
    """Tables known to the schema catalog"""
    return engine.catalog.tables()


@catalog_router.get("/tables/{table}", response_model=List[ColumnResponse])
def describe_table(table: str, engine: ReportEngine = Depends(get_engine)) -> List[ColumnResponse]:
    """Ordered column metadata of one table"""
    if table not in engine.catalog.tables():
        raise NotFoundError(f"Table '{table}' not found", details={"table": table})
    return [
        ColumnResponse(name=col.name, semantic_type=col.semantic_type.value)
        for col in engine.catalog.columns(table)
    ]
