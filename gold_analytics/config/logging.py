"""
Logging Configuration for the Gold Analytics Reporting Engine

structlog on top of the stdlib logging module. Engine events carry report
values (decimal revenue, order dates, grouping keys) as bound fields, which
are rendered as plain strings so the JSON output stays exact.
"""

import logging
import sys
from datetime import date
from decimal import Decimal
from typing import Any, List, MutableMapping, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from gold_analytics.config.settings import get_settings

# Third-party loggers that are too chatty at DEBUG
QUIET_LOGGERS = ("faker", "faker.factory", "asyncio")
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _report_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _report_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_report_value(v) for v in value]
    return value


def render_report_values(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Decimals and dates in event fields become strings, nested ones too"""
    for key, value in event_dict.items():
        event_dict[key] = _report_value(value)
    return event_dict


def _shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        render_report_values,
    ]


def configure_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Handler:
    """
    Configure structured logging for the engine and the HTTP wrapper.

    Arguments override the monitoring settings (LOG_LEVEL and friends).

    Returns:
        The stdout handler installed on the root logger
    """
    monitoring = get_settings().monitoring
    level = (log_level or monitoring.log_level).upper()
    fmt = (log_format or monitoring.log_format).lower()
    path = log_file or monitoring.log_file

    numeric_level = getattr(logging, level, logging.INFO)
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer = JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(colors=False)
    formatter = ProcessorFormatter(processor=renderer, foreign_pre_chain=shared)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    if path:
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = []
        server_logger.propagate = True
        server_logger.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    structlog.get_logger(__name__).info(
        "Logging configured",
        level=level,
        format=fmt,
        log_file=path,
    )
    return stdout_handler
