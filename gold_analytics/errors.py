"""
Reporting Errors

Exception taxonomy shared by the store, the engines and the HTTP layer.
A report either fully succeeds or raises one of these.
"""

from typing import Any, Dict, Optional


class ReportingError(Exception):
    """Base class for all reporting engine errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serializable error payload"""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ReportingError):
    """Referenced table or column does not exist"""


class InvalidRequestError(ReportingError):
    """Malformed metric, grouping, join or ordering specification"""


class EmptyAggregationError(ReportingError):
    """Aggregate is undefined because no non-null values were aggregated"""
