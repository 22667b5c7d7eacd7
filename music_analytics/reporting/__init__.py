"""
Reporting Module
"""
from .exceptions import (
    ReportingError,
    MissingDataError,
    InvalidSnapshotError,
    UnknownReportError,
)
from .snapshot import Snapshot
from .engine import REPORTS, ReportDefinition, ReportResult, ReportingEngine, get_report

__all__ = [
    "ReportingError",
    "MissingDataError",
    "InvalidSnapshotError",
    "UnknownReportError",
    "Snapshot",
    "REPORTS",
    "ReportDefinition",
    "ReportResult",
    "ReportingEngine",
    "get_report",
]
