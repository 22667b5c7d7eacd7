"""
Custom exceptions for the reporting module.

Ties between equally ranked rows are never errors; every report resolves
them deterministically.
"""

from typing import List, Optional


class ReportingError(Exception):
    """
    Base exception for all reporting errors.

    The CLI catches this class to turn reporting failures into a non-zero
    exit status.
    """

    pass


class MissingDataError(ReportingError):
    """
    Raised when a relation a report requires is empty.

    Attributes:
        relation: Name of the empty relation
        report: Report that required it (optional)
    """

    def __init__(self, relation: str, report: Optional[str] = None):
        self.relation = relation
        self.report = report
        message = f"Required relation '{relation}' is empty"
        if report:
            message = f"{message} (report '{report}')"
        super().__init__(message)


class InvalidSnapshotError(ReportingError):
    """
    Raised when a snapshot does not satisfy the schema contract.

    Covers missing or ill-typed columns, null or duplicate primary keys,
    dangling foreign keys and cycles in the employee hierarchy.

    Attributes:
        problems: One human-readable line per violated rule
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or []
        if self.problems:
            message = f"{message}: " + "; ".join(self.problems)
        super().__init__(message)


class UnknownReportError(ReportingError):
    """Raised when a report name is not registered."""

    def __init__(self, name: str, available: Optional[List[str]] = None):
        self.name = name
        self.available = available or []
        message = f"Unknown report '{name}'"
        if self.available:
            message = f"{message}. Available: {', '.join(self.available)}"
        super().__init__(message)
