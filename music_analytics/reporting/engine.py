"""
Reporting Engine

Registry of the available reports and a runner that executes them against
one snapshot, individually or concurrently.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import polars as pl
import structlog

from music_analytics.config import get_settings
from . import queries
from .consistency import invoice_total_mismatches
from .exceptions import UnknownReportError
from .snapshot import Snapshot

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReportDefinition:
    """A registered report and the parameters it accepts"""
    name: str
    func: Callable[..., pl.DataFrame]
    description: str
    params: Dict[str, type] = field(default_factory=dict)


@dataclass
class ReportResult:
    """Output of one report run"""
    name: str
    params: Dict[str, Any]
    frame: pl.DataFrame
    started_at: datetime
    completed_at: datetime

    @property
    def row_count(self) -> int:
        return self.frame.height

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    def rows(self) -> List[Dict[str, Any]]:
        """Result rows as dictionaries, in report order"""
        return self.frame.to_dicts()


REPORTS: Dict[str, ReportDefinition] = {
    definition.name: definition
    for definition in [
        ReportDefinition(
            "senior_most_employee",
            queries.senior_most_employee,
            "Employees with the highest seniority level (all ties)",
        ),
        ReportDefinition(
            "invoice_count_by_country",
            queries.invoice_count_by_country,
            "Number of invoices per billing country",
        ),
        ReportDefinition(
            "top_invoice_totals",
            queries.top_invoice_totals,
            "Largest invoice totals, duplicates kept",
            {"n": int},
        ),
        ReportDefinition(
            "top_city_by_revenue",
            queries.top_city_by_revenue,
            "Billing city with the highest revenue",
        ),
        ReportDefinition(
            "top_customer_by_spend",
            queries.top_customer_by_spend,
            "Customer who spent the most",
        ),
        ReportDefinition(
            "genre_listeners",
            queries.genre_listeners,
            "Customers who bought tracks of a genre, by email",
            {"genre": str, "case_sensitive": bool},
        ),
        ReportDefinition(
            "top_artists_by_genre",
            queries.top_artists_by_genre,
            "Artists with the most tracks in a genre",
            {"genre": str, "n": int, "case_sensitive": bool},
        ),
        ReportDefinition(
            "above_average_duration_tracks",
            queries.above_average_duration_tracks,
            "Tracks longer than the average track",
        ),
        ReportDefinition(
            "spend_on_best_selling_artist",
            queries.spend_on_best_selling_artist,
            "Customer spend on the best-selling artist",
        ),
        ReportDefinition(
            "top_genre_per_country",
            queries.top_genre_per_country,
            "Most purchased genre per country (all ties)",
        ),
        ReportDefinition(
            "top_spender_per_country",
            queries.top_spender_per_country,
            "Customer who spent the most per country (all ties)",
        ),
        ReportDefinition(
            "revenue_by_country",
            queries.revenue_by_country,
            "Customers, invoices and revenue per country",
        ),
        ReportDefinition(
            "sales_by_support_rep",
            queries.sales_by_support_rep,
            "Customers and sales per support representative",
        ),
        ReportDefinition(
            "invoice_total_mismatches",
            invoice_total_mismatches,
            "Invoices whose total differs from the sum of their lines",
            {"tolerance": float},
        ),
    ]
}


def get_report(name: str) -> ReportDefinition:
    try:
        return REPORTS[name]
    except KeyError:
        raise UnknownReportError(name, sorted(REPORTS)) from None


class ReportingEngine:
    """
    Runs reports against one immutable snapshot.

    The snapshot is never written, so reports can run on worker threads
    without locking.

    Example:
        engine = ReportingEngine(snapshot)
        result = engine.run("top_invoice_totals", n=5)
        results = asyncio.run(engine.run_many())
    """

    def __init__(self, snapshot: Snapshot, max_workers: Optional[int] = None):
        self.snapshot = snapshot
        self.max_workers = max_workers or get_settings().reporting.max_workers

    def run(self, name: str, **params: Any) -> ReportResult:
        """
        Run one report.

        Raises:
            UnknownReportError: If the report is not registered
            TypeError: If a parameter is not accepted by the report
            MissingDataError: If a relation the report needs is empty
        """
        definition = get_report(name)
        unexpected = sorted(set(params) - set(definition.params))
        if unexpected:
            raise TypeError(f"Report '{name}' does not accept parameters: {unexpected}")

        started_at = datetime.now(timezone.utc)
        frame = definition.func(self.snapshot, **params)
        completed_at = datetime.now(timezone.utc)

        result = ReportResult(
            name=name,
            params=dict(params),
            frame=frame,
            started_at=started_at,
            completed_at=completed_at,
        )
        logger.info(
            "Report completed",
            report=name,
            rows=result.row_count,
            duration_seconds=round(result.duration_seconds, 4),
        )
        return result

    async def run_many(
        self,
        names: Optional[Iterable[str]] = None,
        params: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> Dict[str, ReportResult]:
        """
        Run several reports concurrently (all registered reports by default).

        Args:
            names: Reports to run
            params: Per-report parameters, keyed by report name

        Returns:
            Results keyed by report name, in the order requested
        """
        names = list(names) if names is not None else list(REPORTS)
        params = params or {}
        for name in names:
            get_report(name)

        semaphore = asyncio.Semaphore(self.max_workers)

        async def _run(name: str) -> ReportResult:
            async with semaphore:
                return await asyncio.to_thread(self.run, name, **params.get(name, {}))

        logger.info("Running reports", reports=len(names), max_workers=self.max_workers)
        results = await asyncio.gather(*(_run(name) for name in names))
        return dict(zip(names, results))

    def run_all(self, **kwargs: Any) -> Dict[str, ReportResult]:
        """Blocking wrapper around :meth:`run_many`."""
        return asyncio.run(self.run_many(**kwargs))
