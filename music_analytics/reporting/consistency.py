"""
Invoice total consistency check.

``Invoice.total`` is a denormalized sum of the invoice's lines. The
reporting layer reports invoices where the two disagree; it never corrects
or rejects them.
"""

from typing import Optional

import polars as pl
import structlog

from music_analytics.config import get_settings
from music_analytics.quality.validators import ValidationCheck, ValidationSeverity
from music_analytics.schema import INVOICE
from .snapshot import Snapshot

logger = structlog.get_logger(__name__)


def invoice_total_mismatches(snapshot: Snapshot, tolerance: Optional[float] = None) -> pl.DataFrame:
    """
    Invoices whose total differs from the sum of unit_price * quantity of
    their lines by more than ``tolerance``. Invoices without lines compare
    against 0.
    """
    snapshot.require(INVOICE, report="invoice_total_mismatches")
    tolerance = tolerance if tolerance is not None else get_settings().reporting.total_tolerance

    line_totals = snapshot.invoice_line.group_by("invoice_id").agg(
        (pl.col("unit_price") * pl.col("quantity")).sum().alias("line_total")
    )
    mismatches = (
        snapshot.invoice.select(["invoice_id", "total"])
        .join(line_totals, on="invoice_id", how="left")
        .with_columns(pl.col("line_total").fill_null(0.0))
        .with_columns((pl.col("total") - pl.col("line_total")).alias("difference"))
        .filter(pl.col("difference").abs() > tolerance)
        .with_columns(
            pl.col("line_total").round(2),
            pl.col("difference").round(2),
        )
        .sort("invoice_id")
    )

    if mismatches.height:
        logger.warning(
            "Invoice totals do not match their lines",
            invoices=mismatches.height,
            tolerance=tolerance,
        )
    return mismatches


def check_invoice_totals(snapshot: Snapshot, tolerance: Optional[float] = None) -> ValidationCheck:
    """The consistency check as a warning-level validation result."""
    mismatches = invoice_total_mismatches(snapshot, tolerance)
    failed = mismatches.height
    return ValidationCheck(
        name="invoice_total_matches_lines",
        passed=failed == 0,
        severity=ValidationSeverity.WARNING,
        message=f"{failed} invoices differ from the sum of their lines" if failed else "All invoice totals match their lines",
        details={"invoice_ids": mismatches["invoice_id"].head(10).to_list()},
        failed_rows=failed,
        total_rows=snapshot.invoice.height,
    )
