"""
Data Validation Module

Rule-based data quality checks over polars DataFrames, in the spirit of
Great Expectations.

Features:
- Null checks
- Uniqueness checks
- Range checks
- Referential integrity checks
- Positive value checks
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from music_analytics.schema import FOREIGN_KEYS, INVOICE_LINE, PRIMARY_KEYS, REQUIRED_COLUMNS, TRACK

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - snapshot is rejected
    WARNING = "warning"  # Non-critical - logged only
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def errors(self) -> List[ValidationCheck]:
        """Failed checks with ERROR severity"""
        return [c for c in self.checks if not c.passed and c.severity == ValidationSeverity.ERROR]


def _missing_column(name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
    return ValidationCheck(
        name=name,
        passed=False,
        severity=severity,
        message=f"Column '{column}' not found",
    )


class DataValidator:
    """
    Data validator with a chainable check suite.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("invoice_id")
        validator.add_range_check("quantity", min_value=1)
        result = validator.validate(df)
    """

    def __init__(self):
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"not_null_{column}"
            if column not in df.columns:
                return _missing_column(name, column, severity)

            null_count = df[column].null_count()
            total = len(df)
            passed = null_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {null_count} null values" if not passed else f"Column '{column}' has no null values",
                details={"null_count": null_count},
                failed_rows=null_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"unique_{column}"
            if column not in df.columns:
                return _missing_column(name, column, severity)

            total = len(df)
            duplicate_count = total - df[column].n_unique()
            passed = duplicate_count == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {duplicate_count} duplicate values" if not passed else f"Column '{column}' values are unique",
                details={"duplicate_count": duplicate_count},
                failed_rows=duplicate_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            name = f"range_{column}"
            if column not in df.columns:
                return _missing_column(name, column, severity)

            conditions = []
            if min_value is not None:
                conditions.append(pl.col(column) < min_value)
            if max_value is not None:
                conditions.append(pl.col(column) > max_value)

            if not conditions:
                return ValidationCheck(
                    name=name,
                    passed=True,
                    severity=severity,
                    message="No range specified",
                )

            combined = conditions[0]
            for cond in conditions[1:]:
                combined = combined | cond

            out_of_range = df.filter(combined).height
            total = len(df)
            passed = out_of_range == 0

            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {out_of_range} values outside range [{min_value}, {max_value}]" if not passed else "All values in range",
                details={"min": min_value, "max": max_value, "out_of_range_count": out_of_range},
                failed_rows=out_of_range,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def add_positive_check(
        self,
        column: str,
        allow_zero: bool = True,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for positive values"""
        min_val = 0 if allow_zero else 0.0001
        return self.add_range_check(column, min_value=min_val, severity=severity)

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
        name: Optional[str] = None,
    ) -> "DataValidator":
        """Add referential integrity check; null references are allowed"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            check_name = name or f"ref_integrity_{column}"
            if column not in df.columns:
                return _missing_column(check_name, column, severity)

            references = reference_df.select(
                pl.col(reference_column).cast(df[column].dtype).alias(column)
            ).unique()
            orphans = (
                df.filter(pl.col(column).is_not_null())
                .join(references, on=column, how="anti")
            )
            orphan_count = orphans.height
            total = len(df)
            passed = orphan_count == 0

            return ValidationCheck(
                name=check_name,
                passed=passed,
                severity=severity,
                message=f"Column '{column}' has {orphan_count} orphan records" if not passed else "Referential integrity maintained",
                details={
                    "orphan_count": orphan_count,
                    "orphan_values": orphans[column].unique(maintain_order=True).head(10).to_list(),
                },
                failed_rows=orphan_count,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.now(timezone.utc)
        results = []

        logger.debug("Running validation checks", checks=len(self._checks), rows=len(df))

        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        completed_at = datetime.now(timezone.utc)

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        # Warnings are logged but never fail the suite
        status = ValidationStatus.FAILED if failed_checks > 0 else ValidationStatus.PASSED

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=completed_at,
        )


def create_relation_validator(relation: str, frames: Dict[str, pl.DataFrame]) -> DataValidator:
    """
    Create the validator for one snapshot relation.

    Checks the primary key (not null, unique), the required columns and
    every foreign key leaving the relation against the referenced frame.
    """
    primary_key = PRIMARY_KEYS[relation]
    validator = (
        DataValidator()
        .add_not_null_check(primary_key)
        .add_unique_check(primary_key)
    )
    for column in REQUIRED_COLUMNS[relation]:
        validator.add_not_null_check(column)

    for fk in FOREIGN_KEYS:
        if fk.relation != relation:
            continue
        validator.add_referential_integrity_check(
            fk.column,
            frames[fk.target],
            fk.target_column,
            name=f"fk_{relation}_{fk.column}_{fk.target}",
        )

    if relation == INVOICE_LINE:
        validator.add_range_check("quantity", min_value=1)
        validator.add_positive_check("unit_price")
    elif relation == TRACK:
        validator.add_positive_check("milliseconds")

    return validator
