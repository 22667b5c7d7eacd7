"""
Immutable Data Snapshot

A consistent, read-only view of every relation the reports read, held as
polars DataFrames. A snapshot is built once (by the loader or directly from
frames), validated against the schema contract, and then shared by every
report without synchronization.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

import polars as pl
import structlog

from music_analytics.quality.validators import create_relation_validator
from music_analytics.schema import (
    EMPLOYEE,
    PRIMARY_KEYS,
    RELATION_SCHEMAS,
    REQUIRED_COLUMNS,
    empty_frame,
)
from .exceptions import InvalidSnapshotError, MissingDataError

logger = structlog.get_logger(__name__)


def _conform(relation: str, df: Optional[pl.DataFrame]) -> pl.DataFrame:
    """Select, order and cast the relation's columns to the snapshot schema."""
    if df is None:
        return empty_frame(relation)

    schema = RELATION_SCHEMAS[relation]
    mandatory = {PRIMARY_KEYS[relation], *REQUIRED_COLUMNS[relation]}
    missing = [c for c in schema if c not in df.columns and c in mandatory]
    if missing:
        raise InvalidSnapshotError(
            f"Relation '{relation}' is missing columns",
            [f"{relation}.{c}" for c in missing],
        )

    exprs = []
    for column, dtype in schema.items():
        if column not in df.columns:
            # Optional attribute absent from the source
            exprs.append(pl.lit(None, dtype=dtype).alias(column))
        elif dtype == pl.Date and df[column].dtype == pl.Utf8:
            exprs.append(pl.col(column).str.to_date(strict=True))
        else:
            exprs.append(pl.col(column).cast(dtype, strict=True))

    try:
        return df.select(exprs)
    except pl.exceptions.PolarsError as e:
        raise InvalidSnapshotError(
            f"Relation '{relation}' has values that do not match the schema",
            [str(e).splitlines()[0]],
        ) from e


def find_hierarchy_cycles(employee: pl.DataFrame) -> List[int]:
    """Employee ids that take part in a reports_to cycle."""
    manager_of: Dict[int, Optional[int]] = dict(
        zip(employee["employee_id"].to_list(), employee["reports_to"].to_list())
    )
    in_cycle = set()
    settled = set()

    for start in manager_of:
        path: List[int] = []
        on_path = set()
        node: Optional[int] = start
        while node is not None and node not in settled and node not in on_path:
            path.append(node)
            on_path.add(node)
            node = manager_of.get(node)
        if node is not None and node in on_path:
            in_cycle.update(path[path.index(node):])
        settled.update(path)

    return sorted(in_cycle)


def validate_frames(frames: Mapping[str, pl.DataFrame]) -> None:
    """
    Check keys, references and the employee hierarchy.

    Raises:
        InvalidSnapshotError: With one problem line per failed check
    """
    problems: List[str] = []

    for relation, df in frames.items():
        result = create_relation_validator(relation, dict(frames)).validate(df)
        for check in result.errors:
            detail = ""
            if check.details and check.details.get("orphan_values"):
                detail = f" (e.g. {check.details['orphan_values']})"
            problems.append(f"{relation}: {check.message}{detail}")

    cycles = find_hierarchy_cycles(frames[EMPLOYEE])
    if cycles:
        problems.append(f"employee: reports_to cycle through employees {cycles}")

    if problems:
        logger.error("Snapshot validation failed", problems=len(problems))
        raise InvalidSnapshotError("Snapshot failed validation", problems)


@dataclass(frozen=True)
class Snapshot:
    """
    Read-only view of the music store relations at one point in time.

    Build instances with :meth:`from_frames`, which conforms every frame to
    the schema and validates it. Reports only read the frames; polars
    operations always return new frames, so a snapshot is safe to share
    between threads.
    """
    employee: pl.DataFrame
    customer: pl.DataFrame
    invoice: pl.DataFrame
    invoice_line: pl.DataFrame
    track: pl.DataFrame
    album: pl.DataFrame
    artist: pl.DataFrame
    genre: pl.DataFrame
    source: str = "memory"
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_frames(
        cls,
        frames: Mapping[str, pl.DataFrame],
        validate: bool = True,
        source: str = "memory",
    ) -> "Snapshot":
        """
        Build a snapshot from one DataFrame per relation.

        Relations absent from ``frames`` are empty. Extra columns are
        dropped; optional columns that are absent are filled with nulls.

        Raises:
            InvalidSnapshotError: If a frame breaks the schema contract
        """
        unknown = sorted(set(frames) - set(RELATION_SCHEMAS))
        if unknown:
            raise InvalidSnapshotError("Unknown relations", unknown)

        conformed = {
            relation: _conform(relation, frames.get(relation))
            for relation in RELATION_SCHEMAS
        }
        if validate:
            validate_frames(conformed)

        snapshot = cls(**conformed, source=source)
        logger.info("Snapshot built", source=source, **snapshot.row_counts)
        return snapshot

    def relation(self, name: str) -> pl.DataFrame:
        if name not in RELATION_SCHEMAS:
            raise KeyError(name)
        return getattr(self, name)

    @property
    def row_counts(self) -> Dict[str, int]:
        return {name: self.relation(name).height for name in RELATION_SCHEMAS}

    def require(self, *relations: str, report: Optional[str] = None) -> None:
        """
        Raises:
            MissingDataError: If any of the relations is empty
        """
        for name in relations:
            if self.relation(name).is_empty():
                raise MissingDataError(name, report)
