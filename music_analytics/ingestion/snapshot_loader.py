"""
Snapshot Loader

Reads the music store relations into an immutable :class:`Snapshot`.

Sources:
- A SQL database through SQLAlchemy, read inside one transaction so
  invoice totals stay consistent with invoice lines
- A directory of ``<relation>.csv`` exports, read with polars

Type coercion happens here: numeric text becomes numbers, dates are
parsed, and textual employee levels ("L1".."Ln") become an integer
seniority.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import polars as pl
import structlog
from sqlalchemy import Engine, Float, Select, cast, select

from music_analytics.config import get_settings
from music_analytics.database.connection import init_database, snapshot_transaction
from music_analytics.database.models import (
    Album,
    Artist,
    Customer,
    Employee,
    Genre,
    Invoice,
    InvoiceLine,
    Track,
)
from music_analytics.reporting.exceptions import InvalidSnapshotError
from music_analytics.reporting.snapshot import Snapshot
from music_analytics.schema import (
    ALBUM,
    ARTIST,
    CUSTOMER,
    EMPLOYEE,
    GENRE,
    INVOICE,
    INVOICE_LINE,
    RELATION_SCHEMAS,
    TRACK,
)

logger = structlog.get_logger(__name__)

NULL_VALUES = ["", "NULL", "null", "None", "NA", "N/A"]


def parse_seniority(df: pl.DataFrame, column: str = "levels") -> pl.DataFrame:
    """
    Replace a textual level column with an integer ``seniority`` column.

    Accepts "L7", "l7", " L7 " and bare numbers. Levels compare as numbers,
    so "L10" ranks above "L9".

    Raises:
        InvalidSnapshotError: If a non-null level cannot be parsed
    """
    if column not in df.columns:
        return df

    parsed = (
        pl.col(column)
        .cast(pl.Utf8)
        .str.strip_chars()
        .str.to_uppercase()
        .str.strip_prefix("L")
        .cast(pl.Int64, strict=False)
    )
    df = df.with_columns(parsed.alias("seniority"))

    invalid = df.filter(pl.col(column).is_not_null() & pl.col("seniority").is_null())
    if invalid.height:
        raise InvalidSnapshotError(
            "Unparsable employee levels",
            [repr(v) for v in invalid[column].unique(maintain_order=True).to_list()],
        )
    return df.drop(column)


def _database_queries() -> Dict[str, Select]:
    """One SELECT per relation, ordered by primary key."""
    return {
        EMPLOYEE: select(
            Employee.employee_id,
            Employee.first_name,
            Employee.last_name,
            Employee.title,
            Employee.levels,
            Employee.reports_to,
        ).order_by(Employee.employee_id),
        CUSTOMER: select(
            Customer.customer_id,
            Customer.first_name,
            Customer.last_name,
            Customer.email,
            Customer.city,
            Customer.country,
            Customer.support_rep_id,
        ).order_by(Customer.customer_id),
        INVOICE: select(
            Invoice.invoice_id,
            Invoice.customer_id,
            Invoice.invoice_date,
            Invoice.billing_city,
            Invoice.billing_country,
            cast(Invoice.total, Float).label("total"),
        ).order_by(Invoice.invoice_id),
        INVOICE_LINE: select(
            InvoiceLine.invoice_line_id,
            InvoiceLine.invoice_id,
            InvoiceLine.track_id,
            cast(InvoiceLine.unit_price, Float).label("unit_price"),
            InvoiceLine.quantity,
        ).order_by(InvoiceLine.invoice_line_id),
        TRACK: select(
            Track.track_id,
            Track.name,
            Track.album_id,
            Track.genre_id,
            Track.media_type_id,
            Track.milliseconds,
            cast(Track.unit_price, Float).label("unit_price"),
        ).order_by(Track.track_id),
        ALBUM: select(Album.album_id, Album.title, Album.artist_id).order_by(Album.album_id),
        ARTIST: select(Artist.artist_id, Artist.name).order_by(Artist.artist_id),
        GENRE: select(Genre.genre_id, Genre.name).order_by(Genre.genre_id),
    }


class SnapshotLoader:
    """
    Builds validated snapshots from a database or from CSV exports.

    Example:
        loader = SnapshotLoader()
        snapshot = loader.from_database()
        snapshot = loader.from_csv_dir("data/exports")
    """

    def __init__(self, validate: bool = True):
        self.validate = validate

    def from_database(self, engine: Optional[Engine] = None) -> Snapshot:
        """
        Read every relation inside a single read-only transaction.

        Args:
            engine: Engine to read from, defaults to the configured database
        """
        engine = engine or init_database()
        frames: Dict[str, pl.DataFrame] = {}

        with snapshot_transaction(engine) as conn:
            for relation, query in _database_queries().items():
                result = conn.execute(query)
                columns = list(result.keys())
                rows = [tuple(row) for row in result]
                frames[relation] = pl.DataFrame(
                    rows,
                    schema=columns,
                    orient="row",
                    infer_schema_length=None,
                )
                logger.debug("Relation read", relation=relation, rows=len(rows))

        frames[EMPLOYEE] = parse_seniority(frames[EMPLOYEE])
        source = engine.url.render_as_string(hide_password=True)
        logger.info("Snapshot read from database", source=source)
        return Snapshot.from_frames(frames, validate=self.validate, source=source)

    def _read_csv(self, path: Path) -> pl.DataFrame:
        df = pl.read_csv(
            path,
            null_values=NULL_VALUES,
            try_parse_dates=True,
            infer_schema_length=None,
        )
        return df.rename({c: c.strip().lower() for c in df.columns})

    def from_csv_dir(self, directory: Union[str, Path]) -> Snapshot:
        """
        Read ``<relation>.csv`` files from ``directory``.

        A missing file leaves its relation empty.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"CSV directory not found: {directory}")

        frames: Dict[str, pl.DataFrame] = {}
        missing: List[str] = []
        for relation in RELATION_SCHEMAS:
            path = directory / f"{relation}.csv"
            if not path.exists():
                missing.append(relation)
                continue
            frames[relation] = self._read_csv(path)
            logger.debug("Relation read", relation=relation, rows=frames[relation].height, file=str(path))

        if missing:
            logger.warning("CSV files not found, relations left empty", relations=missing)

        if EMPLOYEE in frames:
            frames[EMPLOYEE] = parse_seniority(frames[EMPLOYEE])

        return Snapshot.from_frames(frames, validate=self.validate, source=str(directory))


def load_snapshot(
    csv_dir: Optional[Union[str, Path]] = None,
    database_url: Optional[str] = None,
) -> Snapshot:
    """
    Load a snapshot from the configured source.

    CSV exports win over the database when a directory is given (directly or
    through ``REPORTING_CSV_DIR``).
    """
    settings = get_settings()
    loader = SnapshotLoader()
    csv_dir = csv_dir or settings.reporting.csv_dir
    if csv_dir:
        return loader.from_csv_dir(csv_dir)
    return loader.from_database(init_database(database_url))
