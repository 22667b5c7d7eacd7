"""
Snapshot Schema

Column types, primary keys and foreign keys of the relations a snapshot
holds. Shared by the snapshot loader, snapshot validation and the reports.
"""

from dataclasses import dataclass
from typing import Dict, List

import polars as pl


EMPLOYEE = "employee"
CUSTOMER = "customer"
INVOICE = "invoice"
INVOICE_LINE = "invoice_line"
TRACK = "track"
ALBUM = "album"
ARTIST = "artist"
GENRE = "genre"


RELATION_SCHEMAS: Dict[str, Dict[str, pl.DataType]] = {
    EMPLOYEE: {
        "employee_id": pl.Int64,
        "first_name": pl.Utf8,
        "last_name": pl.Utf8,
        "title": pl.Utf8,
        "seniority": pl.Int64,
        "reports_to": pl.Int64,
    },
    CUSTOMER: {
        "customer_id": pl.Int64,
        "first_name": pl.Utf8,
        "last_name": pl.Utf8,
        "email": pl.Utf8,
        "city": pl.Utf8,
        "country": pl.Utf8,
        "support_rep_id": pl.Int64,
    },
    INVOICE: {
        "invoice_id": pl.Int64,
        "customer_id": pl.Int64,
        "invoice_date": pl.Date,
        "billing_city": pl.Utf8,
        "billing_country": pl.Utf8,
        "total": pl.Float64,
    },
    INVOICE_LINE: {
        "invoice_line_id": pl.Int64,
        "invoice_id": pl.Int64,
        "track_id": pl.Int64,
        "unit_price": pl.Float64,
        "quantity": pl.Int64,
    },
    TRACK: {
        "track_id": pl.Int64,
        "name": pl.Utf8,
        "album_id": pl.Int64,
        "genre_id": pl.Int64,
        "media_type_id": pl.Int64,
        "milliseconds": pl.Int64,
        "unit_price": pl.Float64,
    },
    ALBUM: {
        "album_id": pl.Int64,
        "title": pl.Utf8,
        "artist_id": pl.Int64,
    },
    ARTIST: {
        "artist_id": pl.Int64,
        "name": pl.Utf8,
    },
    GENRE: {
        "genre_id": pl.Int64,
        "name": pl.Utf8,
    },
}

PRIMARY_KEYS: Dict[str, str] = {
    EMPLOYEE: "employee_id",
    CUSTOMER: "customer_id",
    INVOICE: "invoice_id",
    INVOICE_LINE: "invoice_line_id",
    TRACK: "track_id",
    ALBUM: "album_id",
    ARTIST: "artist_id",
    GENRE: "genre_id",
}

# Columns that must be present on every row besides the primary key
REQUIRED_COLUMNS: Dict[str, List[str]] = {
    EMPLOYEE: ["seniority"],
    CUSTOMER: [],
    INVOICE: ["customer_id", "total"],
    INVOICE_LINE: ["invoice_id", "track_id", "unit_price", "quantity"],
    TRACK: ["milliseconds"],
    ALBUM: ["artist_id"],
    ARTIST: [],
    GENRE: [],
}


@dataclass(frozen=True)
class ForeignKey:
    """A (possibly nullable) reference from one relation to another"""
    relation: str
    column: str
    target: str
    target_column: str


FOREIGN_KEYS: List[ForeignKey] = [
    ForeignKey(EMPLOYEE, "reports_to", EMPLOYEE, "employee_id"),
    ForeignKey(CUSTOMER, "support_rep_id", EMPLOYEE, "employee_id"),
    ForeignKey(INVOICE, "customer_id", CUSTOMER, "customer_id"),
    ForeignKey(INVOICE_LINE, "invoice_id", INVOICE, "invoice_id"),
    ForeignKey(INVOICE_LINE, "track_id", TRACK, "track_id"),
    ForeignKey(TRACK, "album_id", ALBUM, "album_id"),
    ForeignKey(TRACK, "genre_id", GENRE, "genre_id"),
    ForeignKey(ALBUM, "artist_id", ARTIST, "artist_id"),
]


def empty_frame(relation: str) -> pl.DataFrame:
    """Empty DataFrame with the relation's schema"""
    return pl.DataFrame(schema=RELATION_SCHEMAS[relation])
