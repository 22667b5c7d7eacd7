"""
Analytical Reports

One pure function per business question. Each takes a :class:`Snapshot`
(plus optional parameters) and returns an ordered polars DataFrame. Reports
never modify the snapshot, raise :class:`MissingDataError` when a relation
they need is empty, and resolve ties deterministically:

- "all ties" reports keep every row equal to the (group) maximum
- "single best" reports keep the first encountered row in input order
- sort keys always end in a unique column so output order is stable
"""

from typing import Optional

import polars as pl
import structlog

from music_analytics.config import get_settings
from music_analytics.schema import (
    ALBUM,
    ARTIST,
    CUSTOMER,
    EMPLOYEE,
    GENRE,
    INVOICE,
    INVOICE_LINE,
    TRACK,
)
from .aggregations import FIRST_SEEN, first_maximum, keep_group_maximum, money, money_sum, top_k
from .snapshot import Snapshot

logger = structlog.get_logger(__name__)

CUSTOMER_NAME = ["customer_id", "first_name", "last_name"]


def _match_genre(genre: pl.DataFrame, name: str, case_sensitive: bool) -> pl.DataFrame:
    """Genres whose name equals ``name``."""
    if case_sensitive:
        return genre.filter(pl.col("name") == name)
    return genre.filter(pl.col("name").str.to_lowercase() == name.lower())


def _genre_options(genre: Optional[str], case_sensitive: Optional[bool]):
    settings = get_settings().reporting
    return (
        genre if genre is not None else settings.default_genre,
        case_sensitive if case_sensitive is not None else settings.genre_case_sensitive,
    )


# =============================================================================
# EMPLOYEES
# =============================================================================

def senior_most_employee(snapshot: Snapshot) -> pl.DataFrame:
    """
    Employees holding the highest seniority level.

    All tied employees are returned, in input order.
    """
    snapshot.require(EMPLOYEE, report="senior_most_employee")
    employees = snapshot.employee.select(
        ["employee_id", "first_name", "last_name", "title", "seniority"]
    )
    return keep_group_maximum(employees, "seniority")


def sales_by_support_rep(snapshot: Snapshot) -> pl.DataFrame:
    """Customers served and invoice totals per support representative."""
    snapshot.require(EMPLOYEE, CUSTOMER, INVOICE, report="sales_by_support_rep")

    customer_sales = snapshot.invoice.group_by("customer_id").agg(
        pl.col("total").sum().alias("customer_total")
    )
    per_rep = (
        snapshot.customer
        .filter(pl.col("support_rep_id").is_not_null())
        .join(customer_sales, on="customer_id", how="left")
        .group_by("support_rep_id")
        .agg(
            pl.len().cast(pl.Int64).alias("customers"),
            pl.col("customer_total").fill_null(0.0).sum().round(2).alias("total_sales"),
        )
    )
    reps = snapshot.employee.select(
        pl.col("employee_id").alias("support_rep_id"), "first_name", "last_name", "title"
    )
    return (
        per_rep.join(reps, on="support_rep_id", how="inner")
        .sort(["total_sales", "support_rep_id"], descending=[True, False])
        .select(["support_rep_id", "first_name", "last_name", "title", "customers", "total_sales"])
    )


# =============================================================================
# INVOICES AND CUSTOMERS
# =============================================================================

def invoice_count_by_country(snapshot: Snapshot) -> pl.DataFrame:
    """Invoices per billing country, most first; equal counts by country name."""
    snapshot.require(INVOICE, report="invoice_count_by_country")
    return (
        snapshot.invoice
        .group_by("billing_country")
        .agg(pl.len().cast(pl.Int64).alias("invoice_count"))
        .sort(["invoice_count", "billing_country"], descending=[True, False], nulls_last=True)
    )


def top_invoice_totals(snapshot: Snapshot, n: Optional[int] = None) -> pl.DataFrame:
    """The ``n`` largest invoice totals. Duplicate totals are kept."""
    snapshot.require(INVOICE, report="top_invoice_totals")
    n = n if n is not None else get_settings().reporting.top_invoices
    return top_k(snapshot.invoice.select(["invoice_id", "total"]), "total", n)


def top_city_by_revenue(snapshot: Snapshot) -> pl.DataFrame:
    """
    Billing city with the highest summed invoice total.

    One row; on a tie the city whose first invoice comes first wins.
    """
    snapshot.require(INVOICE, report="top_city_by_revenue")
    revenue = (
        snapshot.invoice
        .with_row_index(FIRST_SEEN)
        .filter(pl.col("billing_city").is_not_null())
        .group_by("billing_city")
        .agg(
            money_sum("total", "invoice_total"),
            pl.col(FIRST_SEEN).min(),
        )
    )
    return first_maximum(revenue, "invoice_total")


def top_customer_by_spend(snapshot: Snapshot) -> pl.DataFrame:
    """
    Customer with the highest summed invoice total.

    One row; on a tie the customer whose first invoice comes first wins.
    """
    snapshot.require(INVOICE, CUSTOMER, report="top_customer_by_spend")
    spend = (
        snapshot.invoice
        .with_row_index(FIRST_SEEN)
        .group_by("customer_id")
        .agg(
            money_sum("total", "total_spend"),
            pl.col(FIRST_SEEN).min(),
        )
    )
    best = first_maximum(spend, "total_spend")
    return best.join(
        snapshot.customer.select(CUSTOMER_NAME), on="customer_id", how="left"
    ).select(CUSTOMER_NAME + ["total_spend"])


def revenue_by_country(snapshot: Snapshot) -> pl.DataFrame:
    """Customers, invoices and revenue per billing country, highest revenue first."""
    snapshot.require(INVOICE, report="revenue_by_country")
    return (
        snapshot.invoice
        .group_by("billing_country")
        .agg(
            pl.col("customer_id").n_unique().cast(pl.Int64).alias("customers"),
            pl.len().cast(pl.Int64).alias("invoices"),
            pl.col("total").sum().alias("total_revenue"),
        )
        .with_columns(
            (pl.col("total_revenue") / pl.col("customers")).round(2).alias("revenue_per_customer"),
            (pl.col("total_revenue") / pl.col("invoices")).round(2).alias("average_invoice"),
            money("total_revenue"),
        )
        .sort(["total_revenue", "billing_country"], descending=[True, False], nulls_last=True)
    )


# =============================================================================
# CATALOG
# =============================================================================

def genre_listeners(
    snapshot: Snapshot,
    genre: Optional[str] = None,
    case_sensitive: Optional[bool] = None,
) -> pl.DataFrame:
    """
    Distinct customers who bought at least one track of ``genre``.

    Genre names compare case-insensitively unless ``case_sensitive``.
    Ordered by email (nulls last), then customer id.
    """
    snapshot.require(INVOICE_LINE, INVOICE, CUSTOMER, TRACK, GENRE, report="genre_listeners")
    genre, case_sensitive = _genre_options(genre, case_sensitive)

    genres = _match_genre(snapshot.genre, genre, case_sensitive).select(
        "genre_id", pl.col("name").alias("genre")
    )
    genre_tracks = snapshot.track.select(["track_id", "genre_id"]).join(genres, on="genre_id")

    return (
        snapshot.invoice_line.select(["invoice_id", "track_id"])
        .join(genre_tracks, on="track_id")
        .join(snapshot.invoice.select(["invoice_id", "customer_id"]), on="invoice_id")
        .join(snapshot.customer.select(CUSTOMER_NAME + ["email"]), on="customer_id")
        .sort(["email", "customer_id", "genre"], nulls_last=True)
        .unique(subset=["customer_id"], keep="first", maintain_order=True)
        .select(["email", "first_name", "last_name", "genre"])
    )


def top_artists_by_genre(
    snapshot: Snapshot,
    genre: Optional[str] = None,
    n: Optional[int] = None,
    case_sensitive: Optional[bool] = None,
) -> pl.DataFrame:
    """
    Artists with the most tracks in ``genre`` (Track -> Album -> Artist).

    Tracks without an album cannot be attributed and are skipped. Equal
    counts are ordered by artist name.
    """
    snapshot.require(TRACK, ALBUM, ARTIST, GENRE, report="top_artists_by_genre")
    genre, case_sensitive = _genre_options(genre, case_sensitive)
    n = n if n is not None else get_settings().reporting.top_artists
    if n < 1:
        raise ValueError(f"n must be a positive integer, got {n}")

    genres = _match_genre(snapshot.genre, genre, case_sensitive).select("genre_id")
    return (
        snapshot.track
        .join(genres, on="genre_id", how="semi")
        .join(snapshot.album.select(["album_id", "artist_id"]), on="album_id")
        .group_by("artist_id")
        .agg(pl.len().cast(pl.Int64).alias("track_count"))
        .join(
            snapshot.artist.select("artist_id", pl.col("name").alias("artist_name")),
            on="artist_id",
            how="left",
        )
        .sort(
            ["track_count", "artist_name", "artist_id"],
            descending=[True, False, False],
            nulls_last=True,
        )
        .head(n)
        .select(["artist_id", "artist_name", "track_count"])
    )


def above_average_duration_tracks(snapshot: Snapshot) -> pl.DataFrame:
    """Tracks strictly longer than the mean track duration, longest first."""
    snapshot.require(TRACK, report="above_average_duration_tracks")
    average = snapshot.track["milliseconds"].mean()
    logger.debug("Average track duration", milliseconds=average)
    return (
        snapshot.track
        .filter(pl.col("milliseconds") > average)
        .select(["track_id", "name", "milliseconds"])
        .sort("milliseconds", descending=True, maintain_order=True)
    )


# =============================================================================
# SALES BY ARTIST AND COUNTRY
# =============================================================================

def _artist_sales(snapshot: Snapshot) -> pl.DataFrame:
    """Invoice lines attributed to an artist, with the line amount."""
    return (
        snapshot.invoice_line
        .with_row_index(FIRST_SEEN)
        .join(snapshot.track.select(["track_id", "album_id"]), on="track_id")
        .join(snapshot.album.select(["album_id", "artist_id"]), on="album_id")
        .with_columns((pl.col("unit_price") * pl.col("quantity")).alias("amount"))
    )


def spend_on_best_selling_artist(snapshot: Snapshot) -> pl.DataFrame:
    """
    What each customer spent on the best-selling artist.

    The best-selling artist has the highest revenue (unit_price * quantity)
    over all invoice lines; the first encountered wins a tie. Only customers
    with nonzero spend on that artist are returned, highest spend first.
    """
    snapshot.require(
        INVOICE_LINE, INVOICE, CUSTOMER, TRACK, ALBUM, ARTIST,
        report="spend_on_best_selling_artist",
    )
    sales = _artist_sales(snapshot)

    artist_revenue = sales.group_by("artist_id").agg(
        money_sum("amount", "revenue"),
        pl.col(FIRST_SEEN).min(),
    )
    best = first_maximum(artist_revenue, "revenue")
    best = best.join(
        snapshot.artist.select("artist_id", pl.col("name").alias("artist_name")),
        on="artist_id",
        how="left",
    )
    if best.is_empty():
        logger.info("No invoice line can be attributed to an artist")

    logger.debug("Best-selling artist", artist=best.to_dicts())

    return (
        sales.join(best.select(["artist_id", "artist_name"]), on="artist_id")
        .join(snapshot.invoice.select(["invoice_id", "customer_id"]), on="invoice_id")
        .group_by(["customer_id", "artist_name"])
        .agg(money_sum("amount", "amount_spent"))
        .filter(pl.col("amount_spent") > 0)
        .join(snapshot.customer.select(CUSTOMER_NAME), on="customer_id", how="left")
        .sort(["amount_spent", "customer_id"], descending=[True, False])
        .select(CUSTOMER_NAME + ["artist_name", "amount_spent"])
    )


def top_genre_per_country(snapshot: Snapshot) -> pl.DataFrame:
    """
    Most purchased genre per customer country.

    Purchases are invoice lines. Every genre tied for the maximum in a
    country is returned. Tracks without a genre and customers without a
    country are left out.
    """
    snapshot.require(
        INVOICE_LINE, INVOICE, CUSTOMER, TRACK, GENRE,
        report="top_genre_per_country",
    )
    purchases = (
        snapshot.invoice_line.select(["invoice_id", "track_id"])
        .join(
            snapshot.track.select(["track_id", "genre_id"]).filter(pl.col("genre_id").is_not_null()),
            on="track_id",
        )
        .join(snapshot.invoice.select(["invoice_id", "customer_id"]), on="invoice_id")
        .join(
            snapshot.customer.select(["customer_id", "country"]).filter(pl.col("country").is_not_null()),
            on="customer_id",
        )
        .group_by(["country", "genre_id"])
        .agg(pl.len().cast(pl.Int64).alias("purchases"))
    )
    return (
        keep_group_maximum(purchases, "purchases", by="country")
        .join(
            snapshot.genre.select("genre_id", pl.col("name").alias("genre_name")),
            on="genre_id",
            how="left",
        )
        .sort(["country", "genre_name", "genre_id"], nulls_last=True)
        .select(["country", "genre_id", "genre_name", "purchases"])
    )


def top_spender_per_country(snapshot: Snapshot) -> pl.DataFrame:
    """
    Customer(s) with the highest total spend per billing country.

    Spend is summed per (billing country, customer); every customer tied
    for the maximum in a country is returned.
    """
    snapshot.require(INVOICE, CUSTOMER, report="top_spender_per_country")
    spend = (
        snapshot.invoice
        .filter(pl.col("billing_country").is_not_null())
        .group_by(["billing_country", "customer_id"])
        .agg(money_sum("total", "total_spending"))
    )
    return (
        keep_group_maximum(spend, "total_spending", by="billing_country")
        .join(snapshot.customer.select(CUSTOMER_NAME), on="customer_id", how="left")
        .sort(["billing_country", "customer_id"])
        .select(["billing_country"] + CUSTOMER_NAME + ["total_spending"])
    )
