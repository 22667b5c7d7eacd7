"""
Database Models - Music Store Schema

Declarative models of the digital music store schema the reports read from.
The tables are owned and bulk-loaded by an external setup process; this
package only reads them.

Fact Tables:
- Invoice: Purchase transactions with the denormalized invoice total
- InvoiceLine: One purchased track per line

Dimension Tables:
- Customer: Customers and their assigned support representative
- Employee: Staff with a self-referential reporting hierarchy
- Track / Album / Artist / Genre / MediaType: Music catalog
- Playlist / PlaylistTrack: Playlists (not used by the reports)
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# STAFF AND CUSTOMERS
# =============================================================================

class Employee(Base):
    """
    Employee Table

    ``levels`` is stored as text ("L1".."L7") by the source system; the
    snapshot loader converts it to an integer seniority.
    """
    __tablename__ = "employee"

    employee_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(100))
    reports_to: Mapped[Optional[int]] = mapped_column(ForeignKey("employee.employee_id"))
    levels: Mapped[str] = mapped_column(String(10), nullable=False)
    birthdate: Mapped[Optional[datetime]] = mapped_column(DateTime)
    hire_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    city: Mapped[Optional[str]] = mapped_column(String(50))
    country: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(100))

    manager: Mapped[Optional["Employee"]] = relationship(remote_side=[employee_id])
    customers: Mapped[List["Customer"]] = relationship(back_populates="support_rep")


class Customer(Base):
    """Customer Table"""
    __tablename__ = "customer"

    customer_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    company: Mapped[Optional[str]] = mapped_column(String(100))
    city: Mapped[Optional[str]] = mapped_column(String(50))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    country: Mapped[Optional[str]] = mapped_column(String(50))
    email: Mapped[Optional[str]] = mapped_column(String(100))
    support_rep_id: Mapped[Optional[int]] = mapped_column(ForeignKey("employee.employee_id"))

    support_rep: Mapped[Optional[Employee]] = relationship(back_populates="customers")
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("ix_customer_country", "country"),
    )


# =============================================================================
# MUSIC CATALOG
# =============================================================================

class Artist(Base):
    """Artist Table"""
    __tablename__ = "artist"

    artist_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(120))

    albums: Mapped[List["Album"]] = relationship(back_populates="artist")


class Album(Base):
    """Album Table"""
    __tablename__ = "album"

    album_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(160), nullable=False)
    artist_id: Mapped[int] = mapped_column(ForeignKey("artist.artist_id"), nullable=False)

    artist: Mapped[Artist] = relationship(back_populates="albums")
    tracks: Mapped[List["Track"]] = relationship(back_populates="album")


class Genre(Base):
    """Genre Table"""
    __tablename__ = "genre"

    genre_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(120))


class MediaType(Base):
    """Media Type Table"""
    __tablename__ = "media_type"

    media_type_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(120))


class Track(Base):
    """
    Track Table

    Album and genre are optional references.
    """
    __tablename__ = "track"

    track_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    album_id: Mapped[Optional[int]] = mapped_column(ForeignKey("album.album_id"))
    media_type_id: Mapped[Optional[int]] = mapped_column(ForeignKey("media_type.media_type_id"))
    genre_id: Mapped[Optional[int]] = mapped_column(ForeignKey("genre.genre_id"))
    composer: Mapped[Optional[str]] = mapped_column(String(220))
    milliseconds: Mapped[int] = mapped_column(Integer, nullable=False)
    bytes: Mapped[Optional[int]] = mapped_column(Integer)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    album: Mapped[Optional[Album]] = relationship(back_populates="tracks")
    genre: Mapped[Optional[Genre]] = relationship()

    __table_args__ = (
        Index("ix_track_album", "album_id"),
        Index("ix_track_genre", "genre_id"),
    )


# =============================================================================
# SALES
# =============================================================================

class Invoice(Base):
    """
    Invoice Fact Table

    ``total`` is denormalized: it should equal the sum of the invoice's
    lines (unit_price * quantity).
    """
    __tablename__ = "invoice"

    invoice_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customer.customer_id"), nullable=False)
    invoice_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    billing_address: Mapped[Optional[str]] = mapped_column(String(120))
    billing_city: Mapped[Optional[str]] = mapped_column(String(50))
    billing_state: Mapped[Optional[str]] = mapped_column(String(50))
    billing_country: Mapped[Optional[str]] = mapped_column(String(50))
    billing_postal_code: Mapped[Optional[str]] = mapped_column(String(20))
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    customer: Mapped[Customer] = relationship(back_populates="invoices")
    lines: Mapped[List["InvoiceLine"]] = relationship(back_populates="invoice")

    __table_args__ = (
        Index("ix_invoice_customer", "customer_id"),
        Index("ix_invoice_billing_country", "billing_country"),
    )


class InvoiceLine(Base):
    """Invoice Line Fact Table"""
    __tablename__ = "invoice_line"

    invoice_line_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoice.invoice_id"), nullable=False)
    track_id: Mapped[int] = mapped_column(ForeignKey("track.track_id"), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    invoice: Mapped[Invoice] = relationship(back_populates="lines")
    track: Mapped[Track] = relationship()

    __table_args__ = (
        Index("ix_invoice_line_invoice", "invoice_id"),
        Index("ix_invoice_line_track", "track_id"),
    )


# =============================================================================
# PLAYLISTS
# =============================================================================

playlist_track = Table(
    "playlist_track",
    Base.metadata,
    Column("playlist_id", ForeignKey("playlist.playlist_id"), primary_key=True),
    Column("track_id", ForeignKey("track.track_id"), primary_key=True),
)


class Playlist(Base):
    """Playlist Table"""
    __tablename__ = "playlist"

    playlist_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(120))

    tracks: Mapped[List[Track]] = relationship(secondary=playlist_track)
