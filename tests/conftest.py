"""
Test Suite Configuration
"""
from datetime import date
from pathlib import Path
from typing import Callable, Dict

import pytest
import polars as pl

from music_analytics.config import Settings
from music_analytics.reporting import Snapshot


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing")


@pytest.fixture
def sample_frames() -> Dict[str, pl.DataFrame]:
    """
    Small, consistent music store.

    Track 104 has neither album nor genre. Invoice totals equal the sum of
    their lines.
    """
    return {
        "employee": pl.DataFrame({
            "employee_id": [1, 2, 3, 4, 5],
            "first_name": ["Andrew", "Nancy", "Jane", "Margaret", "Madan"],
            "last_name": ["Adams", "Edwards", "Peacock", "Park", "Mohan"],
            "title": [
                "General Manager",
                "Sales Manager",
                "Sales Support Agent",
                "Sales Support Agent",
                "Senior General Manager",
            ],
            "seniority": [6, 4, 1, 1, 7],
            "reports_to": [5, 1, 2, 2, None],
        }),
        "customer": pl.DataFrame({
            "customer_id": [1, 2, 3, 4],
            "first_name": ["Luis", "Leonie", "Frank", "Jack"],
            "last_name": ["Goncalves", "Kohler", "Harris", "Smith"],
            "email": ["luis@example.br", "leonie@example.de", "frank@example.us", "jack@example.us"],
            "city": ["Sao Paulo", "Stuttgart", "Cupertino", "Redmond"],
            "country": ["Brazil", "Germany", "USA", "USA"],
            "support_rep_id": [3, 4, 3, 4],
        }),
        "invoice": pl.DataFrame({
            "invoice_id": [1, 2, 3, 4, 5],
            "customer_id": [1, 2, 3, 4, 1],
            "invoice_date": [
                date(2021, 1, 3),
                date(2021, 1, 4),
                date(2021, 1, 5),
                date(2021, 1, 6),
                date(2021, 2, 1),
            ],
            "billing_city": ["Sao Paulo", "Stuttgart", "Cupertino", "Redmond", "Sao Paulo"],
            "billing_country": ["Brazil", "Germany", "USA", "USA", "Brazil"],
            "total": [1.98, 1.98, 2.97, 0.99, 0.99],
        }),
        "invoice_line": pl.DataFrame({
            "invoice_line_id": [1, 2, 3, 4, 5, 6, 7, 8],
            "invoice_id": [1, 1, 2, 3, 3, 3, 4, 5],
            "track_id": [100, 101, 103, 102, 103, 104, 100, 102],
            "unit_price": [0.99] * 8,
            "quantity": [1, 1, 2, 1, 1, 1, 1, 1],
        }),
        "track": pl.DataFrame({
            "track_id": [100, 101, 102, 103, 104],
            "name": ["Highway to Hell", "Thunderstruck", "Kashmir", "So What", "Untitled"],
            "album_id": [10, 10, 20, 30, None],
            "genre_id": [1, 1, 1, 2, None],
            "media_type_id": [1, 1, 1, 1, 1],
            "milliseconds": [300000, 200000, 400000, 100000, 250000],
            "unit_price": [0.99] * 5,
        }),
        "album": pl.DataFrame({
            "album_id": [10, 20, 30],
            "title": ["Highway to Hell", "Physical Graffiti", "Kind of Blue"],
            "artist_id": [1, 2, 3],
        }),
        "artist": pl.DataFrame({
            "artist_id": [1, 2, 3],
            "name": ["AC/DC", "Led Zeppelin", "Miles Davis"],
        }),
        "genre": pl.DataFrame({
            "genre_id": [1, 2, 3],
            "name": ["Rock", "Jazz", "Metal"],
        }),
    }


@pytest.fixture
def sample_snapshot(sample_frames) -> Snapshot:
    """Validated snapshot of the sample store"""
    return Snapshot.from_frames(sample_frames, source="test")


@pytest.fixture
def build_snapshot() -> Callable[..., Snapshot]:
    """Factory building a validated snapshot from column dictionaries"""
    def _build(**relations: dict) -> Snapshot:
        frames = {name: pl.DataFrame(columns) for name, columns in relations.items()}
        return Snapshot.from_frames(frames, source="test")

    return _build


@pytest.fixture
def sample_csv_dir(tmp_path: Path, sample_frames) -> Path:
    """Sample store exported as CSV files, with textual employee levels"""
    directory = tmp_path / "exports"
    directory.mkdir()
    for relation, df in sample_frames.items():
        if relation == "employee":
            df = df.with_columns(
                pl.format("L{}", pl.col("seniority")).alias("levels")
            ).drop("seniority")
        df.write_csv(directory / f"{relation}.csv")
    return directory
