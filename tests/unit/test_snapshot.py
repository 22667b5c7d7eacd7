"""
Unit Tests - Snapshot
"""
import dataclasses

import pytest
import polars as pl

from music_analytics.reporting import InvalidSnapshotError, MissingDataError, Snapshot
from music_analytics.reporting.snapshot import find_hierarchy_cycles


class TestSnapshotBuild:
    """Tests for Snapshot.from_frames"""

    def test_sample_snapshot(self, sample_snapshot):
        """Test row counts and source"""
        assert sample_snapshot.source == "test"
        assert sample_snapshot.row_counts["invoice_line"] == 8
        assert sample_snapshot.row_counts["genre"] == 3

    def test_absent_relations_are_empty(self):
        """Test relations not supplied are empty with the full schema"""
        snapshot = Snapshot.from_frames({})

        assert snapshot.track.is_empty()
        assert "milliseconds" in snapshot.track.columns

    def test_optional_columns_filled_with_nulls(self, build_snapshot):
        """Test missing optional columns become typed nulls"""
        snapshot = build_snapshot(genre={"genre_id": [1]})

        assert snapshot.genre["name"].to_list() == [None]
        assert snapshot.genre.schema["name"] == pl.Utf8

    def test_extra_columns_dropped(self, build_snapshot):
        """Test columns outside the schema are not carried"""
        snapshot = build_snapshot(artist={"artist_id": [1], "name": ["AC/DC"], "website": ["x"]})

        assert snapshot.artist.columns == ["artist_id", "name"]

    def test_string_dates_parsed(self, build_snapshot):
        """Test ISO date strings become dates"""
        snapshot = build_snapshot(
            customer={"customer_id": [1]},
            invoice={
                "invoice_id": [1],
                "customer_id": [1],
                "invoice_date": ["2021-01-03"],
                "total": [0.99],
            },
        )

        assert snapshot.invoice.schema["invoice_date"] == pl.Date

    def test_snapshot_is_frozen(self, sample_snapshot):
        """Test attributes cannot be reassigned"""
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample_snapshot.invoice = pl.DataFrame()

    def test_unknown_relation(self):
        """Test relation names outside the schema are rejected"""
        with pytest.raises(InvalidSnapshotError, match="playlist"):
            Snapshot.from_frames({"playlist": pl.DataFrame({"playlist_id": [1]})})

    def test_relation_lookup(self, sample_snapshot):
        """Test lookup by name"""
        assert sample_snapshot.relation("artist").height == 3
        with pytest.raises(KeyError):
            sample_snapshot.relation("playlist")


class TestSnapshotValidation:
    """Tests for schema contract violations"""

    def test_dangling_foreign_key(self, sample_frames):
        """Test an invoice line for an unknown track is rejected"""
        frames = dict(sample_frames)
        frames["invoice_line"] = frames["invoice_line"].with_columns(
            pl.when(pl.col("invoice_line_id") == 1).then(999).otherwise(pl.col("track_id")).alias("track_id")
        )

        with pytest.raises(InvalidSnapshotError) as exc_info:
            Snapshot.from_frames(frames)

        assert any("invoice_line" in p and "999" in p for p in exc_info.value.problems)

    def test_duplicate_primary_key(self, sample_frames):
        """Test duplicated ids are rejected"""
        frames = dict(sample_frames)
        frames["genre"] = pl.concat([frames["genre"], frames["genre"].head(1)])

        with pytest.raises(InvalidSnapshotError, match="duplicate"):
            Snapshot.from_frames(frames)

    def test_missing_required_column(self, sample_frames):
        """Test a relation without a mandatory column is rejected"""
        frames = dict(sample_frames)
        frames["invoice"] = frames["invoice"].drop("total")

        with pytest.raises(InvalidSnapshotError, match="invoice.total"):
            Snapshot.from_frames(frames)

    def test_null_required_value(self, sample_frames):
        """Test a null in a mandatory column is rejected"""
        frames = dict(sample_frames)
        frames["employee"] = frames["employee"].with_columns(
            pl.when(pl.col("employee_id") == 3).then(None).otherwise(pl.col("seniority")).alias("seniority")
        )

        with pytest.raises(InvalidSnapshotError, match="seniority"):
            Snapshot.from_frames(frames)

    def test_ill_typed_column(self, build_snapshot):
        """Test text where a number is expected is rejected"""
        with pytest.raises(InvalidSnapshotError, match="track"):
            build_snapshot(track={"track_id": [1], "milliseconds": ["long"]})

    def test_hierarchy_cycle(self, sample_frames):
        """Test a reports_to cycle is rejected"""
        frames = dict(sample_frames)
        frames["employee"] = frames["employee"].with_columns(
            pl.when(pl.col("employee_id") == 5).then(2).otherwise(pl.col("reports_to")).alias("reports_to")
        )

        with pytest.raises(InvalidSnapshotError, match="cycle"):
            Snapshot.from_frames(frames)

    def test_validation_can_be_skipped(self, sample_frames):
        """Test validate=False accepts dangling references"""
        frames = dict(sample_frames)
        frames["album"] = frames["album"].with_columns(pl.lit(42).alias("artist_id"))

        snapshot = Snapshot.from_frames(frames, validate=False)

        assert snapshot.album["artist_id"].unique().to_list() == [42]


class TestHierarchyCycles:
    """Tests for find_hierarchy_cycles"""

    def test_no_cycle(self, sample_snapshot):
        """Test the sample chain has no cycle"""
        assert find_hierarchy_cycles(sample_snapshot.employee) == []

    def test_self_reference(self):
        """Test an employee reporting to itself"""
        employee = pl.DataFrame({"employee_id": [1, 2], "reports_to": [1, 1]})

        assert find_hierarchy_cycles(employee) == [1]

    def test_only_cycle_members_reported(self):
        """Test employees leading into a cycle are not part of it"""
        employee = pl.DataFrame({"employee_id": [1, 2, 3, 4], "reports_to": [2, 3, 2, 1]})

        assert find_hierarchy_cycles(employee) == [2, 3]


class TestRequire:
    """Tests for Snapshot.require"""

    def test_require_empty_relation(self, build_snapshot):
        """Test an empty relation raises MissingDataError"""
        snapshot = build_snapshot(genre={"genre_id": [1], "name": ["Rock"]})

        snapshot.require("genre")
        with pytest.raises(MissingDataError) as exc_info:
            snapshot.require("genre", "track", report="top_artists_by_genre")

        assert exc_info.value.relation == "track"
        assert exc_info.value.report == "top_artists_by_genre"
