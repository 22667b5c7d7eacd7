"""
Unit Tests - Data Quality
"""
import pytest
import polars as pl

from music_analytics.quality.validators import (
    DataValidator,
    ValidationSeverity,
    ValidationStatus,
    create_relation_validator,
)


class TestDataValidator:
    """Tests for DataValidator"""

    def test_not_null_check_passes(self):
        """Test not null check with valid data"""
        df = pl.DataFrame({"id": [1, 2, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.passed_checks == 1

    def test_not_null_check_fails(self):
        """Test not null check with null values"""
        df = pl.DataFrame({"id": [1, None, 3], "name": ["a", "b", "c"]})

        validator = DataValidator()
        validator.add_not_null_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.failed_checks == 1
        assert result.checks[0].failed_rows == 1

    def test_unique_check_fails(self):
        """Test unique check with duplicates"""
        df = pl.DataFrame({"id": [1, 2, 1]})

        validator = DataValidator()
        validator.add_unique_check("id")

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        assert result.checks[0].details["duplicate_count"] == 1

    def test_range_check(self):
        """Test range check"""
        df = pl.DataFrame({"quantity": [1, 3, 0, -2]})

        validator = DataValidator()
        validator.add_range_check("quantity", min_value=1)

        result = validator.validate(df)

        assert result.status == ValidationStatus.FAILED
        # Two values below range: 0 and -2
        assert result.checks[0].failed_rows == 2

    def test_missing_column(self):
        """Test a check on an absent column fails"""
        df = pl.DataFrame({"id": [1]})

        result = DataValidator().add_not_null_check("email").validate(df)

        assert not result.checks[0].passed
        assert "not found" in result.checks[0].message

    def test_warning_does_not_fail_suite(self):
        """Test failed warnings are counted but the suite still passes"""
        df = pl.DataFrame({"unit_price": [0.99, -1.0]})

        validator = DataValidator().add_positive_check("unit_price", severity=ValidationSeverity.WARNING)

        result = validator.validate(df)

        assert result.status == ValidationStatus.PASSED
        assert result.warning_count == 1
        assert result.errors == []


class TestReferentialIntegrity:
    """Tests for foreign key checks"""

    def test_orphans_reported(self):
        """Test values missing from the referenced frame are orphans"""
        albums = pl.DataFrame({"album_id": [1, 2]})
        tracks = pl.DataFrame({"track_id": [1, 2, 3], "album_id": [1, 7, 7]})

        validator = DataValidator().add_referential_integrity_check("album_id", albums, "album_id")

        check = validator.validate(tracks).checks[0]

        assert not check.passed
        assert check.failed_rows == 2
        assert check.details["orphan_values"] == [7]

    def test_null_references_allowed(self):
        """Test a null reference is not an orphan"""
        albums = pl.DataFrame({"album_id": [1]})
        tracks = pl.DataFrame({"track_id": [1, 2], "album_id": [1, None]})

        validator = DataValidator().add_referential_integrity_check("album_id", albums, "album_id")

        assert validator.validate(tracks).status == ValidationStatus.PASSED


class TestRelationValidators:
    """Tests for the per-relation snapshot validators"""

    def test_sample_relations_pass(self, sample_snapshot):
        """Test every sample relation validates cleanly"""
        frames = {name: sample_snapshot.relation(name) for name in sample_snapshot.row_counts}

        for relation, df in frames.items():
            result = create_relation_validator(relation, frames).validate(df)
            assert result.status == ValidationStatus.PASSED, relation

    def test_invoice_line_rules(self, sample_snapshot):
        """Test quantity below one is an error"""
        frames = {name: sample_snapshot.relation(name) for name in sample_snapshot.row_counts}
        lines = frames["invoice_line"].with_columns(pl.lit(0).alias("quantity"))

        result = create_relation_validator("invoice_line", frames).validate(lines)

        assert [c.name for c in result.errors] == ["range_quantity"]

    @pytest.mark.parametrize("relation,fk_count", [
        ("invoice_line", 2),
        ("track", 2),
        ("genre", 0),
    ])
    def test_foreign_key_checks(self, sample_snapshot, relation, fk_count):
        """Test one check per outgoing foreign key"""
        frames = {name: sample_snapshot.relation(name) for name in sample_snapshot.row_counts}

        result = create_relation_validator(relation, frames).validate(frames[relation])

        fk_checks = [c for c in result.checks if c.name.startswith("fk_")]
        assert len(fk_checks) == fk_count
