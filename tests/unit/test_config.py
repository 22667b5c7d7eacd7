"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from music_analytics.config import Settings
from music_analytics.config.settings import ReportingSettings


class TestSettings:
    """Tests for settings loading"""

    def test_defaults(self, test_settings):
        """Test defaults of the reporting section"""
        assert test_settings.app_env == "testing"
        assert not test_settings.is_production
        assert test_settings.reporting.default_genre == "Rock"
        assert test_settings.reporting.genre_case_sensitive is False
        assert test_settings.reporting.top_invoices == 3

    def test_environment_override(self, monkeypatch):
        """Test REPORTING_ variables override defaults"""
        monkeypatch.setenv("REPORTING_TOP_INVOICES", "5")
        monkeypatch.setenv("REPORTING_GENRE_CASE_SENSITIVE", "true")

        settings = ReportingSettings()

        assert settings.top_invoices == 5
        assert settings.genre_case_sensitive is True

    def test_invalid_environment(self):
        """Test unknown environments are rejected"""
        with pytest.raises(ValidationError):
            Settings(APP_ENV="moon")

    def test_non_positive_workers_rejected(self, monkeypatch):
        """Test max_workers must be at least one"""
        monkeypatch.setenv("REPORTING_MAX_WORKERS", "0")

        with pytest.raises(ValidationError):
            ReportingSettings()
