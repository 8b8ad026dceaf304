"""
Tests for configuration.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from rexledger.config import (
    AppSettings,
    LedgerSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "LEDGER_DATABASE_PATH",
        "LEDGER_START_YEAR",
        "LEDGER_YEARS",
        "LEDGER_DEFAULT_METHODS",
        "LEDGER_BUSY_TIMEOUT_SECONDS",
        "LEDGER_AUDIT_ENABLED",
        "LOG_LEVEL",
        "LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestLedgerSettings:
    """Tests for LedgerSettings."""

    def test_defaults(self):
        """Test default values."""
        settings = LedgerSettings()
        assert settings.database_path == "data.sqlite"
        assert settings.start_year == 2022
        assert settings.years == 4
        assert settings.default_methods_list == ["Cash", "Bank"]
        assert settings.audit_enabled is True

    def test_environment_override(self, monkeypatch):
        """Test that LEDGER_ variables override defaults."""
        monkeypatch.setenv("LEDGER_START_YEAR", "2020")
        monkeypatch.setenv("LEDGER_DEFAULT_METHODS", " Wallet , Savings Account ")

        settings = LedgerSettings()
        assert settings.start_year == 2020
        assert settings.default_methods_list == ["Wallet", "Savings Account"]

    @pytest.mark.parametrize("methods", ["", " , ", "Cash,Cash", "Cash to Bank", "Cash,Wallet to", "to Bank"])
    def test_bad_default_methods(self, methods):
        """Test that unusable default method lists are rejected."""
        with pytest.raises(PydanticValidationError):
            LedgerSettings(default_methods=methods)

    def test_years_bounds(self):
        """Test that the span must be between 1 and 100 years."""
        with pytest.raises(PydanticValidationError):
            LedgerSettings(years=0)
        with pytest.raises(PydanticValidationError):
            LedgerSettings(years=101)

    def test_path_expands_user(self):
        """Test that ~ is expanded in the database path."""
        settings = LedgerSettings(database_path="~/ledger.sqlite")
        assert "~" not in str(settings.path)


class TestAppSettings:
    """Tests for AppSettings."""

    def test_log_level_normalized(self):
        """Test that the log level is upper-cased."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level(self):
        """Test that an unknown level is rejected."""
        with pytest.raises(PydanticValidationError):
            AppSettings(log_level="chatty")


class TestSettingsRoot:
    """Tests for the cached root settings."""

    def test_get_settings_is_cached(self):
        """Test that get_settings returns the same object until cleared."""
        assert get_settings() is get_settings()

    def test_validate_all_settings(self):
        """Test the startup check."""
        assert validate_all_settings() == {"ledger": True, "app": True}

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        """Test that a bad environment value is reported, not raised."""
        monkeypatch.setenv("LEDGER_YEARS", "0")
        results = validate_all_settings()
        assert results["ledger"] is False
        assert "ledger_error" in results
        assert results["app"] is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
