"""
Tests for configuration loading.
"""

import pytest
from pathlib import Path

from qisst.config import (
    AppSettings,
    GeminiSettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


class TestSettings:
    """Tests for the pydantic-settings classes."""

    def test_storage_defaults(self, monkeypatch):
        """Test the default backend and data directory."""
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("STORAGE_DATA_DIR", raising=False)
        storage = StorageSettings()
        assert storage.backend == "json"
        assert storage.data_dir == Path("data")
        assert storage.key_prefix == "qisst_"

    def test_storage_rejects_unknown_backend(self, monkeypatch):
        """Test that only known backends are accepted."""
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValueError):
            StorageSettings()

    def test_gemini_is_configured(self):
        """Test API key detection."""
        assert GeminiSettings(api_key="abc").is_configured is True
        assert GeminiSettings(api_key="  ").is_configured is False
        assert GeminiSettings(api_key=None).is_configured is False

    def test_log_level_normalized(self):
        """Test that the log level is upper-cased and checked."""
        assert AppSettings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            AppSettings(log_level="chatty")

    def test_debug_mode_forces_debug_level(self):
        """Test that debug mode overrides the configured log level."""
        assert AppSettings(log_level="warning").effective_log_level == "WARNING"
        assert AppSettings(log_level="warning", debug_mode=True).effective_log_level == "DEBUG"

    def test_get_settings_is_cached(self):
        """Test that settings are built once."""
        get_settings.cache_clear()
        assert get_settings() is get_settings()


class TestValidateAllSettings:
    """Tests for the startup check."""

    def test_missing_gemini_key_reported(self, monkeypatch):
        """Test that a missing key is reported, not raised."""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["storage"] is True
        assert "google_sheets" not in results
        get_settings.cache_clear()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
