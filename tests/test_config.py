# ABOUTME: Tests for the configuration module.
# ABOUTME: Covers Settings defaults, environment variable overrides, and data directory creation.

import os
import tempfile
from pathlib import Path
from unittest import mock

import pytest
from pydantic import ValidationError

from anonymous_carryover.config import Settings, ensure_data_dir, get_settings


class TestSettingsDefaults:
    """Tests for Settings class default values."""

    def test_db_path_default(self) -> None:
        """db_path defaults to ~/.anonymous-carryover/carryover.db."""
        settings = Settings()
        assert settings.db_path == Path.home() / ".anonymous-carryover" / "carryover.db"

    def test_session_limits_default(self) -> None:
        """Sessions hold 50 actions and live for 24 hours."""
        settings = Settings()
        assert settings.max_actions_per_session == 50
        assert settings.session_expiration_ms == 24 * 60 * 60 * 1000

    def test_skew_window_default(self) -> None:
        """Clients may be one minute ahead and seven days behind."""
        settings = Settings()
        assert settings.future_skew_ms == 60_000
        assert settings.max_action_age_ms == 7 * 24 * 60 * 60 * 1000
        assert settings.token_max_age_ms == 7 * 24 * 60 * 60 * 1000

    def test_rate_limit_defaults(self) -> None:
        """Ten requests per minute with a 1% sweep chance."""
        settings = Settings()
        assert settings.rate_limit_max_requests == 10
        assert settings.rate_limit_window_ms == 60_000
        assert settings.rate_limit_sweep_probability == 0.01


class TestSettingsEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_db_path_from_env(self) -> None:
        """db_path can be overridden via environment variable."""
        with tempfile.TemporaryDirectory() as tmpdir:
            custom_path = Path(tmpdir) / "custom.db"
            with mock.patch.dict(os.environ, {"ANON_CARRYOVER_DB_PATH": str(custom_path)}):
                settings = Settings()
                assert settings.db_path == custom_path

    def test_max_actions_from_env(self) -> None:
        """max_actions_per_session can be overridden via environment variable."""
        with mock.patch.dict(os.environ, {"ANON_CARRYOVER_MAX_ACTIONS_PER_SESSION": "20"}):
            settings = Settings()
            assert settings.max_actions_per_session == 20

    def test_invalid_sweep_probability_rejected(self) -> None:
        """Probabilities above 1 are rejected."""
        with pytest.raises(ValidationError):
            Settings(rate_limit_sweep_probability=1.5)

    def test_zero_max_actions_rejected(self) -> None:
        """A session must be able to hold at least one action."""
        with pytest.raises(ValidationError):
            Settings(max_actions_per_session=0)


class TestGetSettings:
    """Tests for the cached settings accessor."""

    def test_get_settings_is_cached(self) -> None:
        """Repeated calls return the same instance."""
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()

    def test_ensure_data_dir_creates_directory(self) -> None:
        """ensure_data_dir creates the parent directory of the database."""
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "nested" / "dir" / "carryover.db"
            with mock.patch.dict(os.environ, {"ANON_CARRYOVER_DB_PATH": str(db_path)}):
                get_settings.cache_clear()
                try:
                    data_dir = ensure_data_dir()
                    assert data_dir == db_path.parent
                    assert data_dir.exists()
                finally:
                    get_settings.cache_clear()
