"""Tests for configuration loading and validation."""

import pytest

from carecoord.config import (
    AppConfig,
    BookingConfig,
    SessionConfig,
    StoreConfig,
    _safe_int,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_empty_bookings_path(self):
        config = AppConfig(store=StoreConfig(bookings_path=" / "))
        with pytest.raises(ValueError, match="BOOKINGS_PATH"):
            _validate_config(config)

    def test_empty_users_path(self):
        config = AppConfig(store=StoreConfig(users_path=""))
        with pytest.raises(ValueError, match="USERS_PATH"):
            _validate_config(config)

    def test_empty_provider_role(self):
        config = AppConfig(booking=BookingConfig(provider_role="  "))
        with pytest.raises(ValueError, match="PROVIDER_ROLE"):
            _validate_config(config)

    @pytest.mark.parametrize("hours", [0, 25])
    def test_max_duration_out_of_range(self, hours):
        config = AppConfig(booking=BookingConfig(max_duration_hours=hours))
        with pytest.raises(ValueError, match="MAX_DURATION_HOURS"):
            _validate_config(config)

    def test_empty_session_file(self):
        config = AppConfig(session=SessionConfig(session_file=""))
        with pytest.raises(ValueError, match="SESSION_FILE"):
            _validate_config(config)

    def test_configs_are_frozen(self):
        config = AppConfig()
        with pytest.raises(AttributeError):
            config.log_level = "DEBUG"


class TestSafeInt:
    def test_default_used_when_unset(self):
        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_env_value_parsed(self, monkeypatch):
        monkeypatch.setenv("CARECOORD_TEST_INT", "7")
        assert _safe_int("CARECOORD_TEST_INT", "1") == 7

    def test_bad_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("CARECOORD_TEST_INT", "seven")
        with pytest.raises(ValueError, match="CARECOORD_TEST_INT"):
            _safe_int("CARECOORD_TEST_INT", "1")
