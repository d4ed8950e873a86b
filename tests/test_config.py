"""
Tests for engine settings.
"""

import pytest
from pydantic import ValidationError

from config import NotificationChannel, Settings


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.default_window_days == 30
        assert settings.history_max_limit == 500
        assert settings.notification_channels == ["email", "sms"]

    def test_default_channels_are_the_built_in_ones(self):
        settings = Settings(_env_file=None)

        assert settings.notification_channels == [NotificationChannel.EMAIL, NotificationChannel.SMS]

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_WINDOW_DAYS", "7")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.default_window_days == 7
        assert settings.log_level == "DEBUG"

    def test_channels_normalized(self):
        settings = Settings(_env_file=None, notification_channels=[" Email", "SMS", ""])

        assert settings.notification_channels == ["email", "sms"]

    @pytest.mark.parametrize("field,value", [
        ("environment", "qa"),
        ("log_level", "loud"),
        ("notification_channels", []),
        ("default_window_days", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
