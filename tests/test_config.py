"""Tests for settings parsing and adapter selection."""

import pytest
from pydantic import ValidationError

from tableside.core.config import EnvironmentMode, Settings
from tableside.services.feed import MemoryChangeFeed, get_change_feed, reset_change_feed
from tableside.services.notifications import MockNotificationSink, get_notification_sink, reset_notification_sink


class TestSettings:
    def test_env_mode_is_case_insensitive(self):
        assert Settings(env_mode="Production").env_mode == EnvironmentMode.PRODUCTION

    def test_invalid_env_mode(self):
        with pytest.raises(ValidationError):
            Settings(env_mode="party")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationError):
            Settings(timezone="Mars/Olympus_Mons")

    def test_late_alert_minutes_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(late_alert_minutes=0)

    def test_production_config_check(self):
        settings = Settings(
            env_mode="production",
            database_url="sqlite+aiosqlite:///floor.db",
            notification_webhook_url=None,
        )
        assert settings.validate_production_config() == ["DATABASE_URL", "NOTIFICATION_WEBHOOK_URL"]

    def test_development_needs_nothing(self):
        assert Settings(env_mode="development").validate_production_config() == []


class TestAdapterFactories:
    """Development mode picks the in-process adapters."""

    def test_development_adapters(self):
        reset_change_feed()
        reset_notification_sink()
        try:
            assert isinstance(get_change_feed(), MemoryChangeFeed)
            assert isinstance(get_notification_sink(), MockNotificationSink)
            assert get_change_feed() is get_change_feed()
        finally:
            reset_change_feed()
            reset_notification_sink()
