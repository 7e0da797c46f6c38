"""Tests for centralized logging configuration."""

import logging

import pytest
from pydantic import ValidationError

from config import Settings
from logging_config import NOISY_LOGGERS, setup_logging


@pytest.fixture
def configure(monkeypatch):
    """Run setup_logging() with LOG_LEVEL taken from the environment."""

    def _configure(level: str):
        monkeypatch.setenv("LOG_LEVEL", level)
        monkeypatch.setattr("logging_config.settings", Settings(_env_file=None))
        setup_logging()

    return _configure


class TestSetupLogging:
    """Tests for setup_logging()."""

    @pytest.mark.parametrize(
        "level, expected",
        [("INFO", logging.INFO), ("DEBUG", logging.DEBUG), ("warning", logging.WARNING)],
    )
    def test_root_level_from_settings(self, configure, level, expected):
        configure(level)
        assert logging.getLogger().level == expected

    def test_noisy_loggers_suppressed(self, configure):
        configure("DEBUG")
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING, (
                f"{name} logger not suppressed"
            )

    def test_http_client_loggers_are_noisy(self):
        """httpx logs request URLs carrying requisition and account ids."""
        assert {"httpx", "httpcore"} <= set(NOISY_LOGGERS)

    def test_app_loggers_follow_root(self, configure):
        configure("DEBUG")
        assert logging.getLogger("services.bank_sync_service").getEffectiveLevel() == logging.DEBUG


class TestLogLevelSetting:
    def test_invalid_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "VERBOS")
        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            Settings(_env_file=None)

    def test_log_level_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert Settings(_env_file=None).LOG_LEVEL == "DEBUG"
