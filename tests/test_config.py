"""Tests for environment configuration."""
from __future__ import annotations

import pytest

from config import DisciplineConfig, Environment


class TestDisciplineConfig:
    """Test loading and validating settings from the environment."""

    def test_defaults(self, monkeypatch):
        for name in ("STATE_API_URL", "GOAL_AMOUNT", "OPENROUTER_API_KEY", "LOG_TO_FILE", "ENVIRONMENT"):
            monkeypatch.delenv(name, raising=False)

        settings = DisciplineConfig()

        assert settings.store.base_url == "http://localhost:3001"
        assert settings.progress.goal == 60000
        assert settings.ai.api_key is None
        assert settings.is_development()
        assert settings.get_feature_status() == {"ai_enabled": False, "file_logging": False}

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("STATE_API_URL", "https://state.example.com/")
        monkeypatch.setenv("GOAL_AMOUNT", "80000")
        monkeypatch.setenv("SAVE_DEBOUNCE_SECONDS", "0.5")
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-secret")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = DisciplineConfig()

        assert settings.store.base_url == "https://state.example.com"
        assert settings.store.debounce_seconds == 0.5
        assert settings.progress.goal == 80000
        assert settings.environment == Environment.PRODUCTION
        assert settings.to_dict()["ai"]["api_key"] == "sk-or-..."

    def test_validation_errors_are_collected(self, monkeypatch):
        monkeypatch.setenv("STATE_API_URL", "ftp://nowhere")
        monkeypatch.setenv("GOAL_AMOUNT", "0")
        monkeypatch.setenv("TIMEZONE", "Mars/Olympus")

        with pytest.raises(ValueError) as exc_info:
            DisciplineConfig()

        message = str(exc_info.value)
        assert "STATE_API_URL" in message
        assert "GOAL_AMOUNT" in message
        assert "Mars/Olympus" in message

    def test_file_handler_only_when_enabled(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_DIR", str(tmp_path))
        monkeypatch.setenv("LOG_TO_FILE", "false")
        assert "file" not in DisciplineConfig().get_logging_config()["handlers"]

        monkeypatch.setenv("LOG_TO_FILE", "true")
        logging_config = DisciplineConfig().get_logging_config()
        assert logging_config["handlers"]["file"]["class"] == "logging.handlers.RotatingFileHandler"
        assert logging_config["loggers"]["aiohttp"]["level"] == "WARNING"
