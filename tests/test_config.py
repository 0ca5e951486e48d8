"""Test suite for settings."""

from docqa_chat.config import Settings, configure_logging


def test_settings_defaults(monkeypatch):
    """Test defaults when no environment is set."""
    for name in ["DOCQA_APP_NAME", "DOCQA_REPLY_TIMEOUT", "DOCQA_BRIDGE_AVAILABLE", "DOCQA_LOG_LEVEL"]:
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.app_name == "DocQA Chat"
    assert settings.reply_timeout == 30.0
    assert settings.bridge_available is False
    assert settings.log_level == "info"


def test_settings_from_environment(monkeypatch):
    """Test DOCQA_* variables override the defaults."""
    monkeypatch.setenv("DOCQA_REPLY_TIMEOUT", "2.5")
    monkeypatch.setenv("DOCQA_BRIDGE_AVAILABLE", "yes")
    monkeypatch.setenv("DOCQA_LOG_LEVEL", "warning")

    settings = Settings.from_env()

    assert settings.reply_timeout == 2.5
    assert settings.bridge_available is True
    assert settings.log_level == "warning"
    configure_logging(settings.log_level)
