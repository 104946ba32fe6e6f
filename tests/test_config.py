"""Tests for settings loading."""

from finbot.config import FinbotSettings, mask_secret


def test_reads_plain_env_names(monkeypatch):
    monkeypatch.setenv("APP_ID", "cli_a1b2c3d4e5")
    monkeypatch.setenv("APP_SECRET", "s3cret")
    monkeypatch.setenv("DATABASE_PATH", "/tmp/x/bot.db")
    monkeypatch.setenv("PORT", "9090")

    settings = FinbotSettings()

    assert settings.app_id == "cli_a1b2c3d4e5"
    assert settings.database_path == "/tmp/x/bot.db"
    assert settings.port == 9090
    assert settings.has_credentials


def test_defaults(monkeypatch):
    for key in ("APP_ID", "APP_SECRET", "DATABASE_PATH", "PORT", "CHAT_PAGE_SIZE"):
        monkeypatch.delenv(key, raising=False)
    settings = FinbotSettings(_env_file=None)
    assert settings.database_path == "data/fin_bot.db"
    assert settings.port == 8080
    assert settings.chat_page_size == 50
    assert not settings.has_credentials


def test_mask_secret():
    assert mask_secret("cli_a1b2c3d4e5") == "cli_...d4e5"
    assert mask_secret("short") == "****"
