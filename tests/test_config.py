"""Tests for settings loading."""

import pytest

from expense_desk.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("DATABASE_URL", "HOST", "PORT", "DEBUG", "LOG_LEVEL", "PAGE_SIZE", "MONTHLY_CAP_SCOPE"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestSettings:
    def test_defaults(self, clean_env):
        settings = Settings.from_env()

        assert settings.database_url.startswith("postgresql+asyncpg://")
        assert settings.port == 8000
        assert settings.debug is False
        assert settings.page_size == 10
        assert settings.monthly_cap_scope == "organization"

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("PAGE_SIZE", "25")
        clean_env.setenv("MONTHLY_CAP_SCOPE", "User")
        clean_env.setenv("DEBUG", "true")
        clean_env.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.page_size == 25
        assert settings.monthly_cap_scope == "user"
        assert settings.debug is True
        assert settings.log_level == "DEBUG"

    def test_unknown_cap_scope(self, clean_env):
        clean_env.setenv("MONTHLY_CAP_SCOPE", "department")
        with pytest.raises(ValueError):
            Settings.from_env()

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            Settings(database_url="sqlite+aiosqlite://", host="", port=0, debug=False, page_size=0)
