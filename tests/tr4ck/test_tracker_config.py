import os

import pytest

from tr4ck.backend.config import (
    ConfigError,
    Settings,
    load_from_env,
    normalize_database_url,
)

ENV_KEYS = (
    "DATABASE_URL",
    "TR4CK_HOST",
    "PORT",
    "LOGIN_USER",
    "LOGIN_PASS",
    "TR4CK_API_URL",
    "TR4CK_SAVE_DELAY",
    "TR4CK_DATA_DIR",
    "TR4CK_TZ",
    "OPENAI_MODEL",
    "TR4CK_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_from_env()
    assert settings.port == 4000
    assert settings.save_delay == 0.5
    assert settings.api_url == "http://localhost:4000"
    assert settings.timezone is None
    assert not settings.auth_required


def test_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db/tr4ck")
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("LOGIN_PASS", "pw")
    monkeypatch.setenv("TR4CK_SAVE_DELAY", "1.5")
    monkeypatch.setenv("TR4CK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TR4CK_TZ", "Europe/Berlin")
    settings = load_from_env()
    assert settings.port == 8080
    assert settings.auth_required
    assert settings.save_delay == 1.5
    assert settings.timezone == "Europe/Berlin"
    assert settings.flags_path == os.path.join(str(tmp_path), "auth.json")
    assert settings.require_database_url() == "postgresql+psycopg2://u:p@db/tr4ck"


def test_bad_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("PORT", "eighty")
    monkeypatch.setenv("TR4CK_SAVE_DELAY", "-1")
    settings = load_from_env()
    assert settings.port == 4000
    assert settings.save_delay == 0.5


def test_normalize_database_url():
    assert normalize_database_url("postgresql://h/db") == "postgresql+psycopg2://h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite:///x.db"


def test_database_url_required():
    with pytest.raises(ConfigError):
        Settings().require_database_url()
