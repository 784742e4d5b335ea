from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

APP_NAME = "tr4ck"
DEFAULT_API_URL = "http://localhost:4000"
DEFAULT_PORT = 4000
DEFAULT_SAVE_DELAY = 0.5
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class ConfigError(RuntimeError):
    """Raised when a required setting is missing or unusable."""


@dataclass
class Settings:
    database_url: str = ""
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    login_user: str = ""
    login_pass: str = ""
    api_url: str = DEFAULT_API_URL
    save_delay: float = DEFAULT_SAVE_DELAY
    data_dir: str = ""
    timezone: str | None = None
    model: str = "gpt-4o-mini"
    log_level: str = "INFO"

    @property
    def auth_required(self) -> bool:
        return bool(self.login_user or self.login_pass)

    @property
    def flags_path(self) -> str:
        return os.path.join(self.data_dir or user_data_dir(), "auth.json")

    def require_database_url(self) -> str:
        if not self.database_url:
            raise ConfigError("DATABASE_URL is required.")
        return normalize_database_url(self.database_url)


def user_data_dir() -> str:
    """Return a per-user data directory suitable for the platform."""
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return str(Path(base) / APP_NAME)
    base = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return str(Path(base) / APP_NAME)


def normalize_database_url(url: str) -> str:
    """Accept libpq-style ``postgres://`` URLs as well as SQLAlchemy URLs."""
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[len("postgres://") :]
    if url.startswith("postgresql://"):
        return "postgresql+psycopg2://" + url[len("postgresql://") :]
    return url


def _env_float(name: str, default: float) -> float:
    try:
        val = float(os.environ.get(name, "") or default)
    except ValueError:
        return default
    return val if val >= 0 else default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, "") or default)
    except ValueError:
        return default


def load_from_env() -> Settings:
    """Build `Settings` from the process environment."""
    return Settings(
        database_url=os.environ.get("DATABASE_URL", ""),
        host=os.environ.get("TR4CK_HOST", "0.0.0.0"),
        port=_env_int("PORT", DEFAULT_PORT),
        login_user=os.environ.get("LOGIN_USER", ""),
        login_pass=os.environ.get("LOGIN_PASS", ""),
        api_url=os.environ.get("TR4CK_API_URL", DEFAULT_API_URL),
        save_delay=_env_float("TR4CK_SAVE_DELAY", DEFAULT_SAVE_DELAY),
        data_dir=os.environ.get("TR4CK_DATA_DIR", ""),
        timezone=os.environ.get("TR4CK_TZ") or None,
        model=os.environ.get("OPENAI_MODEL", "gpt-4o-mini"),
        log_level=os.environ.get("TR4CK_LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
