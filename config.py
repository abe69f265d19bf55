from __future__ import annotations
import os
from pathlib import Path

# Absolute project dir
BASE_DIR = Path(__file__).resolve().parent
# Absolute instance dir (defaults to <project>/instance)
INSTANCE_DIR = Path(os.getenv("INSTANCE_DIR", BASE_DIR / "instance")).resolve()


def _env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev")  # override in prod!
    JSON_SORT_KEYS = False

    # Database (absolute sqlite path; forward slashes are fine on Windows)
    DEFAULT_SQLITE = f"sqlite:///{(INSTANCE_DIR / 'catalog.db').as_posix()}"
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", DEFAULT_SQLITE)
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cache configuration (defaults to in-process SimpleCache)
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")
    CACHE_DEFAULT_TIMEOUT = int(os.getenv("CACHE_DEFAULT_TIMEOUT", 300))
    CACHE_REDIS_URL = os.getenv("CACHE_REDIS_URL")

    # Card catalog queries
    CARDS_DEFAULT_PAGE_SIZE = int(os.getenv("CARDS_DEFAULT_PAGE_SIZE", 60))
    CARDS_COUNT_CACHE_TIMEOUT = int(os.getenv("CARDS_COUNT_CACHE_TIMEOUT", 300))
    # Page totals are counted on a worker thread with its own connection.
    # In-memory SQLite URLs always count inline: a second connection sees an empty database.
    CARDS_PARALLEL_COUNT = _env_flag("CARDS_PARALLEL_COUNT", "1")

    # Rate limiting
    RATELIMIT_ENABLED = _env_flag("RATELIMIT_ENABLED", "1")
    RATELIMIT_STORAGE_URI = os.getenv(
        "RATELIMIT_STORAGE_URI",
        os.getenv("REDIS_URL") or "memory://",
    )
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per minute")
    BULK_EXPORT_RATE_LIMIT = os.getenv("BULK_EXPORT_RATE_LIMIT", "10 per minute")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False


def _select_config():
    env = os.getenv("FLASK_ENV")
    if env == "development":
        return DevelopmentConfig
    if env == "testing":
        return TestingConfig
    secret = os.getenv("SECRET_KEY", "dev")
    if not secret or secret == "dev":
        raise RuntimeError("SECRET_KEY must be set to a non-default value in production.")
    return ProductionConfig


# Choose config
Config = _select_config()
