import os
from pathlib import Path


def _parse_csv_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _parse_positive_int_env(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


_default_db = str(Path(__file__).resolve().parents[1] / "data" / "servicefinder.sqlite3")

DB_PATH = os.getenv("SERVICEFINDER_DB_PATH", _default_db)
CORS_ORIGINS = _parse_csv_env("CORS_ORIGINS", "*")
TRUSTED_HOSTS = _parse_csv_env("TRUSTED_HOSTS", "*")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

SEARCH_DEFAULT_LIMIT = _parse_positive_int_env("SEARCH_DEFAULT_LIMIT", 12)
SEARCH_MAX_LIMIT = _parse_positive_int_env("SEARCH_MAX_LIMIT", 50)
PASSWORD_HASH_ITERATIONS = _parse_positive_int_env("PASSWORD_HASH_ITERATIONS", 100_000)
REALTIME_SEND_TIMEOUT_SECONDS = _parse_positive_int_env("REALTIME_SEND_TIMEOUT_SECONDS", 5)
