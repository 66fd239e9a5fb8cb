import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Iterator

from servicefinder import config


class StoreError(ValueError):
    """Base class for user-visible store errors."""


class StoreValidationError(StoreError):
    pass


class AvailabilityFormatError(StoreValidationError):
    """Availability was supplied but is not a well-formed schedule."""


class StoreNotFoundError(StoreError):
    pass


class StoreConflictError(StoreError):
    pass


class StorePermissionError(StoreError):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


class Database:
    """Owns the sqlite file shared by the user and listing stores.

    Every call opens a short-lived connection under a process-wide lock, so
    store methods can be pushed to the threadpool from async handlers.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        # sqlite ignores REFERENCES clauses unless enabled per connection.
        conn.execute("PRAGMA foreign_keys = ON")
        # LOWER() only folds ASCII; text search compares through this instead.
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        return conn

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._connect()
            try:
                yield conn
                conn.commit()
            finally:
                conn.close()

    def _init_db(self) -> None:
        with self.session() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    username TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS listings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    provider_id INTEGER NOT NULL REFERENCES users(id),
                    service_name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    category TEXT NOT NULL,
                    price REAL NOT NULL CHECK (price >= 0),
                    availability_json TEXT,
                    location_city TEXT NOT NULL,
                    location_zip TEXT NOT NULL,
                    image_url TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_listings_provider_id ON listings(provider_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_listings_created_at ON listings(created_at)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_listings_category ON listings(category)")


database = Database(db_path=config.DB_PATH)
