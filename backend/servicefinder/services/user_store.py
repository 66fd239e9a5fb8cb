import hashlib
import hmac
import os
import re
import sqlite3
from typing import Optional

from servicefinder import config
from servicefinder.models import UserPublic
from servicefinder.services.database import (
    Database,
    StoreConflictError,
    StoreValidationError,
    database,
    utc_now_iso,
)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

SIGNUP_ROLES = {"Customer", "ServiceProvider"}
ALL_ROLES = SIGNUP_ROLES | {"Admin"}
ROLE_ALIASES = {"service provider": "ServiceProvider", "serviceprovider": "ServiceProvider"}


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, config.PASSWORD_HASH_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        salt_hex, hash_hex = hashed_password.split("$", 1)
        salt = bytes.fromhex(salt_hex)
        stored = bytes.fromhex(hash_hex)
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", plain_password.encode("utf-8"), salt, config.PASSWORD_HASH_ITERATIONS)
    return hmac.compare_digest(digest, stored)


def normalize_role(role: str) -> str:
    value = (role or "").strip()
    return ROLE_ALIASES.get(value.lower(), value)


class UserStore:
    def __init__(self, db: Database) -> None:
        self._db = db

    def _row_to_user(self, row: sqlite3.Row) -> UserPublic:
        return UserPublic(
            id=int(row["id"]),
            username=row["username"],
            email=row["email"],
            role=row["role"],
            created_at=row["created_at"],
        )

    def register(self, *, username: str, email: str, password: str, role: str) -> int:
        username = (username or "").strip()
        email = (email or "").strip()
        role = normalize_role(role)
        if not username or not email or not password or not role:
            raise StoreValidationError("All fields are required")
        if not EMAIL_RE.match(email):
            raise StoreValidationError("Please provide a valid email address")
        if len(password) < 6:
            raise StoreValidationError("Password must be at least 6 characters long")
        if len(username) < 3 or len(username) > 50:
            raise StoreValidationError("Username must be between 3 and 50 characters")
        if role not in SIGNUP_ROLES:
            raise StoreValidationError("Invalid role. Must be 'Customer' or 'ServiceProvider'")
        return self.create_user(username=username, email=email, password=password, role=role)

    def create_user(self, *, username: str, email: str, password: str, role: str) -> int:
        """Insert a user without signup rules; the only way to create an Admin."""
        role = normalize_role(role)
        if role not in ALL_ROLES:
            raise StoreValidationError(f"Invalid role: {role}")
        password_hash = hash_password(password)
        try:
            with self._db.session() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO users (username, email, password_hash, role, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (username.strip(), email.strip().lower(), password_hash, role, utc_now_iso()),
                )
                return int(cursor.lastrowid)
        except sqlite3.IntegrityError as exc:
            raise StoreConflictError("User with this email already exists") from exc

    def get_user(self, user_id: int) -> Optional[UserPublic]:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT id, username, email, role, created_at FROM users WHERE id = ?",
                (user_id,),
            ).fetchone()
        return self._row_to_user(row) if row else None

    def authenticate(self, *, identifier: str, password: str) -> Optional[UserPublic]:
        identifier = (identifier or "").strip()
        if not identifier or not password:
            raise StoreValidationError("Username/Email and password are required")
        with self._db.session() as conn:
            row = conn.execute(
                """
                SELECT id, username, email, password_hash, role, created_at
                FROM users
                WHERE email = ? OR username = ?
                ORDER BY id
                LIMIT 1
                """,
                (identifier.lower(), identifier),
            ).fetchone()
        if not row or not verify_password(password, row["password_hash"]):
            return None
        return self._row_to_user(row)


user_store = UserStore(database)
