"""SQLite storage for the master account and e-mail verification codes."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from .security import verify_password

_NOT_OPEN = "база данных не инициализирована"

_USERS_TABLE = """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        email TEXT UNIQUE NOT NULL CHECK(length(email) > 0),
        master_key_hash TEXT NOT NULL CHECK(length(master_key_hash) > 0),
        salt TEXT NOT NULL CHECK(length(salt) > 0),
        created_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

_CODES_TABLE = """
    CREATE TABLE IF NOT EXISTS verification_codes (
        email TEXT PRIMARY KEY,
        code TEXT NOT NULL,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        attempts INTEGER DEFAULT 0
    )
"""


class DatabaseError(Exception):
    """Raised when the password store cannot carry out an operation."""


class UserAlreadyExistsError(DatabaseError):
    """Raised when registering an e-mail that is already present."""


@dataclass(frozen=True)
class VerificationRecord:
    """A pending verification code for an e-mail address."""

    code: str
    created_at: datetime
    attempts: int


@contextmanager
def _errors(message: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(f"{message}: {exc}") from exc


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        moment = value
    else:
        moment = datetime.fromisoformat(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def default_database_path(working_dir: str | os.PathLike[str] | None = None) -> Path:
    """Return ``<working_dir>/Data/passwords.db``, creating the ``Data`` directory."""
    base = Path(working_dir) if working_dir is not None else Path.cwd()
    data_dir = base / "Data"
    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DatabaseError(f"не удалось создать папку Data: {exc}") from exc
    return data_dir / "passwords.db"


class PasswordStore:
    """The account and verification-code database."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = path
        self._conn: sqlite3.Connection | None = None
        with _errors("ошибка подключения к БД"):
            conn = sqlite3.connect(os.fspath(path), isolation_level=None)
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA foreign_keys=1")
            conn.execute(_USERS_TABLE)
            conn.execute(_CODES_TABLE)
        except sqlite3.Error as exc:
            conn.close()
            raise DatabaseError(f"ошибка создания таблицы: {exc}") from exc
        self._conn = conn

    @property
    def _db(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseError(_NOT_OPEN)
        return self._conn

    def close(self) -> None:
        """Close the connection; later operations raise :class:`DatabaseError`."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> PasswordStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def save_user(self, email: str, password_hash: str, salt: str) -> None:
        """Register a user; raise :class:`UserAlreadyExistsError` on a duplicate."""
        conn = self._db
        with _errors("ошибка начала транзакции"):
            conn.execute("BEGIN")
        try:
            with _errors("ошибка проверки email"):
                (exists,) = conn.execute(
                    "SELECT EXISTS(SELECT 1 FROM users WHERE email = ?)", (email,)
                ).fetchone()
            if exists:
                raise UserAlreadyExistsError(f"email {email} уже зарегистрирован")
            with _errors("ошибка сохранения данных"):
                conn.execute(
                    "INSERT INTO users (email, master_key_hash, salt) VALUES (?, ?, ?)",
                    (email, password_hash, salt),
                )
            with _errors("ошибка сохранения данных"):
                conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    def user_exists(self, email: str) -> bool:
        """Tell whether ``email`` is registered."""
        with _errors("ошибка проверки email"):
            (exists,) = self._db.execute(
                "SELECT EXISTS(SELECT 1 FROM users WHERE email = ?)", (email,)
            ).fetchone()
        return bool(exists)

    def user_exists_by_id(self, user_id: int) -> bool:
        """Tell whether a user with ``user_id`` exists."""
        with _errors("ошибка проверки пользователя"):
            (exists,) = self._db.execute(
                "SELECT EXISTS(SELECT 1 FROM users WHERE id = ?)", (user_id,)
            ).fetchone()
        return bool(exists)

    def first_user_email(self) -> str | None:
        """Return the e-mail of the first user, or ``None`` if there is none."""
        with _errors("ошибка получения данных"):
            row = self._db.execute("SELECT email FROM users LIMIT 1").fetchone()
        return row[0] if row else None

    def validate_master_password(self, password: str) -> bool:
        """Check ``password`` against the stored master hash."""
        with _errors("ошибка получения данных"):
            row = self._db.execute(
                "SELECT master_key_hash, salt FROM users LIMIT 1"
            ).fetchone()
        if row is None:
            raise DatabaseError("ошибка получения данных: пользователь не найден")
        stored_hash, salt_hex = row
        try:
            return verify_password(password, stored_hash, salt_hex)
        except ValueError as exc:
            raise DatabaseError(str(exc)) from exc

    def save_verification_code(self, email: str, code: str) -> None:
        """Store ``code`` for ``email``, replacing any earlier one and resetting attempts."""
        with _errors("ошибка сохранения кода"):
            self._db.execute(
                "INSERT OR REPLACE INTO verification_codes "
                "(email, code, created_at, attempts) "
                "VALUES (?, ?, datetime('now'), 0)",
                (email, code),
            )

    def get_verification_code(self, email: str) -> VerificationRecord | None:
        """Return the pending code for ``email``, or ``None``."""
        with _errors("ошибка получения кода"):
            row = self._db.execute(
                "SELECT code, created_at, attempts FROM verification_codes "
                "WHERE email = ?",
                (email,),
            ).fetchone()
        if row is None:
            return None
        code, created_at, attempts = row
        return VerificationRecord(
            code=code, created_at=_parse_timestamp(created_at), attempts=int(attempts)
        )

    def increment_attempts(self, email: str) -> None:
        """Count one more failed attempt for ``email``."""
        with _errors("ошибка обновления попыток"):
            self._db.execute(
                "UPDATE verification_codes SET attempts = attempts + 1 WHERE email = ?",
                (email,),
            )

    def delete_verification_code(self, email: str) -> None:
        """Remove the pending code for ``email``."""
        with _errors("ошибка удаления кода"):
            self._db.execute(
                "DELETE FROM verification_codes WHERE email = ?", (email,)
            )

    def table_names(self) -> list[str]:
        """Return the names of the tables in the database."""
        with _errors("ошибка проверки таблиц"):
            rows = self._db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        return [name for (name,) in rows]