"""Database utilities for the Gameon Den point-of-sale tool."""

from __future__ import annotations

import copy
import json
import sqlite3
import threading
from pathlib import Path
from typing import Any


SCHEMA_VERSION = 1


def dict_factory(cursor: sqlite3.Cursor, row: sqlite3.Row) -> dict:
    """Return rows as dictionaries rather than tuples."""

    return {description[0]: row[idx] for idx, description in enumerate(cursor.description)}


def get_connection(path: str | Path) -> sqlite3.Connection:
    """Return a SQLite connection with sensible defaults."""

    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA busy_timeout = 5000")
    return conn


def initialize_database(conn: sqlite3.Connection) -> None:
    """Create the key/value schema if it does not yet exist."""

    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS metadata (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        );
        """
    )

    set_metadata(conn, "schema_version", SCHEMA_VERSION)


def set_metadata(conn: sqlite3.Connection, key: str, value: int | str) -> None:
    conn.execute(
        "INSERT INTO metadata(key, value) VALUES (?, ?)\n         ON CONFLICT(key) DO UPDATE SET value = excluded.value",
        (key, str(value)),
    )
    conn.commit()


def get_metadata(conn: sqlite3.Connection, key: str, default: str | None = None) -> str | None:
    row = conn.execute("SELECT value FROM metadata WHERE key = ?", (key,)).fetchone()
    return row["value"] if row else default


def get_value(conn: sqlite3.Connection, key: str, default: Any = None) -> Any:
    """Return the JSON document stored under ``key`` or ``default``."""

    row = conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
    if not row:
        return default
    return json.loads(row["value"])


def set_value(conn: sqlite3.Connection, key: str, value: Any) -> None:
    """Serialize ``value`` and overwrite whatever is stored under ``key``."""

    conn.execute(
        """
        INSERT INTO kv_store(key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """,
        (key, json.dumps(value)),
    )
    conn.commit()


class SqliteRepository:
    """Whole-value repository for one key of the ``kv_store`` table."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        key: str,
        default: Any,
        lock: threading.RLock | None = None,
    ) -> None:
        self.conn = conn
        self.key = key
        self.default = default
        self.lock = lock or threading.RLock()

    def load(self) -> Any:
        with self.lock:
            value = get_value(self.conn, self.key)
        if value is None:
            return copy.deepcopy(self.default)
        return value

    def save(self, value: Any) -> None:
        with self.lock:
            set_value(self.conn, self.key, value)


class MemoryRepository:
    """In-memory stand-in with the same ``load``/``save`` contract."""

    def __init__(self, default: Any) -> None:
        self.default = default
        self._value: Any = None
        self._saved = False

    def load(self) -> Any:
        if not self._saved:
            return copy.deepcopy(self.default)
        return copy.deepcopy(self._value)

    def save(self, value: Any) -> None:
        self._value = copy.deepcopy(value)
        self._saved = True
