from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Protocol

from .errors import StorageError
from .storage_schema import initialize_sqlite


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_dumps(value: Any) -> str:
    return json.dumps(
        value,
        ensure_ascii=False,
        separators=(",", ":"),
    )


def _as_path(value: str | Path) -> str:
    return str(value)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...


class SQLiteKeyValueStore:
    """
    String-keyed store of JSON values backed by a single SQLite table.

    One connection is opened at startup and shared across request threads;
    every statement runs under a lock.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path) -> "SQLiteKeyValueStore":
        db_path = _as_path(path)
        if db_path != ":memory:":
            p = Path(db_path)
            p.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(db_path, check_same_thread=False)
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to open sqlite database: {db_path}: {e}") from e

        try:
            initialize_sqlite(conn)
        except Exception as e:
            conn.close()
            raise StorageError(f"Failed to initialize sqlite schema: {e}") from e

        return cls(conn)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "SQLiteKeyValueStore":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    def get(self, key: str) -> Any | None:
        if not key:
            raise ValueError("key must be non-empty")

        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value_json FROM kv_entries WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to read key: {e}") from e

        if row is None:
            return None

        try:
            return json.loads(row["value_json"])
        except json.JSONDecodeError as e:
            raise StorageError(f"Stored value for key could not be parsed: {e}") from e

    def set(self, key: str, value: Any) -> None:
        """Insert or replace the value stored under key."""
        if not key:
            raise ValueError("key must be non-empty")

        value_json = _json_dumps(value)
        ts = _utc_now_iso()

        try:
            with self._lock, self._conn:
                self._conn.execute(
                    """
                    INSERT INTO kv_entries(key, value_json, created_at, updated_at)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                      value_json = excluded.value_json,
                      updated_at = excluded.updated_at
                    """.strip(),
                    (key, value_json, ts, ts),
                )
        except sqlite3.DatabaseError as e:
            raise StorageError(f"Failed to write key: {e}") from e

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(1) AS n FROM kv_entries").fetchone()
        return int(row["n"]) if row is not None else 0
