from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

SCHEMA_VERSION = 1


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def initialize_sqlite(conn: sqlite3.Connection) -> None:
    """
    Initialize the key-value database with a small migration system.

    This function is idempotent: it can be called on every startup.
    """
    _configure_connection(conn)
    _apply_migrations(conn)


def _configure_connection(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA busy_timeout = 5000")

    # WAL is best-effort (e.g., in-memory DBs won't use it).
    try:
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
    except sqlite3.DatabaseError:
        pass


_MIGRATIONS: dict[int, str] = {
    1: """
CREATE TABLE IF NOT EXISTS kv_entries (
  key TEXT PRIMARY KEY,
  value_json TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""".strip()
}


def _apply_migrations(conn: sqlite3.Connection) -> None:
    with conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT NOT NULL)"
        )

    rows = conn.execute("SELECT version FROM schema_migrations").fetchall()
    applied: set[int] = {int(r[0]) for r in rows}

    for version in range(1, SCHEMA_VERSION + 1):
        if version in applied:
            continue

        script = _MIGRATIONS.get(version)
        if not script:
            raise RuntimeError(f"Missing migration script for version={version}")

        with conn:
            conn.executescript(script)
            conn.execute(
                "INSERT INTO schema_migrations(version, applied_at) VALUES (?, ?)",
                (version, _utc_now_iso()),
            )
