from __future__ import annotations

from sqlite3 import Connection


def ensure_schema(conn: Connection):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS preference (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT DEFAULT (datetime('now'))
        )
        """
    )


def get_value(conn: Connection, key: str) -> str | None:
    row = conn.execute("SELECT value FROM preference WHERE key=?", (key,)).fetchone()
    return None if row is None else row["value"]


def upsert(conn: Connection, key: str, value: str):
    conn.execute(
        "INSERT INTO preference(key, value) VALUES(?, ?) "
        "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=datetime('now')",
        (key, value),
    )
