from __future__ import annotations

from sqlite3 import Connection


def ensure_schema(conn: Connection):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS locations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            latitude REAL NOT NULL,
            longitude REAL NOT NULL,
            captured_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
        )
        """
    )


def insert_location(conn: Connection, latitude: float, longitude: float) -> int:
    cur = conn.execute(
        "INSERT INTO locations(latitude, longitude) VALUES(?, ?)",
        (latitude, longitude),
    )
    return int(cur.lastrowid)


def list_all(conn: Connection):
    # 顺序是契约：按 id 升序（即插入顺序），不要依赖存储引擎的默认顺序
    return conn.execute(
        "SELECT id, latitude, longitude, captured_at FROM locations ORDER BY id ASC"
    ).fetchall()


def count_all(conn: Connection) -> int:
    return int(conn.execute("SELECT COUNT(1) AS c FROM locations").fetchone()["c"])
