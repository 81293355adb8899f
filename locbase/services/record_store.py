from __future__ import annotations

# locbase/services/record_store.py
import asyncio
import logging
import sqlite3
from typing import Any, Callable

from ..db import Transaction, connect, get_db_path
from ..domain.coords import LocationRecord, validate_coordinate
from ..errors import StorageError
from ..repository import location_repo

logger = logging.getLogger(__name__)


class RecordStore:
    """Owner of the append-only `locations` log.

    One connection per store instance, opened with `open()` and released with
    `close()`. sqlite calls run in a worker thread; `_lock` makes sure only one
    of them (and so only one scoped transaction) uses the connection at a time.
    """

    def __init__(self, db_path: str | None = None, busy_timeout_s: float = 5.0):
        self.db_path = db_path or get_db_path()
        self.busy_timeout_s = busy_timeout_s
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self) -> "RecordStore":
        if self._conn is None:
            try:
                self._conn = await asyncio.to_thread(connect, self.db_path, self.busy_timeout_s)
            except sqlite3.Error as e:
                raise StorageError(f"open_failed: {e}") from e
            logger.info("Record store opened at %s", self.db_path)
        return self

    async def close(self):
        conn, self._conn = self._conn, None
        if conn is not None:
            async with self._lock:
                await asyncio.to_thread(conn.close)
            logger.info("Record store closed")

    async def __aenter__(self) -> "RecordStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _run(self, op: str, fn: Callable[..., Any], *args) -> Any:
        if self._conn is None:
            raise StorageError(f"{op}_failed: store is not open")
        conn = self._conn
        async with self._lock:
            task = asyncio.ensure_future(asyncio.to_thread(fn, conn, *args))
            try:
                return await asyncio.shield(task)
            except asyncio.CancelledError:
                # 线程里的事务仍在执行：等它提交或回滚后再释放连接
                await asyncio.wait({task})
                raise
            except sqlite3.Error as e:
                logger.error("Record store %s failed: %s", op, e)
                raise StorageError(f"{op}_failed: {e}") from e

    async def ensure_schema(self):
        def _ensure(conn: sqlite3.Connection):
            with Transaction(conn):
                location_repo.ensure_schema(conn)

        await self._run("schema", _ensure)

    async def insert(self, latitude: float, longitude: float) -> int:
        lat, lon = validate_coordinate(latitude, longitude)

        def _insert(conn: sqlite3.Connection) -> int:
            with Transaction(conn):
                return location_repo.insert_location(conn, lat, lon)

        rec_id = await self._run("insert", _insert)
        logger.info("Location saved, id=%s", rec_id)
        return rec_id

    async def list_all(self) -> list[LocationRecord]:
        def _list(conn: sqlite3.Connection) -> list[LocationRecord]:
            return [LocationRecord.from_row(r) for r in location_repo.list_all(conn)]

        return await self._run("read", _list)

    async def count(self) -> int:
        return await self._run("count", location_repo.count_all)
