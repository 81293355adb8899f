from __future__ import annotations

# locbase/db.py
import sqlite3
from contextlib import contextmanager
from typing import Iterator
import os

from .config import read_config_yaml

# DB 路径解析顺序：
# 1) 环境变量 LOCBASE_DB_PATH（最高优先级）
# 2) config.yaml 的 test_db_path（当检测到测试环境时）
# 3) config.yaml 的 db_path（生产默认）
# 4) 兜底：项目根 locations.db
_PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
_ROOT_DB = os.path.join(_PROJECT_ROOT, "locations.db")


def get_db_path(_: str | None = None) -> str:
    env_path = os.environ.get("LOCBASE_DB_PATH")
    cfg = read_config_yaml()
    cfg_db = cfg.get("db_path") if isinstance(cfg.get("db_path"), str) else None
    cfg_test = cfg.get("test_db_path") if isinstance(cfg.get("test_db_path"), str) else None
    is_test = (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)

    if env_path:
        path = env_path
    elif is_test and cfg_test and cfg_test.strip():
        path = cfg_test.strip()
    elif cfg_db and cfg_db.strip():
        path = cfg_db.strip()
    else:
        path = _ROOT_DB

    # 确保目录存在
    dirn = os.path.dirname(path) or "."
    os.makedirs(dirn, exist_ok=True)
    return path


def connect(db_path: str | None = None, timeout: float = 5.0) -> sqlite3.Connection:
    """
    打开一个 SQLite 连接（autocommit 模式，事务由 Transaction 显式控制）。
    row_factory 为 Row。调用方负责 close()。
    """
    path = db_path or get_db_path()
    conn = sqlite3.connect(
        path,
        timeout=timeout,
        check_same_thread=False,
        isolation_level=None,
    )
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_conn(db_path: str | None = None) -> Iterator[sqlite3.Connection]:
    """Short-lived connection for helpers that run outside the record store."""
    conn = connect(db_path)
    try:
        yield conn
    finally:
        conn.close()


class Transaction:
    """Explicit scoped transaction: begin/commit/rollback.

    As a context manager it commits on a clean exit and rolls back on any
    exception, including cancellation, so no partial write is observable.
    """

    def __init__(self, conn: sqlite3.Connection, mode: str = "IMMEDIATE"):
        self.conn = conn
        self.mode = mode
        self.active = False

    def begin(self) -> "Transaction":
        if self.active:
            raise RuntimeError("transaction_already_active")
        self.conn.execute(f"BEGIN {self.mode}")
        self.active = True
        return self

    def commit(self) -> None:
        if not self.active:
            raise RuntimeError("transaction_not_active")
        self.conn.execute("COMMIT")
        self.active = False

    def rollback(self) -> None:
        if not self.active:
            return
        try:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
        finally:
            self.active = False

    def __enter__(self) -> "Transaction":
        return self.begin()

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.rollback()
            return False
        if self.active:
            try:
                self.commit()
            except BaseException:
                # COMMIT 失败（如 database is locked）时事务仍然打开，必须回滚
                self.rollback()
                raise
        return False
