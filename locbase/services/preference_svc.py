# locbase/services/preference_svc.py
from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from ..db import get_conn, get_db_path
from ..errors import PreferenceError
from ..repository import preference_repo

logger = logging.getLogger(__name__)

DARK_MODE_KEY = "darkMode"

DEFAULTS = {
    DARK_MODE_KEY: False,
}


class PreferenceStore:
    """Durable key-value settings, one JSON-encoded scalar per key."""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_db_path()

    def ensure_schema(self):
        try:
            with get_conn(self.db_path) as conn:
                preference_repo.ensure_schema(conn)
        except sqlite3.Error as e:
            raise PreferenceError(f"preference_schema_failed: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        try:
            with get_conn(self.db_path) as conn:
                raw = preference_repo.get_value(conn, key)
        except sqlite3.Error as e:
            raise PreferenceError(f"preference_read_failed[{key}]: {e}") from e
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise PreferenceError(f"preference_decode_failed[{key}]: {e}") from e

    def set(self, key: str, value: Any):
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PreferenceError(f"preference_encode_failed[{key}]: {e}") from e
        try:
            with get_conn(self.db_path) as conn:
                preference_repo.upsert(conn, key, encoded)
        except sqlite3.Error as e:
            raise PreferenceError(f"preference_write_failed[{key}]: {e}") from e

    # -------- dark mode --------
    # 偏好读写失败不阻塞界面：记录日志后回退到默认（浅色）主题

    def load_dark_mode(self) -> bool:
        try:
            value = self.get(DARK_MODE_KEY, DEFAULTS[DARK_MODE_KEY])
        except PreferenceError as e:
            logger.warning("Failed to load dark mode, using light theme: %s", e)
            return DEFAULTS[DARK_MODE_KEY]
        return value if isinstance(value, bool) else DEFAULTS[DARK_MODE_KEY]

    def save_dark_mode(self, enabled: bool) -> bool:
        """Persist the flag. Returns False (after logging) if the write failed."""
        try:
            self.set(DARK_MODE_KEY, bool(enabled))
            return True
        except PreferenceError as e:
            logger.warning("Failed to save dark mode: %s", e)
            return False

    def toggle_dark_mode(self, current: bool) -> bool:
        new_value = not current
        if self.save_dark_mode(new_value):
            return new_value
        return DEFAULTS[DARK_MODE_KEY]
