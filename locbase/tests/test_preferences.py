from __future__ import annotations

import asyncio
import sqlite3

import pytest

from locbase.db import get_conn
from locbase.errors import PreferenceError
from locbase.providers.permission import PERMISSION_KEY, PermissionStatus, StoredPermissionGate
from locbase.repository import preference_repo
from locbase.services.preference_svc import DARK_MODE_KEY, PreferenceStore


def test_dark_mode_defaults_to_false(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()
    assert prefs.load_dark_mode() is False


def test_dark_mode_round_trip_survives_new_instance(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()
    assert prefs.save_dark_mode(True) is True

    fresh = PreferenceStore(tmp_db_path)
    assert fresh.load_dark_mode() is True
    with get_conn(tmp_db_path) as conn:
        assert preference_repo.get_value(conn, DARK_MODE_KEY) == "true"


def test_toggle_flips_and_persists(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()
    assert prefs.toggle_dark_mode(False) is True
    assert prefs.toggle_dark_mode(True) is False
    assert PreferenceStore(tmp_db_path).load_dark_mode() is False


def test_missing_table_falls_back_to_light(tmp_db_path):
    # no ensure_schema: read fails, load still answers
    assert PreferenceStore(tmp_db_path).load_dark_mode() is False


def test_corrupt_value_falls_back_to_light(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()
    with get_conn(tmp_db_path) as conn:
        preference_repo.upsert(conn, DARK_MODE_KEY, "{not json")
    with pytest.raises(PreferenceError):
        prefs.get(DARK_MODE_KEY)
    assert prefs.load_dark_mode() is False


def test_write_failure_is_logged_not_raised(tmp_db_path, monkeypatch, caplog):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()

    def boom(conn, key, value):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(preference_repo, "upsert", boom)
    assert prefs.save_dark_mode(True) is False
    assert prefs.toggle_dark_mode(False) is False
    assert "Failed to save dark mode" in caplog.text


def test_stored_gate_prompts_once(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()
    asked = []

    async def prompt():
        asked.append(1)
        return True

    gate = StoredPermissionGate(prefs, prompt)

    async def scenario():
        first = await gate.request_foreground_access()
        second = await gate.request_foreground_access()
        return first, second

    assert asyncio.run(scenario()) == (PermissionStatus.GRANTED, PermissionStatus.GRANTED)
    assert len(asked) == 1
    assert prefs.get(PERMISSION_KEY) == "granted"


def test_denial_sticks_until_set_decision(tmp_db_path):
    prefs = PreferenceStore(tmp_db_path)
    prefs.ensure_schema()

    async def deny():
        return False

    gate = StoredPermissionGate(prefs, deny)
    assert asyncio.run(gate.request_foreground_access()) == PermissionStatus.DENIED
    assert gate.current() == PermissionStatus.DENIED

    gate.set_decision(True)
    assert asyncio.run(gate.request_foreground_access()) == PermissionStatus.GRANTED
