from __future__ import annotations

import sqlite3

import locbase_cli
from locbase.repository import preference_repo


def test_capture_then_list(tmp_db_path, monkeypatch, capsys):
    monkeypatch.setenv("LOCBASE_AUTO_GRANT", "1")
    assert locbase_cli.main(["init"]) == 0
    assert locbase_cli.main(["list"]) == 0
    assert "No locations recorded yet." in capsys.readouterr().out

    assert locbase_cli.main(["capture", "--lat", "37.422", "--lon", "-122.084"]) == 0
    assert locbase_cli.main(["capture", "--lat", "40", "--lon", "-73"]) == 0
    capsys.readouterr()

    assert locbase_cli.main(["list"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [
        "Location 1 | Latitude: 37.422000 | Longitude: -122.084000",
        "Location 2 | Latitude: 40.000000 | Longitude: -73.000000",
    ]


def test_capture_without_source_fails(tmp_db_path, monkeypatch, capsys):
    monkeypatch.setenv("LOCBASE_AUTO_GRANT", "1")
    assert locbase_cli.main(["capture"]) == 1
    assert "disabled" in capsys.readouterr().err


def test_denied_permission_blocks_capture(tmp_db_path, capsys):
    assert locbase_cli.main(["permission", "deny"]) == 0
    assert locbase_cli.main(["capture", "--lat", "1", "--lon", "1"]) == 1
    assert "[Location permission]" in capsys.readouterr().err


def test_dark_mode_commands(tmp_db_path, capsys):
    assert locbase_cli.main(["dark-mode"]) == 0
    assert "Dark mode: off" in capsys.readouterr().out
    assert locbase_cli.main(["dark-mode", "on"]) == 0
    assert locbase_cli.main(["dark-mode", "on"]) == 0
    assert locbase_cli.main(["dark-mode", "show"]) == 0
    assert capsys.readouterr().out.strip().splitlines()[-1] == "Dark mode: on"
    assert locbase_cli.main(["dark-mode", "toggle"]) == 0
    assert "Dark mode: off" in capsys.readouterr().out


def test_permission_store_failure_reported(tmp_db_path, monkeypatch, capsys):
    def boom(conn, key, value):
        raise sqlite3.OperationalError("attempt to write a readonly database")

    monkeypatch.setattr(preference_repo, "upsert", boom)
    assert locbase_cli.main(["permission", "grant"]) == 1
    assert "could not store decision" in capsys.readouterr().err
