import os
import sys
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))


_ENV_KEYS = [
    "LOCBASE_DB_PATH",
    "LOCBASE_CONFIG",
    "LOCBASE_LOCATION_TIMEOUT",
    "LOCBASE_ACCURACY",
    "LOCBASE_AUTO_GRANT",
    "LOCBASE_STATIC_LAT",
    "LOCBASE_STATIC_LON",
    "LOCBASE_LOG_LEVEL",
]


@pytest.fixture()
def tmp_db_path(tmp_path, monkeypatch):
    # Point locbase to a fresh temp DB and away from any project config.yaml
    for k in _ENV_KEYS:
        monkeypatch.delenv(k, raising=False)
    path = tmp_path / "locations_test.db"
    monkeypatch.setenv("LOCBASE_DB_PATH", str(path))
    monkeypatch.setenv("LOCBASE_CONFIG", str(tmp_path / "missing-config.yaml"))
    return str(path)


@pytest.fixture()
def make_controller(tmp_db_path):
    """Factory for a controller wired to the temp DB; its store is not opened yet."""
    from locbase.logs import ensure_log_schema
    from locbase.providers.location import SequenceLocationProvider
    from locbase.providers.permission import StaticPermissionGate
    from locbase.services.capture_svc import CaptureController
    from locbase.services.preference_svc import PreferenceStore
    from locbase.services.record_store import RecordStore

    ensure_log_schema(tmp_db_path)

    def _make(readings=(), granted=True, delay_s=0.0, timeout_s=5.0, **kwargs):
        alerts = []
        controller = CaptureController(
            store=RecordStore(tmp_db_path),
            preferences=PreferenceStore(tmp_db_path),
            permission_gate=StaticPermissionGate(granted),
            location_provider=SequenceLocationProvider(readings, delay_s=delay_s),
            location_timeout_s=timeout_s,
            on_alert=alerts.append,
            **kwargs,
        )
        controller.alerts = alerts
        return controller

    return _make


@pytest.fixture()
def client(tmp_db_path, monkeypatch):
    monkeypatch.setenv("LOCBASE_AUTO_GRANT", "1")
    monkeypatch.setenv("LOCBASE_STATIC_LAT", "37.422")
    monkeypatch.setenv("LOCBASE_STATIC_LON", "-122.084")
    # Import app after env is ready so startup hooks pick it up
    from locbase.api import app
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
