from __future__ import annotations

# locbase/services/bootstrap.py
import logging
from typing import Awaitable, Callable

from ..config import LocbaseConfig
from ..db import get_db_path
from ..providers.location import Accuracy, DisabledLocationProvider, StaticLocationProvider
from ..providers.permission import StoredPermissionGate, fixed_prompt
from .capture_svc import CaptureController
from .preference_svc import PreferenceStore
from .record_store import RecordStore

logger = logging.getLogger(__name__)


def build_location_provider(cfg: LocbaseConfig):
    if cfg.has_static_location:
        return StaticLocationProvider(cfg.static_latitude, cfg.static_longitude)
    logger.warning("No location source configured; captures will report location unavailable")
    return DisabledLocationProvider()


def build_controller(
    cfg: LocbaseConfig,
    prompt: Callable[[], Awaitable[bool]] | None = None,
) -> CaptureController:
    """Wire store, preferences, permission gate and provider from config.

    The store is returned closed; callers open it (and close it on shutdown).
    """
    db_path = cfg.db_path or get_db_path()
    preferences = PreferenceStore(db_path)
    gate = StoredPermissionGate(preferences, prompt or fixed_prompt(cfg.auto_grant_location))
    return CaptureController(
        store=RecordStore(db_path),
        preferences=preferences,
        permission_gate=gate,
        location_provider=build_location_provider(cfg),
        accuracy=Accuracy.from_name(cfg.accuracy),
        location_timeout_s=cfg.location_timeout_s if cfg.location_timeout_s > 0 else None,
    )
