"""
Capture workflow: permission -> position -> insert -> reload.

State machine:
  IDLE -> REQUESTING_PERMISSION -> (denied: alert, IDLE)
                                -> ACQUIRING_LOCATION -> (unavailable: alert, IDLE)
                                                      -> PERSISTING -> RELOADING -> IDLE
`loading` is true in every state but IDLE and is always cleared on the way out.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from ..domain.coords import LocationRecord
from ..errors import LocationUnavailable, PermissionDenied, PreferenceError, StorageError
from ..logs import LogContext
from ..providers.location import Accuracy, CancelToken, LocationProvider, acquire_position
from ..providers.permission import PermissionGate, PermissionStatus
from .preference_svc import PreferenceStore
from .record_store import RecordStore

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    ACQUIRING_LOCATION = "acquiring_location"
    PERSISTING = "persisting"
    RELOADING = "reloading"


class CaptureStatus(str, Enum):
    SAVED = "saved"
    BUSY = "busy"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"
    STORAGE_ERROR = "storage_error"
    ERROR = "error"


@dataclass(frozen=True)
class CaptureOutcome:
    status: CaptureStatus
    record_id: int | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == CaptureStatus.SAVED

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "record_id": self.record_id, "message": self.message}


@dataclass(frozen=True)
class Alert:
    title: str
    message: str


@dataclass(frozen=True)
class ControllerSnapshot:
    state: CaptureState
    loading: bool
    locations: tuple[LocationRecord, ...] | None
    dark_mode_enabled: bool
    last_alert: Alert | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "loading": self.loading,
            "locations": None if self.locations is None else [r.to_dict() for r in self.locations],
            "dark_mode_enabled": self.dark_mode_enabled,
            "last_alert": None if self.last_alert is None else {
                "title": self.last_alert.title, "message": self.last_alert.message,
            },
        }


PERMISSION_DENIED_MSG = (
    "Permission to access location was denied. "
    "Please enable it in your device settings."
)


class CaptureController:
    """Runs the capture workflow and exposes its state to the presentation layer."""

    def __init__(
        self,
        store: RecordStore,
        preferences: PreferenceStore,
        permission_gate: PermissionGate,
        location_provider: LocationProvider,
        *,
        accuracy: Accuracy = Accuracy.HIGH,
        location_timeout_s: float | None = 15.0,
        on_alert: Callable[[Alert], None] | None = None,
        audit: bool = True,
    ):
        self.store = store
        self.preferences = preferences
        self.permission_gate = permission_gate
        self.location_provider = location_provider
        self.accuracy = accuracy
        self.location_timeout_s = location_timeout_s
        self.on_alert = on_alert
        self.audit = audit

        self._state = CaptureState.IDLE
        self._locations: tuple[LocationRecord, ...] | None = None
        self._dark_mode = False
        self._last_alert: Alert | None = None
        self._lock = asyncio.Lock()
        self._cancel: CancelToken | None = None
        self._observers: list[Callable[[ControllerSnapshot], None]] = []

    # -------- observable state --------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state != CaptureState.IDLE

    @property
    def locations(self) -> tuple[LocationRecord, ...] | None:
        return self._locations

    @property
    def dark_mode_enabled(self) -> bool:
        return self._dark_mode

    @property
    def last_alert(self) -> Alert | None:
        return self._last_alert

    def snapshot(self) -> ControllerSnapshot:
        return ControllerSnapshot(
            state=self._state,
            loading=self.loading,
            locations=self._locations,
            dark_mode_enabled=self._dark_mode,
            last_alert=self._last_alert,
        )

    def subscribe(self, callback: Callable[[ControllerSnapshot], None]) -> Callable[[], None]:
        self._observers.append(callback)

        def _unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)
        return _unsubscribe

    def _publish(self):
        snap = self.snapshot()
        for cb in list(self._observers):
            try:
                cb(snap)
            except Exception:
                logger.exception("State observer failed")

    def _set_state(self, state: CaptureState):
        self._state = state
        self._publish()

    def _alert(self, title: str, message: str):
        alert = Alert(title, message)
        self._last_alert = alert
        logger.warning("%s: %s", title, message)
        if self.on_alert is not None:
            try:
                self.on_alert(alert)
            except Exception:
                logger.exception("Alert handler failed")

    def _log_context(self, action: str) -> LogContext | None:
        return LogContext(action, db_path=self.store.db_path) if self.audit else None

    # -------- startup --------

    async def load(self):
        """Create the schema, then read the dark-mode flag and the saved history."""
        try:
            await asyncio.to_thread(self.preferences.ensure_schema)
        except PreferenceError as e:
            logger.warning("Preference schema unavailable: %s", e)
        self._dark_mode = await asyncio.to_thread(self.preferences.load_dark_mode)

        try:
            await self.store.ensure_schema()
            records = await self.store.list_all()
        except StorageError as e:
            self._alert("Storage error", f"Could not load saved locations. Details: {e}.")
        else:
            self._locations = tuple(records)
            logger.info("Loaded %d saved locations", len(records))
        self._publish()

    # -------- capture --------

    def cancel(self) -> bool:
        """Abort the pending position fetch of the running capture, if any."""
        token = self._cancel
        if token is None:
            return False
        token.cancel()
        return True

    async def capture(self) -> CaptureOutcome:
        # Lock.acquire() on a free lock does not suspend, so check + acquire is atomic
        if self._lock.locked() or self._state != CaptureState.IDLE:
            logger.info("Capture already in progress, rejecting new request")
            return CaptureOutcome(CaptureStatus.BUSY, message="a capture is already in progress")

        async with self._lock:
            log = self._log_context("LOCATION_CAPTURE")
            self._cancel = CancelToken()
            outcome: CaptureOutcome | None = None
            logger.info("Starting location capture")
            try:
                rec_id = await self._run_capture(self._cancel)
                outcome = CaptureOutcome(CaptureStatus.SAVED, record_id=rec_id)
            except PermissionDenied as e:
                self._alert("Location permission", str(e))
                outcome = CaptureOutcome(CaptureStatus.DENIED, message=str(e))
            except LocationUnavailable as e:
                self._alert("Error", f"Could not capture location. Details: {e}. Please try again.")
                outcome = CaptureOutcome(CaptureStatus.UNAVAILABLE, message=str(e))
            except StorageError as e:
                self._alert("Storage error", f"Could not save location. Details: {e}. Tap capture to retry.")
                outcome = CaptureOutcome(CaptureStatus.STORAGE_ERROR, message=str(e))
            except asyncio.CancelledError:
                logger.info("Capture task cancelled")
                raise
            except Exception as e:
                logger.exception("Unexpected capture failure")
                self._alert("Error", f"Could not capture location. Details: {e}. Please try again.")
                outcome = CaptureOutcome(CaptureStatus.ERROR, message=str(e))
            finally:
                self._cancel = None
                self._set_state(CaptureState.IDLE)
                logger.info("Capture finished, loading=%s", self.loading)
                if log is not None:
                    if outcome is None:
                        await asyncio.to_thread(log.write, "CANCELLED")
                    else:
                        log.set_entity("location", str(outcome.record_id) if outcome.record_id else None)
                        log.set_after(outcome.to_dict())
                        await asyncio.to_thread(log.write, "OK" if outcome.ok else "ERROR", None if outcome.ok else outcome.message)
            return outcome

    async def _run_capture(self, cancel: CancelToken) -> int:
        self._set_state(CaptureState.REQUESTING_PERMISSION)
        logger.info("Requesting location permission")
        status = await self.permission_gate.request_foreground_access()
        logger.info("Permission status: %s", status.value)
        if status != PermissionStatus.GRANTED:
            raise PermissionDenied(PERMISSION_DENIED_MSG)

        self._set_state(CaptureState.ACQUIRING_LOCATION)
        logger.info("Acquiring current position (accuracy=%s)", self.accuracy.value)
        pos = await acquire_position(
            self.location_provider, self.accuracy, self.location_timeout_s, cancel,
        )
        logger.info("Position acquired: latitude=%s longitude=%s", pos.latitude, pos.longitude)

        self._set_state(CaptureState.PERSISTING)
        rec_id = await self.store.insert(pos.latitude, pos.longitude)

        self._set_state(CaptureState.RELOADING)
        try:
            records = await self.store.list_all()
        except StorageError as e:
            raise StorageError(f"saved id={rec_id} but reload failed: {e}") from e

        self._locations = tuple(records)
        self._publish()
        logger.info("Locations reloaded: %d records", len(records))
        return rec_id

    # -------- preference path --------

    async def toggle_dark_mode(self) -> bool:
        log = self._log_context("DARK_MODE_TOGGLE")
        before = self._dark_mode
        self._dark_mode = await asyncio.to_thread(self.preferences.toggle_dark_mode, before)
        self._publish()
        if log is not None:
            log.set_payload({"before": before})
            log.set_after({"dark_mode_enabled": self._dark_mode})
            await asyncio.to_thread(log.write, "OK")
        return self._dark_mode
