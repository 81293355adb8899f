from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Iterable, Protocol, Union

from ..domain.coords import Position, is_valid_coordinate
from ..errors import LocationUnavailable

logger = logging.getLogger(__name__)


class Accuracy(str, Enum):
    """Requested precision tier. A hint to the provider, not a guarantee."""

    LOWEST = "lowest"
    LOW = "low"
    BALANCED = "balanced"
    HIGH = "high"
    HIGHEST = "highest"

    @classmethod
    def from_name(cls, name: str | None) -> "Accuracy":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.HIGH


class LocationProvider(Protocol):
    async def get_current_position(self, accuracy: Accuracy) -> Position: ...


class StaticLocationProvider:
    """Fixed reading from configuration, for hosts without a positioning device."""

    def __init__(self, latitude: float, longitude: float):
        self.position = Position(float(latitude), float(longitude))
        self.calls: list[Accuracy] = []

    async def get_current_position(self, accuracy: Accuracy) -> Position:
        self.calls.append(accuracy)
        return self.position


class DisabledLocationProvider:
    """Stands in when location services are off (nothing configured)."""

    def __init__(self, reason: str = "location services are disabled on this device"):
        self.reason = reason

    async def get_current_position(self, accuracy: Accuracy) -> Position:
        raise LocationUnavailable(self.reason)


Reading = Union[Position, tuple, Exception]


class SequenceLocationProvider:
    """Replays queued readings (or errors) one per call, with an optional delay."""

    def __init__(self, readings: Iterable[Reading] = (), delay_s: float = 0.0):
        self.readings: list[Reading] = list(readings)
        self.delay_s = delay_s
        self.calls: list[Accuracy] = []

    async def get_current_position(self, accuracy: Accuracy) -> Position:
        self.calls.append(accuracy)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if not self.readings:
            raise LocationUnavailable("no position fix available")
        item = self.readings.pop(0)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, Position):
            return item
        lat, lon = item
        return Position(float(lat), float(lon))


class CancelToken:
    """External cancellation for a pending position fetch."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()


async def acquire_position(
    provider: LocationProvider,
    accuracy: Accuracy = Accuracy.HIGH,
    timeout_s: float | None = None,
    cancel: CancelToken | None = None,
) -> Position:
    """Fetch one reading, bounded by `timeout_s` and `cancel`.

    Every way of not getting a usable reading surfaces as LocationUnavailable:
    provider error, timeout, cancellation, or coordinates out of range.
    """
    if cancel is not None and cancel.cancelled:
        raise LocationUnavailable("location request cancelled")

    fetch = asyncio.ensure_future(provider.get_current_position(accuracy))
    waiters = {fetch}
    cancel_wait = None
    if cancel is not None:
        cancel_wait = asyncio.ensure_future(cancel.wait())
        waiters.add(cancel_wait)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout_s, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if cancel_wait is not None and not cancel_wait.done():
            cancel_wait.cancel()
        if not fetch.done():
            fetch.cancel()

    if fetch in done:
        try:
            pos = fetch.result()
        except LocationUnavailable:
            raise
        except Exception as e:
            raise LocationUnavailable(f"location provider error: {e}") from e
    elif cancel is not None and cancel.cancelled:
        logger.info("Location request cancelled")
        raise LocationUnavailable("location request cancelled")
    else:
        logger.warning("Location request timed out after %ss", timeout_s)
        raise LocationUnavailable(f"location request timed out after {timeout_s:g}s")

    if not is_valid_coordinate(pos.latitude, pos.longitude):
        raise LocationUnavailable(
            f"provider returned invalid coordinates ({pos.latitude}, {pos.longitude})"
        )
    return Position(float(pos.latitude), float(pos.longitude))
