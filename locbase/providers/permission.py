from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Protocol

from ..errors import PreferenceError
from ..services.preference_svc import PreferenceStore

logger = logging.getLogger(__name__)

PERMISSION_KEY = "locationPermission"


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"


class PermissionGate(Protocol):
    async def request_foreground_access(self) -> PermissionStatus: ...


class StaticPermissionGate:
    """Always answers the same way. Headless hosts and tests."""

    def __init__(self, granted: bool = True):
        self.granted = granted
        self.requests = 0

    async def request_foreground_access(self) -> PermissionStatus:
        self.requests += 1
        return PermissionStatus.GRANTED if self.granted else PermissionStatus.DENIED


def fixed_prompt(answer: bool) -> Callable[[], Awaitable[bool]]:
    async def _prompt() -> bool:
        return answer
    return _prompt


def console_prompt(question: str = "Allow this app to access your location while in use? [y/N] ") -> Callable[[], Awaitable[bool]]:
    async def _prompt() -> bool:
        try:
            answer = await asyncio.to_thread(input, question)
        except EOFError:
            return False
        return answer.strip().lower() in {"y", "yes"}
    return _prompt


class StoredPermissionGate:
    """Foreground permission remembered in the preference table.

    The prompt only runs while no decision is stored; afterwards the stored
    decision is returned as-is. A denial stays a denial until `set_decision`
    records a new answer out-of-band.
    """

    def __init__(self, preferences: PreferenceStore, prompt: Callable[[], Awaitable[bool]]):
        self.preferences = preferences
        self.prompt = prompt

    def current(self) -> PermissionStatus | None:
        try:
            raw = self.preferences.get(PERMISSION_KEY)
        except PreferenceError as e:
            logger.warning("Failed to read stored permission decision: %s", e)
            return None
        try:
            return PermissionStatus(raw) if raw is not None else None
        except ValueError:
            return None

    def set_decision(self, granted: bool) -> PermissionStatus:
        status = PermissionStatus.GRANTED if granted else PermissionStatus.DENIED
        self.preferences.set(PERMISSION_KEY, status.value)
        return status

    async def request_foreground_access(self) -> PermissionStatus:
        stored = await asyncio.to_thread(self.current)
        if stored is not None:
            return stored
        granted = bool(await self.prompt())
        status = PermissionStatus.GRANTED if granted else PermissionStatus.DENIED
        try:
            await asyncio.to_thread(self.set_decision, granted)
        except PreferenceError as e:
            logger.warning("Failed to store permission decision: %s", e)
        logger.info("Location permission decided: %s", status.value)
        return status
