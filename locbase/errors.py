from __future__ import annotations

# locbase/errors.py


class LocbaseError(Exception):
    """Base class for failures raised inside the capture core."""


class PermissionDenied(LocbaseError):
    """Foreground location access was refused by the user or the system."""

    def __init__(self, message: str = "location permission denied"):
        super().__init__(message)


class LocationUnavailable(LocbaseError):
    """Location disabled, provider timeout or provider error. Only the message differs."""


class StorageError(LocbaseError):
    """Schema, insert or read failure against the record log."""


class PreferenceError(LocbaseError):
    """Key-value preference read/write failure. Never shown to the user."""
