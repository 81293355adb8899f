from __future__ import annotations

from dataclasses import dataclass, asdict
from math import isfinite
from typing import Any


LAT_MIN, LAT_MAX = -90.0, 90.0
LON_MIN, LON_MAX = -180.0, 180.0


@dataclass(frozen=True)
class Position:
    """A single reading returned by a location provider."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class LocationRecord:
    """One immutable row of the capture history."""

    id: int
    latitude: float
    longitude: float
    captured_at: str | None = None

    @classmethod
    def from_row(cls, row) -> "LocationRecord":
        keys = row.keys()
        return cls(
            id=int(row["id"]),
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
            captured_at=row["captured_at"] if "captured_at" in keys else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    try:
        lat = float(latitude)
        lon = float(longitude)
    except (TypeError, ValueError):
        return False
    if not (isfinite(lat) and isfinite(lon)):
        return False
    return LAT_MIN <= lat <= LAT_MAX and LON_MIN <= lon <= LON_MAX


def validate_coordinate(latitude: float, longitude: float) -> tuple[float, float]:
    """Return the pair as floats, or raise ValueError if out of range / not finite."""
    if not is_valid_coordinate(latitude, longitude):
        raise ValueError(f"invalid_coordinate: latitude={latitude!r} longitude={longitude!r}")
    return float(latitude), float(longitude)


def format_record(rec: LocationRecord, precision: int = 6) -> str:
    """Human readable line used by the CLI listing."""
    return (
        f"Location {rec.id} | Latitude: {rec.latitude:.{precision}f} "
        f"| Longitude: {rec.longitude:.{precision}f}"
    )
