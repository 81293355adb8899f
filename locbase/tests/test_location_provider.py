from __future__ import annotations

import asyncio

import pytest

from locbase.domain.coords import Position
from locbase.errors import LocationUnavailable
from locbase.providers.location import (
    Accuracy,
    CancelToken,
    DisabledLocationProvider,
    SequenceLocationProvider,
    StaticLocationProvider,
    acquire_position,
)


def test_accuracy_from_name():
    assert Accuracy.from_name("HIGH") is Accuracy.HIGH
    assert Accuracy.from_name("balanced") is Accuracy.BALANCED
    assert Accuracy.from_name("nonsense") is Accuracy.HIGH
    assert Accuracy.from_name(None) is Accuracy.HIGH


def test_static_provider_passes_accuracy_hint():
    prov = StaticLocationProvider(37.422, -122.084)
    pos = asyncio.run(acquire_position(prov, Accuracy.HIGHEST, timeout_s=1.0))
    assert pos == Position(37.422, -122.084)
    assert prov.calls == [Accuracy.HIGHEST]


def test_timeout_maps_to_unavailable():
    prov = SequenceLocationProvider([(1.0, 2.0)], delay_s=2.0)
    with pytest.raises(LocationUnavailable, match="timed out"):
        asyncio.run(acquire_position(prov, timeout_s=0.05))


def test_cancel_token_maps_to_unavailable():
    prov = SequenceLocationProvider([(1.0, 2.0)], delay_s=5.0)

    async def scenario():
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel)
        await acquire_position(prov, timeout_s=None, cancel=token)

    with pytest.raises(LocationUnavailable, match="cancelled"):
        asyncio.run(scenario())


def test_provider_error_is_wrapped():
    prov = SequenceLocationProvider([RuntimeError("gps chip offline")])
    with pytest.raises(LocationUnavailable, match="gps chip offline") as ei:
        asyncio.run(acquire_position(prov, timeout_s=1.0))
    assert isinstance(ei.value.__cause__, RuntimeError)


def test_disabled_provider_and_empty_queue():
    with pytest.raises(LocationUnavailable, match="disabled"):
        asyncio.run(acquire_position(DisabledLocationProvider(), timeout_s=1.0))
    with pytest.raises(LocationUnavailable, match="no position fix"):
        asyncio.run(acquire_position(SequenceLocationProvider(), timeout_s=1.0))


def test_out_of_range_reading_rejected():
    prov = SequenceLocationProvider([(123.0, 10.0)])
    with pytest.raises(LocationUnavailable, match="invalid coordinates"):
        asyncio.run(acquire_position(prov, timeout_s=1.0))
