from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..services.capture_svc import CaptureController, CaptureStatus
from .base import get_controller

router = APIRouter()

_STATUS_CODES = {
    CaptureStatus.BUSY: 409,
    CaptureStatus.DENIED: 403,
    CaptureStatus.UNAVAILABLE: 503,
    CaptureStatus.STORAGE_ERROR: 500,
    CaptureStatus.ERROR: 500,
}


@router.get("/api/state")
def api_state(controller: CaptureController = Depends(get_controller)):
    return controller.snapshot().to_dict()


@router.get("/api/locations")
def api_locations(controller: CaptureController = Depends(get_controller)):
    locations = controller.locations
    return {"items": None if locations is None else [r.to_dict() for r in locations]}


@router.post("/api/locations/capture", status_code=201)
async def api_locations_capture(controller: CaptureController = Depends(get_controller)):
    outcome = await controller.capture()
    if not outcome.ok:
        alert = controller.last_alert
        detail = alert.message if (alert and outcome.status != CaptureStatus.BUSY) else outcome.message
        raise HTTPException(status_code=_STATUS_CODES[outcome.status], detail=detail)
    locations = controller.locations or ()
    return {"message": "ok", "id": outcome.record_id, "items": [r.to_dict() for r in locations]}


@router.post("/api/locations/cancel")
def api_locations_cancel(controller: CaptureController = Depends(get_controller)):
    return {"cancelled": controller.cancel()}
