from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..errors import PreferenceError
from ..logs import LogContext
from ..providers.permission import StoredPermissionGate
from ..services.capture_svc import CaptureController
from .base import get_controller

router = APIRouter()


@router.get("/api/preferences/dark-mode")
def api_dark_mode_get(controller: CaptureController = Depends(get_controller)):
    return {"dark_mode_enabled": controller.dark_mode_enabled}


@router.post("/api/preferences/dark-mode/toggle")
async def api_dark_mode_toggle(controller: CaptureController = Depends(get_controller)):
    enabled = await controller.toggle_dark_mode()
    return {"dark_mode_enabled": enabled}


class PermissionBody(BaseModel):
    granted: bool


@router.post("/api/permission")
async def api_permission_set(body: PermissionBody, controller: CaptureController = Depends(get_controller)):
    gate = controller.permission_gate
    if not isinstance(gate, StoredPermissionGate):
        raise HTTPException(status_code=400, detail="permission_not_configurable")
    log = LogContext("PERMISSION_SET", db_path=controller.store.db_path)
    log.set_payload(body.model_dump())
    try:
        status = await asyncio.to_thread(gate.set_decision, body.granted)
        await asyncio.to_thread(log.write, "OK")
        return {"message": "ok", "permission": status.value}
    except PreferenceError as e:
        await asyncio.to_thread(log.write, "ERROR", str(e))
        raise HTTPException(status_code=500, detail=str(e))
