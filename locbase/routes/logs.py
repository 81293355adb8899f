from __future__ import annotations

from fastapi import APIRouter, Depends

from ..logs import search_operation_logs
from ..services.capture_svc import CaptureController
from .base import get_controller

router = APIRouter()


@router.get("/api/logs/search")
def api_logs_search(
    page: int = 1,
    size: int = 20,
    action: str | None = None,
    query: str | None = None,
    ts_from: str | None = None,
    ts_to: str | None = None,
    controller: CaptureController = Depends(get_controller),
):
    total, items = search_operation_logs(query, action, ts_from, ts_to, page, size,
                                         db_path=controller.store.db_path)
    return {"total": total, "items": items}
