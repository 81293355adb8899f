from fastapi import APIRouter, HTTPException, Request

from ..services.capture_svc import CaptureController

router = APIRouter()


async def get_controller(request: Request) -> CaptureController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="not_ready")
    return controller


@router.get("/health")
def health():
    return {"status": "ok"}

@router.get("/version")
def version():
    return {"app": "locbase-api", "version": "0.1.0"}
