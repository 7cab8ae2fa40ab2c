from fastapi import APIRouter, Request, status

router = APIRouter()

@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "media-ops-dashboard"}

@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(request: Request):
    ready = hasattr(request.app.state, "supervisor")
    return {"status": "ready" if ready else "starting"}

@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check():
    return {"status": "alive"}
