from datetime import datetime, timezone

from fastapi import APIRouter


router = APIRouter()


@router.get("/healthz", summary="Liveness check.")
async def healthz() -> dict[str, str]:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
