# levelgate/routes/health.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException

from levelgate.core.healthcheck import db_unreachable

router = APIRouter()


@router.get("/health")
async def healthcheck():
    failed = await db_unreachable()
    if failed:
        raise HTTPException(status_code=503, detail="Unhealthy")
    return {"status": "ready"}
