from __future__ import annotations
from fastapi import APIRouter, Request

from envsync.core.config import settings

router = APIRouter(prefix="/api", tags=["meta"])

@router.get("/ping")
async def ping():
    return {"ok": True}


@router.get("/health")
async def api_health(request: Request):
    # без обращения к GitHub: токен задаёт оператор, а не конфиг
    sync = request.app.state.sync
    return {
        "ok": True,
        "environments": len(request.app.state.store),
        "sync_state": sync.state.value,
        "base_url": settings.GITHUB_API_URL,
    }
