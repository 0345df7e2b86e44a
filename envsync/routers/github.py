from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, Query

from envsync.deps import get_store, get_sync
from envsync.schemas import CredentialRequest, RepositoryRequest
from envsync.services.store import EnvironmentStore
from envsync.services.structure import build_current_structure, build_info_summary, structure_to_json
from envsync.services.sync import RemoteSync

router = APIRouter(prefix="/api/github", tags=["github"])
logger = logging.getLogger(__name__)


@router.get("/status")
async def sync_status(sync: RemoteSync = Depends(get_sync)) -> Dict[str, Any]:
    return sync.status()


@router.post("/credential")
async def validate_credential(payload: CredentialRequest, sync: RemoteSync = Depends(get_sync)) -> Dict[str, Any]:
    user = await sync.validate_credential(payload.token)
    # проверку доступа запускаем явно, только если репозиторий уже задан
    if sync.repository:
        await sync.check_repository_access()
    return {"user": user.model_dump(), **sync.status()}


@router.put("/repository")
async def set_repository(payload: RepositoryRequest, sync: RemoteSync = Depends(get_sync)) -> Dict[str, Any]:
    sync.set_repository(payload.repository)
    if sync.user is not None:
        await sync.check_repository_access()
    return sync.status()


@router.post("/dispatch")
async def dispatch(
    sync: RemoteSync = Depends(get_sync),
    store: EnvironmentStore = Depends(get_store),
) -> Dict[str, Any]:
    structure = structure_to_json(build_current_structure(store.environments))
    # в лог только имена секретов
    safe = {name: info.model_dump() for name, info in build_info_summary(store.environments).items()}
    logger.info("dispatch requested: repository=%s structure=%s", sync.repository, safe)
    response = await sync.dispatch(structure)
    return response.model_dump()


@router.get("/environments")
async def remote_environments(
    strict: bool = Query(default=True),
    sync: RemoteSync = Depends(get_sync),
) -> Dict[str, Any]:
    info = await sync.fetch_remote_environments(strict=strict)
    return info.model_dump()
