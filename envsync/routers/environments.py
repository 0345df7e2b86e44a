from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends, Response

from envsync.deps import get_store
from envsync.schemas import (
    AddEnvironmentRequest,
    Environment,
    EntryKind,
    UpdateEntryRequest,
)
from envsync.services.store import EnvironmentStore

router = APIRouter(prefix="/api/environments", tags=["environments"])
logger = logging.getLogger(__name__)

MASK = "********"


def _view(store: EnvironmentStore, env: Environment) -> Dict[str, Any]:
    visible = store.secrets_visible(env.name)
    data = env.model_dump()
    if not visible:
        for kv in data["secrets"]:
            kv["value"] = MASK if kv["value"] else ""
    data["secrets_visible"] = visible
    return data


@router.get("")
async def list_environments(store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    return {
        "environments": [_view(store, env) for env in store.environments],
        "policy": {
            "allow_blank_fields": store.allow_blank_fields,
            "min_entries_per_collection": store.min_entries_per_collection,
        },
    }


@router.post("", status_code=201)
async def add_environment(
    payload: AddEnvironmentRequest, store: EnvironmentStore = Depends(get_store)
) -> Dict[str, Any]:
    env = store.add_environment(payload.name)
    return _view(store, env)


@router.delete("/{name}", status_code=204)
async def remove_environment(name: str, store: EnvironmentStore = Depends(get_store)) -> Response:
    store.remove_environment(name)
    return Response(status_code=204)


@router.post("/{name}/secrets/visibility")
async def toggle_secret_visibility(name: str, store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    return {"name": name, "secrets_visible": store.toggle_secret_visibility(name)}


@router.post("/{env_index}/{kind}", status_code=201)
async def add_entry(
    env_index: int, kind: EntryKind, store: EnvironmentStore = Depends(get_store)
) -> Dict[str, Any]:
    index = store.add_entry(env_index, kind)
    return {"env_index": env_index, "kind": kind, "index": index}


@router.patch("/{env_index}/{kind}/{entry_index}")
async def update_entry(
    env_index: int,
    kind: EntryKind,
    entry_index: int,
    payload: UpdateEntryRequest,
    store: EnvironmentStore = Depends(get_store),
) -> Dict[str, Any]:
    kv = store.update_entry(env_index, kind, entry_index, payload.field, payload.value)
    data = kv.model_dump()
    if kind == "secrets":
        # значение секрета наружу не отдаём
        data["value"] = MASK if data["value"] else ""
    return data


@router.delete("/{env_index}/{kind}/{entry_index}", status_code=204)
async def remove_entry(
    env_index: int,
    kind: EntryKind,
    entry_index: int,
    store: EnvironmentStore = Depends(get_store),
) -> Response:
    store.remove_entry(env_index, kind, entry_index)
    return Response(status_code=204)
