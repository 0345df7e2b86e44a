from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends

from envsync.deps import get_store
from envsync.schemas import TemplateDocument
from envsync.services.store import EnvironmentStore
from envsync.services.structure import (
    apply_template,
    build_current_structure,
    build_info_summary,
    build_template,
    structure_to_json,
)

router = APIRouter(prefix="/api/structure", tags=["structure"])
logger = logging.getLogger(__name__)


@router.get("/template")
async def template_structure(store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    return structure_to_json(build_template(store.environments))


@router.get("/current")
async def current_structure(store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    return structure_to_json(build_current_structure(store.environments))


@router.get("/info")
async def info_summary(store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    return {name: info.model_dump() for name, info in build_info_summary(store.environments).items()}


@router.post("/apply")
async def apply(doc: TemplateDocument, store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    store.replace(apply_template(doc))
    logger.info("template applied: name=%s environments=%s", doc.name, store.names())
    return {"template": doc.name, "environments": store.names()}
