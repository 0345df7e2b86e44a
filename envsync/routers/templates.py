from __future__ import annotations

from typing import Any, Dict, List, Optional
import asyncio
import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from envsync.core.errors import TemplateNotFoundError
from envsync.deps import get_store, get_templates
from envsync.schemas import SaveTemplateRequest
from envsync.services.store import EnvironmentStore
from envsync.services.structure import apply_template
from envsync.services.templates import (
    TemplateRepository,
    dump_template,
    export_template,
    parse_template,
)

router = APIRouter(prefix="/api/templates", tags=["templates"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_templates(
    search: Optional[str] = Query(default=None),
    templates: TemplateRepository = Depends(get_templates),
) -> List[Dict[str, Any]]:
    items = await asyncio.to_thread(templates.search, search)
    return [t.model_dump(exclude_none=True) for t in items]


@router.post("", status_code=201)
async def save_template(
    payload: SaveTemplateRequest,
    store: EnvironmentStore = Depends(get_store),
    templates: TemplateRepository = Depends(get_templates),
) -> Dict[str, Any]:
    doc = export_template(
        store.environments,
        payload.name,
        description=payload.description,
        version=payload.version,
        author=payload.author,
    )
    replaced = await asyncio.to_thread(templates.put, doc)
    logger.info("template saved: name=%s replaced=%s", doc.name, replaced)
    return {"template": doc.model_dump(exclude_none=True), "replaced": replaced}


@router.post("/import")
async def import_template(request: Request, store: EnvironmentStore = Depends(get_store)) -> Dict[str, Any]:
    """Apply an uploaded template file (raw JSON body) to the store."""
    doc = parse_template(await request.body())
    store.replace(apply_template(doc))
    logger.info("template imported: name=%s environments=%s", doc.name, store.names())
    return {"template": doc.name, "environments": store.names()}


@router.get("/{name}")
async def get_template(name: str, templates: TemplateRepository = Depends(get_templates)) -> Dict[str, Any]:
    doc = await asyncio.to_thread(templates.get, name)
    return doc.model_dump(exclude_none=True)


@router.get("/{name}/download")
async def download_template(name: str, templates: TemplateRepository = Depends(get_templates)) -> Response:
    doc = await asyncio.to_thread(templates.get, name)
    filename = "".join(ch if ch.isalnum() or ch in "-_." else "-" for ch in doc.name) or "environment-template"
    return Response(
        content=dump_template(doc),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}.json"'},
    )


@router.post("/{name}/apply")
async def apply_saved_template(
    name: str,
    store: EnvironmentStore = Depends(get_store),
    templates: TemplateRepository = Depends(get_templates),
) -> Dict[str, Any]:
    doc = await asyncio.to_thread(templates.get, name)
    store.replace(apply_template(doc))
    return {"template": doc.name, "environments": store.names()}


@router.delete("/{name}", status_code=204)
async def delete_template(name: str, templates: TemplateRepository = Depends(get_templates)) -> Response:
    if not await asyncio.to_thread(templates.delete, name):
        raise TemplateNotFoundError(f"Template '{name}' not found")
    return Response(status_code=204)
