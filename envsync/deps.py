from __future__ import annotations

from fastapi import Request

from envsync.services.store import EnvironmentStore
from envsync.services.sync import RemoteSync
from envsync.services.templates import TemplateRepository


# Single operator session: everything lives on app.state (created in lifespan)
async def get_store(request: Request) -> EnvironmentStore:
    return request.app.state.store


async def get_sync(request: Request) -> RemoteSync:
    return request.app.state.sync


async def get_templates(request: Request) -> TemplateRepository:
    return request.app.state.templates
