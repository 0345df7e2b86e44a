from __future__ import annotations

from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from prometheus_client import make_asgi_app

from envsync.core.config import settings
from envsync.core.errors import EnvSyncError
from envsync.core.http_client import create_github_http_client
from envsync.services.github import GitHubClient
from envsync.services.store import EnvironmentStore
from envsync.services.sync import RemoteSync
from envsync.services.templates import TemplateRepository


logger = logging.getLogger(__name__)


def init_state(app: FastAPI, http_client: httpx.AsyncClient) -> None:
    """Wire the per-process collaborators onto app.state."""
    app.state.http_client = http_client
    app.state.github = GitHubClient(http_client)
    app.state.store = EnvironmentStore(
        allow_blank_fields=settings.STORE_ALLOW_BLANK_FIELDS,
        min_entries_per_collection=settings.STORE_MIN_ENTRIES,
    )
    app.state.sync = RemoteSync(app.state.github)
    app.state.templates = TemplateRepository(settings.TEMPLATES_PATH)


@asynccontextmanager
async def lifespan(app: FastAPI):
    http_client = create_github_http_client()
    init_state(app, http_client)
    logger.info("envsync started: github=%s templates=%s", settings.GITHUB_API_URL, app.state.templates.path)
    try:
        yield
    finally:
        await http_client.aclose()


app = FastAPI(title="GitHub Environment Sync", version="0.1.0", lifespan=lifespan)
app.add_middleware(GZipMiddleware, minimum_size=500)

app.mount("/metrics", make_asgi_app())


@app.exception_handler(EnvSyncError)
async def _envsync_error_handler(request: Request, exc: EnvSyncError) -> JSONResponse:
    level = logging.WARNING if exc.status_code >= 500 else logging.INFO
    logger.log(level, "%s %s -> %s: %s", request.method, request.url.path, type(exc).__name__, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": type(exc).__name__, "detail": exc.detail},
    )


# Логирование
root_level = getattr(logging, (settings.LOG_LEVEL or "INFO").upper(), logging.INFO)
logging.basicConfig(
    level=root_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
github_level = getattr(logging, (settings.GITHUB_LOG_LEVEL or "WARNING").upper(), logging.WARNING)
logging.getLogger("envsync.services.github").setLevel(github_level)

# Routers
from envsync.routers import environments as environments_router  # noqa: E402
from envsync.routers import github as github_router  # noqa: E402
from envsync.routers import meta as meta_router  # noqa: E402
from envsync.routers import structure as structure_router  # noqa: E402
from envsync.routers import templates as templates_router  # noqa: E402

app.include_router(meta_router.router)
app.include_router(environments_router.router)
app.include_router(structure_router.router)
app.include_router(templates_router.router)
app.include_router(github_router.router)
