"""Shared fixtures: the FastAPI app wired to a fake GitHub."""
import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Settings читаются при импорте модулей envsync
os.environ.setdefault("GITHUB_API_URL", "https://api.github.test")
os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeGitHub:
    """Route table for httpx.MockTransport: (method, path) -> response factory."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[httpx.Request] = []

    def add(self, method: str, path: str, status: int = 200, json_body: Any = None,
            headers: Optional[Dict[str, str]] = None) -> None:
        def _respond(request: httpx.Request) -> httpx.Response:
            if json_body is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, json=json_body, headers=headers)

        self.routes[(method, path)] = _respond

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    @staticmethod
    def raw_path(request: httpx.Request) -> str:
        # без декодирования: "prod%2Feu" должен остаться одним сегментом
        return request.url.raw_path.split(b"?")[0].decode("ascii")

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [self.raw_path(r) for r in self.calls if method is None or r.method == method]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, self.raw_path(request)))
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        return route(request)

    def json_of(self, request: httpx.Request) -> Any:
        return json.loads(request.content)


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def github_http(fake_github):
    from envsync.core.http_client import create_github_http_client
    return create_github_http_client(transport=httpx.MockTransport(fake_github.handler))


@pytest.fixture
def github_client(github_http):
    from envsync.services.github import GitHubClient
    return GitHubClient(github_http)


@pytest.fixture
def store():
    from envsync.services.store import EnvironmentStore
    return EnvironmentStore()


@pytest_asyncio.fixture
async def client(github_http, tmp_path):
    from envsync.main import app, init_state
    from envsync.services.templates import TemplateRepository

    init_state(app, github_http)
    app.state.templates = TemplateRepository(tmp_path / "templates.json")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    await github_http.aclose()
