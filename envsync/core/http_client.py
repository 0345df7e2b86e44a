from __future__ import annotations

from typing import Optional

import httpx

from envsync.core.config import settings


def create_github_http_client(transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create a preconfigured HTTP client for GitHub requests."""

    limits = httpx.Limits(
        max_connections=20,
        max_keepalive_connections=10,
        keepalive_expiry=60.0,
    )
    return httpx.AsyncClient(
        base_url=settings.GITHUB_API_URL,
        follow_redirects=True,
        trust_env=False,
        http2=True,
        limits=limits,
        timeout=settings.REQUEST_TIMEOUT_S,
        transport=transport,
    )
