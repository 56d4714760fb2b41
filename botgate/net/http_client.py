from __future__ import annotations

from typing import Optional

import httpx

from botgate.config import Settings

_client: Optional[httpx.AsyncClient] = None


def get_http_client(settings: Settings) -> httpx.AsyncClient:
    global _client
    if _client is None or _client.is_closed:
        limits = httpx.Limits(
            max_connections=200,
            max_keepalive_connections=100,
            keepalive_expiry=20,
        )
        _client = httpx.AsyncClient(
            timeout=settings.HTTP_TIMEOUT_S,
            limits=limits,
        )
    return _client


async def close_http_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
