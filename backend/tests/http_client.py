from __future__ import annotations

import asyncio
from functools import partialmethod
from typing import Any

import httpx


class SyncASGIClient:
    """Blocking wrapper around an in-process ASGI app.

    ``user_id`` is sent as ``X-User-Id`` unless a request overrides it.
    """

    def __init__(self, app, base_url: str = "http://testserver", user_id: str | None = None):
        self._app = app
        self._base_url = base_url
        self._headers = {"X-User-Id": user_id} if user_id else {}

    def as_user(self, user_id: str) -> SyncASGIClient:
        return SyncASGIClient(self._app, base_url=self._base_url, user_id=user_id)

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers, **(kwargs.pop("headers", None) or {})}

        async def _run() -> httpx.Response:
            transport = httpx.ASGITransport(app=self._app)
            async with httpx.AsyncClient(transport=transport, base_url=self._base_url) as client:
                response = await client.request(method, url, headers=headers, **kwargs)
                await response.aread()
                return response

        return asyncio.run(_run())

    get = partialmethod(request, "GET")
    post = partialmethod(request, "POST")
    patch = partialmethod(request, "PATCH")
