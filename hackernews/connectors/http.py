"""httpx-backed worker executed by the rate limited queue."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from .base import TransportError


@dataclass(frozen=True)
class PageRequest:
    """Page mode marker: fetch raw HTML on behalf of a client IP."""

    ip: Optional[str] = None


class HttpWorker:
    """Performs one upstream GET.

    - JSON mode (``page is None``): returns the decoded JSON value
    - page mode: returns the body text and forwards ``X-Forwarded-For``
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def __call__(self, url: str, page: Optional[PageRequest] = None) -> Any:
        headers = {}
        if page is not None and page.ip:
            headers["X-Forwarded-For"] = page.ip
        try:
            resp = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Upstream timeout: {url}") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Upstream request failed: {url}") from exc

        if resp.status_code >= 400:
            raise TransportError(_error_message(resp))
        if page is not None:
            return resp.text
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportError(f"Upstream returned invalid JSON: {url}") from exc


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return f"Upstream error: {resp.status_code}"
