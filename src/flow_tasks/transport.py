from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from flow_tasks.schemas_sync import SyncRequest, SyncResponse

logger = logging.getLogger(__name__)


class TransportError(RuntimeError):
    """Any failed exchange: connectivity, non-2xx status or malformed payload."""


class SyncTransport(Protocol):
    async def exchange(self, request: SyncRequest) -> SyncResponse: ...


def parse_response(data: object) -> SyncResponse:
    if not isinstance(data, dict):
        raise TransportError(f"sync succeeded but bad response: {data!r}")
    try:
        return SyncResponse.model_validate(data)
    except ValidationError as e:
        raise TransportError(f"sync response parse failed: {e}") from e


class HttpxSyncTransport:
    def __init__(
        self,
        *,
        base_url: str,
        api_token: str,
        timeout_seconds: float,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = api_token.strip()
        self._timeout = timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        if not self._token:
            raise TransportError("api token is empty")
        return {"Authorization": f"Bearer {self._token}"}

    async def _post(self, url: str, *, json: dict[str, Any]) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, headers=self._headers(), json=json)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await client.post(url, headers=self._headers(), json=json)

    async def exchange(self, request: SyncRequest) -> SyncResponse:
        url = f"{self._base_url}/sync"
        try:
            resp = await self._post(url, json=request.to_wire())
        except httpx.HTTPError as e:
            raise TransportError(f"sync request failed: {e}") from e

        if not 200 <= resp.status_code < 300:
            raise TransportError(f"sync failed. {resp.status_code} {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError(f"sync response is not json: {resp.text[:200]}") from e
        response = parse_response(data)
        logger.debug(
            "sync exchange ok full_sync=%s items=%d statuses=%d",
            response.full_sync,
            len(response.items),
            len(response.sync_status),
        )
        return response
