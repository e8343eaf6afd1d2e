from __future__ import annotations

from typing import Dict

import httpx

from .client import BoardQuery, DecisionRequest


class AsyncOpenPRsClient:
    """Async variant of the OpenPRs board API client."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        normalized_base = base_url.rstrip("/") + "/"
        self._client = httpx.AsyncClient(
            base_url=normalized_base,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncOpenPRsClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def decide(self, request: DecisionRequest) -> dict:
        response = await self._client.post("decisions", json=request.to_payload())
        response.raise_for_status()
        return response.json()

    async def get_board(self, spec: str, query: BoardQuery | None = None) -> dict:
        response = await self._client.get(f"boards/{spec}", params=(query or BoardQuery()).params())
        response.raise_for_status()
        return response.json()

    async def get_board_aggregation(self, spec: str, month: str | None = None) -> dict:
        params = {"month": month} if month else None
        response = await self._client.get(f"boards/{spec}/aggregation", params=params)
        response.raise_for_status()
        return response.json()

    async def get_chart(self, spec: str, kind: str) -> dict:
        response = await self._client.get(f"boards/{spec}/charts/{kind}")
        response.raise_for_status()
        return response.json()

    async def healthcheck(self) -> dict:
        response = await self._client.get(str(self._client.base_url.join("/healthz")))
        response.raise_for_status()
        return response.json()
