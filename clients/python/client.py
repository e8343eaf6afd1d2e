from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict

import httpx


@dataclass
class DecisionRequest:
    """Convenience wrapper for POST /decisions payloads."""

    inputs: Dict[str, Any]
    repo: str | None = None
    days_since_last_activity: float | None = None
    now: str | None = None

    def to_payload(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class BoardQuery:
    subcategory: str | None = None
    category: str | None = None
    sort: str = "waitTime"
    extra: Dict[str, str] = field(default_factory=dict)

    def params(self) -> Dict[str, str]:
        params = {"sort": self.sort, **self.extra}
        if self.subcategory:
            params["subcategory"] = self.subcategory
        if self.category:
            params["category"] = self.category
        return params


class OpenPRsClient:
    """Lightweight synchronous client for the OpenPRs board API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Dict[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        normalized_base = base_url.rstrip("/") + "/"
        self._client = httpx.Client(
            base_url=normalized_base,
            timeout=timeout,
            headers=headers,
            transport=transport,
        )

    def __enter__(self) -> "OpenPRsClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def decide(self, request: DecisionRequest) -> dict:
        response = self._client.post("decisions", json=request.to_payload())
        response.raise_for_status()
        return response.json()

    def get_board(self, spec: str, query: BoardQuery | None = None) -> dict:
        response = self._client.get(f"boards/{spec}", params=(query or BoardQuery()).params())
        response.raise_for_status()
        return response.json()

    def get_board_aggregation(self, spec: str, month: str | None = None) -> dict:
        params = {"month": month} if month else None
        response = self._client.get(f"boards/{spec}/aggregation", params=params)
        response.raise_for_status()
        return response.json()

    def get_chart(self, spec: str, kind: str) -> dict:
        response = self._client.get(f"boards/{spec}/charts/{kind}")
        response.raise_for_status()
        return response.json()

    def healthcheck(self) -> dict:
        # Health lives outside the versioned prefix.
        response = self._client.get(str(self._client.base_url.join("/healthz")))
        response.raise_for_status()
        return response.json()
