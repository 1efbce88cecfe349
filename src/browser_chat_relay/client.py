"""HTTP client for a running relay server."""

from __future__ import annotations

import httpx

from .models import SendResult, StatusReport

# Error bodies that still carry a SendResult payload.
_RESULT_STATUSES = {409, 500, 502, 503}


class RelayClient:
    """Wrapper around the relay HTTP API."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def get_status(self) -> StatusReport:
        async with self._client() as client:
            response = await client.get("/status")
            response.raise_for_status()
            data = response.json()
        return StatusReport.model_validate(data)

    async def send(self, message: str) -> SendResult:
        async with self._client() as client:
            response = await client.post("/send", json={"message": message})
            if response.status_code not in _RESULT_STATUSES:
                response.raise_for_status()
            data = response.json()
        return SendResult.model_validate(data)

    async def shutdown(self) -> None:
        async with self._client() as client:
            response = await client.post("/shutdown")
            response.raise_for_status()
