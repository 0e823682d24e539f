"""Async HTTP client for a running chainrelay service."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class ChainRelayAPIError(Exception):
    """The service answered with ``success: false``."""

    def __init__(self, message: str, kind: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code


class ChainRelayClient:
    def __init__(self, base_url: str, timeout: float = 180.0, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> ChainRelayClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict[str, Any]:
        resp = await self._client.request(method, path, json=payload)
        try:
            data = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise ChainRelayAPIError(f"Non-JSON response from {path}", status_code=resp.status_code)
        if not data.get("success", False):
            logger.debug(f"{path} -> {resp.status_code}: {data}")
            raise ChainRelayAPIError(
                data.get("error", f"Request to {path} failed"),
                kind=data.get("errorKind"),
                status_code=resp.status_code,
            )
        return data

    async def fetch_chains(self) -> list[str]:
        data = await self._request("GET", "/chains")
        return data["chains"]

    async def check_tx_status(self, chain_key: str, tx_hash: str) -> dict[str, Any]:
        data = await self._request("POST", "/txStatus", {"chainKey": chain_key, "txHash": tx_hash})
        return data["txReceipt"]

    async def check_balance(self, chain_key: str) -> str:
        data = await self._request("POST", "/checkBalance", {"chainKey": chain_key})
        return data["balance"]

    async def get_gas_price(self, chain_key: str) -> str:
        data = await self._request("POST", "/getGasPrice", {"chainKey": chain_key})
        return data["gasPrice"]

    async def execute_multi_transfer(self, transfers: list[dict[str, str]]) -> dict[str, Any]:
        """Returns ``{status, results}``. Per-item failures do not raise."""
        data = await self._request("POST", "/multiTransfer", {"transfers": transfers})
        return {"status": data["status"], "results": data["results"]}
