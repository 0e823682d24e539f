"""Shared fixtures: stub backends, registry, settings."""
from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from chainrelay.chain.registry import ChainRegistry
from chainrelay.config import Settings

CHAINS = ["ETH", "POLYGON", "BNB", "OP", "BASE", "ARB", "Holesky"]


class StubBackend:
    """Records every call. Fails for amounts listed in ``fail_on``."""

    def __init__(
        self,
        key: str,
        delay: float = 0.0,
        status: bool = True,
        fail_on: dict[str, Exception] | None = None,
        delay_on: dict[str, float] | None = None,
        balance: str = "1.5",
        gas_price_wei: str = "20000000000",
        receipt_error: Exception | None = None,
    ):
        self.key = key
        self.delay = delay
        self.status = status
        self.fail_on = fail_on or {}
        self.delay_on = delay_on or {}
        self.balance = balance
        self.gas_price_wei = gas_price_wei
        self.receipt_error = receipt_error
        self.calls: list[tuple] = []
        self.active = 0
        self.peak_active = 0

    async def _enter(self, delay: float) -> None:
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            await asyncio.sleep(delay)
        finally:
            self.active -= 1

    async def submit_transfer(self, to_chain: str, amount: Decimal) -> dict:
        self.calls.append(("submit_transfer", to_chain, amount))
        await self._enter(self.delay_on.get(str(amount), self.delay))
        if str(amount) in self.fail_on:
            raise self.fail_on[str(amount)]
        return {
            "transactionHash": f"0x{self.key.lower()}{len(self.calls):04d}",
            "status": self.status,
            "blockNumber": 100 + len(self.calls),
            "gasUsed": 21000,
            "toChain": to_chain,
            "amount": str(amount),
        }

    async def get_transaction_receipt(self, tx_hash: str) -> dict:
        self.calls.append(("get_transaction_receipt", tx_hash))
        await self._enter(self.delay)
        if self.receipt_error is not None:
            raise self.receipt_error
        return {"transactionHash": tx_hash, "status": True, "blockNumber": 12345678, "gasUsed": 21000}

    async def get_balance(self, address: str | None = None) -> str:
        self.calls.append(("get_balance", address))
        await self._enter(self.delay)
        return self.balance

    async def get_gas_price(self) -> str:
        self.calls.append(("get_gas_price",))
        await self._enter(self.delay)
        return self.gas_price_wei


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, supported_chains=CHAINS, item_timeout=5.0)


@pytest.fixture
def registry() -> ChainRegistry:
    return ChainRegistry.from_keys(CHAINS)


@pytest.fixture
def backends() -> dict[str, StubBackend]:
    return {key: StubBackend(key) for key in CHAINS}


@pytest.fixture
def sample_tx_hash() -> str:
    return "0x" + "a" * 64
