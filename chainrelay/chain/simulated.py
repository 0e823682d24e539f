"""In-process backend serving canned chain data. No network, no keys."""

from __future__ import annotations

import asyncio
import random
from decimal import Decimal

from web3 import Web3

from chainrelay.chain.backend import Receipt
from chainrelay.chain.registry import ChainMetadata

# Gas prices in gwei
SIMULATED_GAS_PRICES: dict[str, str] = {
    "ETH": "25.45",
    "POLYGON": "150.32",
    "BNB": "5.78",
    "OP": "0.25",
    "BASE": "0.15",
    "ARB": "0.35",
    "Holesky": "10.25",
}

# Balances in native token
SIMULATED_BALANCES: dict[str, str] = {
    "ETH": "1.234567",
    "POLYGON": "245.678901",
    "BNB": "5.432109",
    "OP": "0.987654",
    "BASE": "2.345678",
    "ARB": "3.456789",
    "Holesky": "10.123456",
}

EMPTY_LOGS_BLOOM = "0x" + "0" * 512


class SimulatedChainBackend:
    def __init__(
        self,
        chain: ChainMetadata,
        latency: float = 0.0,
        success_rate: float = 1.0,
        rng: random.Random | None = None,
    ):
        self.chain = chain
        self.latency = latency
        self.success_rate = success_rate
        self.rng = rng or random.Random()

    async def _delay(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    def _hex(self, n_bytes: int) -> str:
        return "0x" + self.rng.randbytes(n_bytes).hex()

    def _receipt(self, tx_hash: str, status: bool) -> Receipt:
        gas_used = self.rng.randint(21000, 100000)
        return {
            "blockHash": self._hex(32),
            "blockNumber": self.rng.randint(1, 10_000_000),
            "contractAddress": None,
            "cumulativeGasUsed": gas_used + self.rng.randint(0, 1_000_000),
            "effectiveGasPrice": int(Web3.to_wei(Decimal(SIMULATED_GAS_PRICES.get(self.chain.key, "10")), "gwei")),
            "from": self._hex(20),
            "gasUsed": gas_used,
            "logs": [],
            "logsBloom": EMPTY_LOGS_BLOOM,
            "status": status,
            "to": self._hex(20),
            "transactionHash": tx_hash,
            "transactionIndex": self.rng.randint(0, 99),
            "type": "0x0",
        }

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        await self._delay()
        return self._receipt(tx_hash, status=True)

    async def get_balance(self, address: str | None = None) -> str:
        await self._delay()
        return SIMULATED_BALANCES.get(self.chain.key, "0.000000")

    async def get_gas_price(self) -> str:
        await self._delay()
        gwei = Decimal(SIMULATED_GAS_PRICES.get(self.chain.key, "10.00"))
        return str(Web3.to_wei(gwei, "gwei"))

    async def submit_transfer(self, to_chain: str, amount: Decimal) -> Receipt:
        await self._delay()
        return self._receipt(self._hex(32), status=self.rng.random() < self.success_rate)
