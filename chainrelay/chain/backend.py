"""Per-chain backend capability the orchestrator dispatches to."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from chainrelay.chain.registry import ChainRegistry
from chainrelay.config import Settings

Receipt = dict[str, Any]


@runtime_checkable
class ChainBackend(Protocol):
    """Reads and transfers for one chain.

    Implementations raise ``BackendError`` subclasses for faults they can
    classify. Each method is one request/response unit from the caller's
    point of view, however many RPC round-trips it needs internally.
    """

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt: ...

    async def get_balance(self, address: str | None = None) -> str:
        """Balance in native token units. ``None`` means the configured account."""
        ...

    async def get_gas_price(self) -> str:
        """Gas price in wei."""
        ...

    async def submit_transfer(self, to_chain: str, amount: Decimal) -> Receipt: ...


def build_backends(registry: ChainRegistry, settings: Settings) -> dict[str, ChainBackend]:
    """One backend per registered chain, according to ``settings.chain_mode``."""
    if settings.chain_mode == "live":
        from chainrelay.chain.provider import Web3ChainBackend

        return {key: Web3ChainBackend(registry.metadata(key), settings) for key in registry.keys()}

    from chainrelay.chain.simulated import SimulatedChainBackend

    return {
        key: SimulatedChainBackend(
            registry.metadata(key),
            latency=settings.simulated_latency,
            success_rate=settings.simulated_success_rate,
        )
        for key in registry.keys()
    }
