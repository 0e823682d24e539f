"""Single read operations: tx status, balance, gas price."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal

from web3 import Web3

from chainrelay.chain.backend import ChainBackend
from chainrelay.chain.registry import ChainRegistry
from chainrelay.config import Settings
from chainrelay.core.dispatch import run_backend_call
from chainrelay.core.orchestrator import check_backends
from chainrelay.core.validator import RequestValidator
from chainrelay.errors import BackendRejected, RequestError
from chainrelay.models.schema import Failure, OperationOutcome


def wei_to_gwei(wei: str) -> str:
    return str(Web3.from_wei(int(Decimal(wei)), "gwei"))


class SingleOperationFacade:
    """Validate, make one backend call, fold into an outcome.

    Same failure model as a one-item batch: validation errors never reach a
    backend, backend faults come back as ``Failure`` values.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        backends: Mapping[str, ChainBackend],
        validator: RequestValidator | None = None,
        timeout: float | None = 60.0,
    ):
        check_backends(registry, backends)
        self.registry = registry
        self.backends = backends
        self.validator = validator or RequestValidator(registry)
        self.timeout = timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: ChainRegistry,
        backends: Mapping[str, ChainBackend],
    ) -> SingleOperationFacade:
        return cls(registry, backends, timeout=settings.item_timeout)

    def list_chains(self) -> tuple[str, ...]:
        return self.registry.keys()

    async def check_tx_status(self, chain: str, tx_hash: str) -> OperationOutcome:
        try:
            self.validator.validate_chain(chain)
            self.validator.validate_tx_hash(tx_hash)
        except RequestError as e:
            return Failure.from_error(e)
        backend = self.backends[chain]
        return await run_backend_call(
            chain, lambda: backend.get_transaction_receipt(tx_hash), self.timeout, label="receipt lookup"
        )

    async def check_balance(self, chain: str, address: str | None = None) -> OperationOutcome:
        try:
            self.validator.validate_chain(chain)
        except RequestError as e:
            return Failure.from_error(e)
        backend = self.backends[chain]
        return await run_backend_call(
            chain, lambda: backend.get_balance(address), self.timeout, label="balance lookup"
        )

    async def get_gas_price(self, chain: str) -> OperationOutcome:
        """Gas price in gwei."""
        try:
            self.validator.validate_chain(chain)
        except RequestError as e:
            return Failure.from_error(e)
        backend = self.backends[chain]

        async def gas_price_gwei() -> str:
            wei = await backend.get_gas_price()
            try:
                return wei_to_gwei(wei)
            except (ArithmeticError, TypeError, ValueError):
                raise BackendRejected(chain, f"Gas price {wei!r} is not an amount of wei") from None

        return await run_backend_call(chain, gas_price_gwei, self.timeout, label="gas price lookup")
