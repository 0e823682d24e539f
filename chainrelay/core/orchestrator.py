"""Concurrent batch dispatch of transfer requests with per-item isolation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType

from chainrelay.chain.backend import ChainBackend
from chainrelay.chain.registry import ChainRegistry
from chainrelay.config import Settings
from chainrelay.core.aggregator import aggregate
from chainrelay.core.dispatch import run_backend_call
from chainrelay.core.validator import RequestValidator
from chainrelay.errors import (
    BackendRejected,
    BackendUnavailable,
    ConfigurationError,
    EmptyBatch,
    RequestError,
)
from chainrelay.models.schema import BatchResult, Failure, OperationOutcome, TransferRequest

logger = logging.getLogger(__name__)


def check_backends(registry: ChainRegistry, backends: Mapping[str, ChainBackend]) -> None:
    missing = [key for key in registry.keys() if key not in backends]
    if missing:
        raise ConfigurationError(f"No backend configured for chains: {missing}")


class BatchOrchestrator:
    """Fan a batch of transfers out to per-chain backends.

    Every valid item gets exactly one ``submit_transfer`` call and nothing is
    retried. Items run as independent tasks; a fault, timeout or invalid
    request in one item only ever changes that item's outcome. Results are
    written by input index, so ``result.results[i]`` answers ``requests[i]``
    whatever order the backends complete in.
    """

    def __init__(
        self,
        registry: ChainRegistry,
        backends: Mapping[str, ChainBackend],
        validator: RequestValidator | None = None,
        item_timeout: float | None = 60.0,
        max_concurrency: int = 16,
    ):
        check_backends(registry, backends)
        if max_concurrency < 1:
            raise ConfigurationError(f"max_concurrency must be >= 1, got {max_concurrency}")
        self.registry = registry
        self.backends = MappingProxyType(dict(backends))
        self.validator = validator or RequestValidator(registry)
        self.item_timeout = item_timeout
        self.max_concurrency = max_concurrency

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        registry: ChainRegistry,
        backends: Mapping[str, ChainBackend],
    ) -> BatchOrchestrator:
        return cls(
            registry,
            backends,
            validator=RequestValidator(registry, allow_same_chain=settings.allow_same_chain_transfers),
            item_timeout=settings.item_timeout,
            max_concurrency=settings.max_concurrency,
        )

    async def _run_item(
        self,
        index: int,
        request: TransferRequest,
        semaphore: asyncio.Semaphore,
    ) -> OperationOutcome:
        try:
            transfer = self.validator.validate(request)
        except RequestError as e:
            logger.info(f"Transfer #{index} rejected before dispatch: {e.message}")
            return Failure.from_error(e)

        backend = self.backends[transfer.from_chain]

        async def submit() -> dict:
            receipt = await backend.submit_transfer(transfer.to_chain, transfer.amount)
            if not isinstance(receipt, Mapping):
                raise BackendRejected(
                    transfer.from_chain, f"Backend returned {type(receipt).__name__} instead of a receipt"
                )
            return dict(receipt)

        async with semaphore:
            outcome = await run_backend_call(
                transfer.from_chain,
                submit,
                self.item_timeout,
                label=f"transfer #{index} to {transfer.to_chain}",
            )

        if outcome.success and not outcome.value.get("status", True):
            tx_hash = outcome.value.get("transactionHash", "unknown")
            error = BackendRejected(transfer.from_chain, f"Transaction {tx_hash} reverted")
            return Failure.from_error(error, receipt=outcome.value)
        return outcome

    async def execute(self, requests: Sequence[TransferRequest]) -> BatchResult:
        requests = list(requests)
        if not requests:
            raise EmptyBatch()

        semaphore = asyncio.Semaphore(self.max_concurrency)
        results: list[OperationOutcome | None] = [None] * len(requests)

        async def run(index: int, request: TransferRequest) -> None:
            try:
                results[index] = await self._run_item(index, request, semaphore)
            except Exception as e:
                logger.exception(f"Transfer #{index} failed outside its backend call")
                error = BackendUnavailable(request.from_chain, f"{type(e).__name__}: {e}")
                results[index] = Failure.from_error(error)

        await asyncio.gather(*(run(i, r) for i, r in enumerate(requests)))

        batch = aggregate(results)
        logger.info(
            f"Batch of {len(requests)} transfers finished: {batch.status.value}, "
            f"{len(batch.failed_indices)} failed"
        )
        return batch
