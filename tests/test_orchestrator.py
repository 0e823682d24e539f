"""Tests for concurrent batch dispatch and per-item isolation."""
from decimal import Decimal

import pytest

from conftest import CHAINS, StubBackend

from chainrelay.core.orchestrator import BatchOrchestrator
from chainrelay.core.validator import RequestValidator
from chainrelay.errors import (
    BackendRejected,
    BackendUnavailable,
    ConfigurationError,
    EmptyBatch,
    ErrorKind,
)
from chainrelay.models.schema import BatchStatus, TransferRequest


def transfer(from_chain, to_chain, amount):
    return TransferRequest(from_chain=from_chain, to_chain=to_chain, amount=amount)


def total_calls(backends):
    return sum(len(b.calls) for b in backends.values())


@pytest.fixture
def orchestrator(registry, backends):
    return BatchOrchestrator(registry, backends, item_timeout=5.0)


class TestExecute:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n", [1, 2, 7, 25])
    async def test_all_succeed_in_input_order(self, orchestrator, backends, n):
        requests = [transfer(CHAINS[i % len(CHAINS)], "ETH", f"{i}.5") for i in range(n)]

        batch = await orchestrator.execute(requests)

        assert len(batch.results) == n
        assert batch.status == BatchStatus.ALL_SUCCEEDED
        for request, outcome in zip(requests, batch.results):
            assert outcome.success
            assert outcome.value["amount"] == request.amount

    @pytest.mark.asyncio
    async def test_mixed_valid_and_unknown_chain(self, orchestrator, backends):
        requests = [transfer("ETH", "POLYGON", "0.5"), transfer("BNB", "unsupported", "1.0")]

        batch = await orchestrator.execute(requests)

        assert len(batch.results) == 2
        assert batch.results[0].success
        assert batch.results[0].value["toChain"] == "POLYGON"
        assert not batch.results[1].success
        assert batch.results[1].error_kind == ErrorKind.UNKNOWN_CHAIN
        assert "unsupported" in batch.results[1].message
        assert backends["BNB"].calls == []
        assert batch.status == BatchStatus.PARTIALLY_SUCCEEDED

    @pytest.mark.asyncio
    async def test_invalid_amount_never_dispatched(self, orchestrator, backends):
        batch = await orchestrator.execute([transfer("ETH", "BASE", "abc")])

        assert batch.results[0].error_kind == ErrorKind.INVALID_AMOUNT
        assert batch.status == BatchStatus.ALL_FAILED
        assert total_calls(backends) == 0

    @pytest.mark.asyncio
    async def test_empty_batch(self, orchestrator, backends):
        with pytest.raises(EmptyBatch):
            await orchestrator.execute([])
        assert total_calls(backends) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [0, 2, 4])
    async def test_single_failure_is_isolated(self, registry, k):
        amounts = [f"{i + 1}" for i in range(5)]
        eth = StubBackend("ETH", delay=0.01, fail_on={amounts[k]: BackendRejected("ETH", "insufficient funds")})
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["ETH"] = eth
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("ETH", "ARB", a) for a in amounts])

        assert len(batch.results) == 5
        assert batch.failed_indices == [k]
        assert batch.results[k].error_kind == ErrorKind.BACKEND_REJECTED
        for i, outcome in enumerate(batch.results):
            if i != k:
                assert outcome.success
                assert outcome.value["amount"] == amounts[i]

    @pytest.mark.asyncio
    async def test_every_item_fails(self, registry):
        error = BackendUnavailable("OP", "connection refused")
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["OP"] = StubBackend("OP", fail_on={"1": error, "2": error, "3": error})
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("OP", "BASE", a) for a in ["1", "2", "3"]])

        assert len(batch.results) == 3
        assert batch.status == BatchStatus.ALL_FAILED
        assert all(o.error_kind == ErrorKind.BACKEND_UNAVAILABLE for o in batch.results)

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(self, registry):
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["BASE"] = StubBackend("BASE", fail_on={"2": RuntimeError("boom")})
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("BASE", "ETH", "1"), transfer("BASE", "ETH", "2")])

        assert batch.results[0].success
        assert batch.results[1].error_kind == ErrorKind.BACKEND_UNAVAILABLE
        assert "boom" in batch.results[1].message

    @pytest.mark.asyncio
    async def test_reverted_receipt_is_rejected(self, registry):
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["ARB"] = StubBackend("ARB", status=False)
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("ARB", "OP", "1"), transfer("ETH", "OP", "1")])

        assert batch.results[0].error_kind == ErrorKind.BACKEND_REJECTED
        assert batch.results[0].receipt["status"] is False
        assert "reverted" in batch.results[0].message
        assert batch.results[1].success

    @pytest.mark.asyncio
    async def test_missing_receipt_is_isolated(self, registry):
        class NoReceipt(StubBackend):
            async def submit_transfer(self, to_chain, amount):
                receipt = await super().submit_transfer(to_chain, amount)
                return None if amount == Decimal("2") else receipt

        backends = {key: StubBackend(key) for key in CHAINS}
        backends["ETH"] = NoReceipt("ETH")
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("ETH", "OP", a) for a in ["1", "2", "3"]])

        assert [o.success for o in batch.results] == [True, False, True]
        assert batch.results[1].error_kind == ErrorKind.BACKEND_REJECTED
        assert "NoneType" in batch.results[1].message
        assert batch.status == BatchStatus.PARTIALLY_SUCCEEDED
        assert len(backends["ETH"].calls) == 3

    @pytest.mark.asyncio
    async def test_validator_crash_is_isolated(self, registry, backends):
        class Flaky(RequestValidator):
            def validate(self, request):
                if request.amount == "2":
                    raise RuntimeError("validator bug")
                return super().validate(request)

        orchestrator = BatchOrchestrator(registry, backends, validator=Flaky(registry))

        batch = await orchestrator.execute([transfer("BNB", "OP", a) for a in ["1", "2", "3"]])

        assert [o.success for o in batch.results] == [True, False, True]
        assert batch.results[1].error_kind == ErrorKind.BACKEND_UNAVAILABLE
        assert "validator bug" in batch.results[1].message
        assert len(backends["BNB"].calls) == 2


class TestConcurrency:

    @pytest.mark.asyncio
    async def test_items_dispatched_concurrently(self, registry):
        backends = {key: StubBackend(key, delay=0.05) for key in CHAINS}
        orchestrator = BatchOrchestrator(registry, backends, max_concurrency=16)

        await orchestrator.execute([transfer("ETH", "BASE", str(i)) for i in range(6)])

        assert backends["ETH"].peak_active == 6

    @pytest.mark.asyncio
    async def test_concurrency_bound(self, registry):
        backends = {key: StubBackend(key, delay=0.01) for key in CHAINS}
        orchestrator = BatchOrchestrator(registry, backends, max_concurrency=2)

        batch = await orchestrator.execute([transfer("ETH", "BASE", str(i)) for i in range(6)])

        assert backends["ETH"].peak_active == 2
        assert batch.status == BatchStatus.ALL_SUCCEEDED

    @pytest.mark.asyncio
    async def test_order_independent_of_completion(self, registry):
        # first item finishes last
        eth = StubBackend("ETH", delay_on={"1": 0.1, "2": 0.05, "3": 0.0})
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["ETH"] = eth
        orchestrator = BatchOrchestrator(registry, backends)

        batch = await orchestrator.execute([transfer("ETH", "OP", a) for a in ["1", "2", "3"]])

        assert [o.value["amount"] for o in batch.results] == ["1", "2", "3"]

    @pytest.mark.asyncio
    async def test_timeout_is_per_item(self, registry):
        eth = StubBackend("ETH", delay_on={"2": 5.0})
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["ETH"] = eth
        orchestrator = BatchOrchestrator(registry, backends, item_timeout=0.1)

        batch = await orchestrator.execute([transfer("ETH", "OP", a) for a in ["1", "2", "3"]])

        assert batch.results[0].success
        assert batch.results[1].error_kind == ErrorKind.BACKEND_TIMEOUT
        assert batch.results[2].success


class TestAtMostOnce:

    @pytest.mark.asyncio
    async def test_one_submission_per_valid_item(self, registry):
        error = BackendRejected("POLYGON", "nonce too low")
        backends = {key: StubBackend(key) for key in CHAINS}
        backends["POLYGON"] = StubBackend("POLYGON", fail_on={"2": error})
        orchestrator = BatchOrchestrator(registry, backends)
        requests = [
            transfer("POLYGON", "ETH", "1"),
            transfer("POLYGON", "ETH", "2"),
            transfer("ETH", "POLYGON", "3"),
            transfer("ETH", "nowhere", "4"),
        ]

        await orchestrator.execute(requests)

        assert backends["POLYGON"].calls == [
            ("submit_transfer", "ETH", Decimal("1")),
            ("submit_transfer", "ETH", Decimal("2")),
        ]
        assert backends["ETH"].calls == [("submit_transfer", "POLYGON", Decimal("3"))]

    @pytest.mark.asyncio
    async def test_dispatch_goes_to_source_chain(self, orchestrator, backends):
        await orchestrator.execute([transfer("Holesky", "BNB", "0.1")])

        assert backends["Holesky"].calls == [("submit_transfer", "BNB", Decimal("0.1"))]
        assert backends["BNB"].calls == []


class TestConstruction:

    def test_missing_backend(self, registry, backends):
        del backends["OP"]
        with pytest.raises(ConfigurationError):
            BatchOrchestrator(registry, backends)

    def test_invalid_concurrency(self, registry, backends):
        with pytest.raises(ConfigurationError):
            BatchOrchestrator(registry, backends, max_concurrency=0)

    def test_from_settings(self, settings, registry, backends):
        settings = settings.model_copy(update={"allow_same_chain_transfers": False, "max_concurrency": 3})
        orchestrator = BatchOrchestrator.from_settings(settings, registry, backends)
        assert orchestrator.max_concurrency == 3
        assert orchestrator.item_timeout == settings.item_timeout
        assert not orchestrator.validator.allow_same_chain

    @pytest.mark.asyncio
    async def test_same_chain_policy_applies_per_item(self, registry, backends):
        validator = RequestValidator(registry, allow_same_chain=False)
        orchestrator = BatchOrchestrator(registry, backends, validator=validator)

        batch = await orchestrator.execute([transfer("ETH", "ETH", "1"), transfer("ETH", "OP", "1")])

        assert batch.results[0].error_kind == ErrorKind.SAME_CHAIN_TRANSFER
        assert batch.results[1].success
        assert len(backends["ETH"].calls) == 1
