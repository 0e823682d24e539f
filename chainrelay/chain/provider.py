"""Async EVM chain backend using web3.py 7.x."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from decimal import Decimal

from web3 import AsyncWeb3, AsyncHTTPProvider, Web3
from web3.exceptions import (
    ProviderConnectionError,
    TimeExhausted,
    TransactionNotFound as Web3TransactionNotFound,
    Web3Exception,
)
from web3.middleware import ExtraDataToPOAMiddleware

from chainrelay.chain.backend import Receipt
from chainrelay.chain.registry import ChainMetadata
from chainrelay.config import Settings
from chainrelay.errors import (
    BackendError,
    BackendRejected,
    BackendTimeout,
    BackendUnavailable,
    TransactionNotFound,
)

logger = logging.getLogger(__name__)


def normalize_receipt(raw) -> Receipt:
    """AttributeDict/HexBytes receipt -> plain JSON-safe dict with a bool status."""
    receipt = json.loads(Web3.to_json(raw))
    receipt["status"] = bool(receipt.get("status"))
    return receipt


def classify_error(chain: str, exc: Exception) -> BackendError:
    """Map a web3 / transport exception onto a backend error kind."""
    if isinstance(exc, BackendError):
        return exc
    if isinstance(exc, (TimeExhausted, asyncio.TimeoutError)):
        return BackendTimeout(chain, str(exc) or "request timed out")
    if isinstance(exc, (ProviderConnectionError, OSError)):
        return BackendUnavailable(chain, str(exc) or type(exc).__name__)
    if isinstance(exc, (Web3Exception, ValueError)):
        return BackendRejected(chain, str(exc) or type(exc).__name__)
    return BackendUnavailable(chain, f"{type(exc).__name__}: {exc}")


class Web3ChainBackend:
    """Async web3 backend for any EVM chain."""

    def __init__(self, chain: ChainMetadata, settings: Settings):
        self.chain = chain
        self.settings = settings
        rpc_url = settings.get_rpc_url(chain.chain_id)
        self.w3 = AsyncWeb3(AsyncHTTPProvider(rpc_url))
        if chain.is_poa:
            self.w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

    @asynccontextmanager
    async def _rpc(self):
        try:
            yield
        except BackendError:
            raise
        except Exception as exc:
            raise classify_error(self.chain.key, exc) from exc

    def _account_address(self) -> str:
        if self.settings.account_address:
            return self.settings.account_address
        if self.settings.private_key:
            return self.w3.eth.account.from_key(self.settings.private_key).address
        raise BackendUnavailable(self.chain.key, "No account configured")

    async def get_transaction_receipt(self, tx_hash: str) -> Receipt:
        async with self._rpc():
            try:
                raw = await self.w3.eth.get_transaction_receipt(tx_hash)
            except Web3TransactionNotFound:
                raise TransactionNotFound(self.chain.key, tx_hash)
        return normalize_receipt(raw)

    async def get_balance(self, address: str | None = None) -> str:
        """Get balance in native token."""
        async with self._rpc():
            target = address or self._account_address()
            wei = await self.w3.eth.get_balance(self.w3.to_checksum_address(target))
        return str(self.w3.from_wei(wei, "ether"))

    async def get_gas_price(self) -> str:
        async with self._rpc():
            wei = await self.w3.eth.gas_price
        return str(wei)

    async def submit_transfer(self, to_chain: str, amount: Decimal) -> Receipt:
        """Send ``amount`` of the native token to the bridge, tagged with the destination chain.

        Exactly one transaction is broadcast; the call then waits for its receipt.
        """
        if not self.settings.private_key:
            raise BackendUnavailable(self.chain.key, "No signing key configured")
        if not self.settings.bridge_address:
            raise BackendRejected(self.chain.key, "No bridge address configured")

        async with self._rpc():
            account = self.w3.eth.account.from_key(self.settings.private_key)
            tx = {
                "from": account.address,
                "to": self.w3.to_checksum_address(self.settings.bridge_address),
                "value": self.w3.to_wei(amount, "ether"),
                "data": Web3.to_hex(text=to_chain),
                "nonce": await self.w3.eth.get_transaction_count(account.address, "pending"),
                "gasPrice": await self.w3.eth.gas_price,
                "chainId": self.chain.chain_id,
            }
            tx["gas"] = await self.w3.eth.estimate_gas(tx)
            signed = account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info(f"[{self.chain.key}] submitted transfer to {to_chain}: {tx_hash.hex()}")
            raw = await self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.settings.receipt_timeout
            )
        return normalize_receipt(raw)
