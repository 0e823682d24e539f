"""Pure request validation. No I/O; safe to call before any backend exists."""

from __future__ import annotations

import re
from decimal import Decimal

from chainrelay.chain.registry import ChainRegistry
from chainrelay.errors import InvalidAmount, InvalidHash, SameChainTransfer, UnknownChain
from chainrelay.models.schema import TransferRequest, ValidTransfer

# Digits with at most one dot and at least one digit; no sign, no exponent
AMOUNT_PATTERN = re.compile(r"[0-9]+\.?[0-9]*|\.[0-9]+")
TX_HASH_PATTERN = re.compile(r"0x[0-9a-fA-F]{64}")


class RequestValidator:
    def __init__(self, registry: ChainRegistry, allow_same_chain: bool = True):
        self.registry = registry
        self.allow_same_chain = allow_same_chain

    def validate_chain(self, key: str) -> str:
        if not self.registry.is_supported(key):
            raise UnknownChain(key)
        return key

    def validate_amount(self, raw: str) -> Decimal:
        if not isinstance(raw, str) or not AMOUNT_PATTERN.fullmatch(raw):
            raise InvalidAmount(raw)
        return Decimal(raw)

    def validate_tx_hash(self, raw: str) -> str:
        if not isinstance(raw, str) or not TX_HASH_PATTERN.fullmatch(raw):
            raise InvalidHash(raw)
        return raw

    def validate(self, request: TransferRequest) -> ValidTransfer:
        """Check chains, then amount, then same-chain policy. First failure raises."""
        self.validate_chain(request.from_chain)
        self.validate_chain(request.to_chain)
        amount = self.validate_amount(request.amount)
        if not self.allow_same_chain and request.from_chain == request.to_chain:
            raise SameChainTransfer(request.from_chain)
        return ValidTransfer(from_chain=request.from_chain, to_chain=request.to_chain, amount=amount)
