"""Error kinds and exception hierarchy.

``EmptyBatch`` and ``ConfigurationError`` fail a whole call and propagate.
Every other error is about one item: the orchestrator and the facade turn
it into a ``Failure`` outcome instead of raising.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNKNOWN_CHAIN = "UnknownChain"
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_HASH = "InvalidHash"
    SAME_CHAIN_TRANSFER = "SameChainTransfer"
    EMPTY_BATCH = "EmptyBatch"
    BACKEND_TIMEOUT = "BackendTimeout"
    BACKEND_REJECTED = "BackendRejected"
    BACKEND_UNAVAILABLE = "BackendUnavailable"
    TRANSACTION_NOT_FOUND = "TransactionNotFound"
    CONFIGURATION = "Configuration"
    # HTTP layer only, never carried by a ChainRelayError
    INVALID_REQUEST = "InvalidRequest"
    HTTP_ERROR = "HttpError"
    INTERNAL = "Internal"


class ChainRelayError(Exception):
    kind: ErrorKind = ErrorKind.BACKEND_UNAVAILABLE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# --- request validation (local, never reaches a backend) ---


class RequestError(ChainRelayError):
    pass


class UnknownChain(RequestError):
    kind = ErrorKind.UNKNOWN_CHAIN

    def __init__(self, chain: str):
        super().__init__(f"Unsupported chain '{chain}'")
        self.chain = chain


class InvalidAmount(RequestError):
    kind = ErrorKind.INVALID_AMOUNT

    def __init__(self, raw: str):
        super().__init__(f"Invalid amount: {raw!r}")
        self.raw = raw


class InvalidHash(RequestError):
    kind = ErrorKind.INVALID_HASH

    def __init__(self, raw: str):
        super().__init__(f"Invalid transaction hash format: {raw!r}")
        self.raw = raw


class SameChainTransfer(RequestError):
    kind = ErrorKind.SAME_CHAIN_TRANSFER

    def __init__(self, chain: str):
        super().__init__(f"Source and destination chain are both '{chain}'")
        self.chain = chain


class EmptyBatch(RequestError):
    kind = ErrorKind.EMPTY_BATCH

    def __init__(self):
        super().__init__("Batch contains no transfers")


# --- backend faults (captured per item) ---


class BackendError(ChainRelayError):
    def __init__(self, chain: str, message: str):
        super().__init__(f"[{chain}] {message}")
        self.chain = chain


class BackendTimeout(BackendError):
    kind = ErrorKind.BACKEND_TIMEOUT


class BackendRejected(BackendError):
    kind = ErrorKind.BACKEND_REJECTED


class TransactionNotFound(BackendRejected):
    kind = ErrorKind.TRANSACTION_NOT_FOUND

    def __init__(self, chain: str, tx_hash: str):
        super().__init__(chain, f"Transaction {tx_hash} not found")
        self.tx_hash = tx_hash


class BackendUnavailable(BackendError):
    kind = ErrorKind.BACKEND_UNAVAILABLE


class ConfigurationError(ChainRelayError):
    kind = ErrorKind.CONFIGURATION
