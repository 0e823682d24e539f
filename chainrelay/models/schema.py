"""Pydantic v2 data models for requests, outcomes and batch results."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from chainrelay.errors import ChainRelayError, ErrorKind


class WireModel(BaseModel):
    """Frozen model with camelCase wire names (``fromChain``) and snake_case attributes."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class TransferRequest(WireModel):
    from_chain: str
    to_chain: str
    amount: str = Field(description="Decimal string in the source chain's native token")


class ValidTransfer(WireModel):
    from_chain: str
    to_chain: str
    amount: Decimal


class Success(WireModel):
    success: Literal[True] = True
    value: Any = None


class Failure(WireModel):
    success: Literal[False] = False
    error_kind: ErrorKind
    message: str
    receipt: dict[str, Any] | None = Field(
        default=None, description="Receipt of a transaction that was mined but reverted"
    )

    @classmethod
    def from_error(cls, exc: ChainRelayError, receipt: dict[str, Any] | None = None) -> Failure:
        return cls(error_kind=exc.kind, message=exc.message, receipt=receipt)


OperationOutcome = Union[Success, Failure]


class BatchStatus(str, Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIALLY_SUCCEEDED = "partially_succeeded"
    ALL_FAILED = "all_failed"


class BatchResult(WireModel):
    status: BatchStatus
    results: tuple[OperationOutcome, ...]

    @property
    def failed_indices(self) -> list[int]:
        """Positions to resubmit when only part of the batch went through."""
        return [i for i, outcome in enumerate(self.results) if not outcome.success]
