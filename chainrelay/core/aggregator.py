"""Order-preserving aggregation of per-item outcomes."""

from __future__ import annotations

from collections.abc import Sequence

from chainrelay.models.schema import BatchResult, BatchStatus, OperationOutcome


def classify(outcomes: Sequence[OperationOutcome]) -> BatchStatus:
    """Advisory summary only. Callers still have to look at each outcome."""
    succeeded = sum(1 for outcome in outcomes if outcome.success)
    if succeeded == len(outcomes):
        return BatchStatus.ALL_SUCCEEDED
    if succeeded == 0:
        return BatchStatus.ALL_FAILED
    return BatchStatus.PARTIALLY_SUCCEEDED


def aggregate(outcomes: Sequence[OperationOutcome]) -> BatchResult:
    results = tuple(outcomes)
    return BatchResult(status=classify(results), results=results)
