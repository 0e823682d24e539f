"""Run one backend call and fold its result into an outcome.

Both the batch path and the single-operation path go through ``run_backend_call``
so a given fault maps to the same ``Failure`` everywhere.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from chainrelay.errors import BackendTimeout, BackendUnavailable, ChainRelayError
from chainrelay.models.schema import Failure, OperationOutcome, Success

logger = logging.getLogger(__name__)


async def run_backend_call(
    chain: str,
    call: Callable[[], Awaitable[Any]],
    timeout: float | None,
    label: str = "call",
) -> OperationOutcome:
    """Await ``call()`` once under ``timeout``. Never raises for backend faults."""
    try:
        value = await asyncio.wait_for(call(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"[{chain}] {label} timed out after {timeout}s")
        return Failure.from_error(BackendTimeout(chain, f"{label} timed out after {timeout}s"))
    except ChainRelayError as e:
        logger.warning(f"[{chain}] {label} failed: {e.kind.value}: {e.message}")
        return Failure.from_error(e)
    except Exception as e:
        logger.exception(f"[{chain}] {label} raised unexpectedly")
        return Failure.from_error(BackendUnavailable(chain, f"{type(e).__name__}: {e}"))
    return Success(value=value)

