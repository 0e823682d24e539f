"""FastAPI service exposing chain reads and batch transfers to the dashboard."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from chainrelay.chain.backend import ChainBackend, build_backends
from chainrelay.chain.registry import ChainRegistry
from chainrelay.config import VERSION, Settings, get_settings
from chainrelay.core.facade import SingleOperationFacade
from chainrelay.core.orchestrator import BatchOrchestrator
from chainrelay.errors import ChainRelayError, ErrorKind
from chainrelay.models.schema import Failure, OperationOutcome, TransferRequest, WireModel

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNKNOWN_CHAIN: 400,
    ErrorKind.INVALID_AMOUNT: 400,
    ErrorKind.INVALID_HASH: 400,
    ErrorKind.SAME_CHAIN_TRANSFER: 400,
    ErrorKind.EMPTY_BATCH: 400,
    ErrorKind.TRANSACTION_NOT_FOUND: 404,
    ErrorKind.BACKEND_REJECTED: 502,
    ErrorKind.BACKEND_UNAVAILABLE: 502,
    ErrorKind.BACKEND_TIMEOUT: 504,
    ErrorKind.CONFIGURATION: 500,
}


class ChainQuery(WireModel):
    chain_key: str


class TxStatusQuery(WireModel):
    chain_key: str
    tx_hash: str


class MultiTransferBody(BaseModel):
    transfers: list[TransferRequest]


def error_response(kind: ErrorKind, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "errorKind": kind.value},
    )


def failure_response(outcome: Failure) -> JSONResponse:
    return error_response(outcome.error_kind, outcome.message, STATUS_BY_KIND[outcome.error_kind])


def item_to_wire(index: int, outcome: OperationOutcome) -> dict[str, Any]:
    if outcome.success:
        return {"index": index, "success": True, "receipt": outcome.value}
    item = {
        "index": index,
        "success": False,
        "errorKind": outcome.error_kind.value,
        "error": outcome.message,
    }
    if outcome.receipt is not None:
        item["receipt"] = outcome.receipt
    return item


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChainRelayError)
    async def chainrelay_error_handler(request: Request, exc: ChainRelayError) -> JSONResponse:
        logger.warning(f"{request.url.path} failed: {exc.kind.value}: {exc.message}")
        return error_response(exc.kind, exc.message, STATUS_BY_KIND.get(exc.kind, 500))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        logger.warning(f"{request.url.path} malformed request: {problems}")
        return error_response(ErrorKind.INVALID_REQUEST, f"Malformed request: {problems}", 422)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.info(f"{request.method} {request.url.path}: {exc.status_code} {exc.detail}")
        response = error_response(ErrorKind.HTTP_ERROR, str(exc.detail), exc.status_code)
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return error_response(ErrorKind.INTERNAL, f"Internal error: {type(exc).__name__}", 500)


def create_router(
    settings: Settings,
    orchestrator: BatchOrchestrator,
    facade: SingleOperationFacade,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health():
        return {"status": "ok", "chainMode": settings.chain_mode, "chains": list(facade.list_chains())}

    @router.get("/chains")
    async def chains():
        return {"success": True, "chains": list(facade.list_chains())}

    @router.post("/txStatus")
    async def tx_status(query: TxStatusQuery):
        outcome = await facade.check_tx_status(query.chain_key, query.tx_hash)
        if not outcome.success:
            return failure_response(outcome)
        return {"success": True, "txReceipt": outcome.value}

    @router.post("/checkBalance")
    async def check_balance(query: ChainQuery):
        outcome = await facade.check_balance(query.chain_key)
        if not outcome.success:
            return failure_response(outcome)
        return {"success": True, "balance": outcome.value}

    @router.post("/getGasPrice")
    async def gas_price(query: ChainQuery):
        outcome = await facade.get_gas_price(query.chain_key)
        if not outcome.success:
            return failure_response(outcome)
        return {"success": True, "gasPrice": outcome.value}

    @router.post("/multiTransfer")
    async def multi_transfer(body: MultiTransferBody):
        # EmptyBatch propagates to the exception handler: nothing was attempted
        batch = await orchestrator.execute(body.transfers)
        return {
            "success": True,
            "status": batch.status.value,
            "results": [item_to_wire(i, outcome) for i, outcome in enumerate(batch.results)],
        }

    return router


def create_app(
    settings: Settings | None = None,
    backends: Mapping[str, ChainBackend] | None = None,
) -> FastAPI:
    """Build the service. ``backends`` overrides the ones ``settings.chain_mode`` selects."""
    settings = settings or get_settings()
    registry = ChainRegistry.from_keys(settings.supported_chains)
    if backends is None:
        backends = build_backends(registry, settings)

    orchestrator = BatchOrchestrator.from_settings(settings, registry, backends)
    facade = SingleOperationFacade.from_settings(settings, registry, backends)

    app = FastAPI(title="chainrelay", version=VERSION)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    register_exception_handlers(app)
    app.include_router(create_router(settings, orchestrator, facade))

    logger.info(f"chainrelay ready in {settings.chain_mode} mode for chains {list(registry.keys())}")
    return app
