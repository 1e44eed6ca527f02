"""Translate domain exceptions into JSON error responses."""
from __future__ import annotations
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from ..exceptions import BillNotFoundError, BillsError, ClientError, ProcessingError

logger = structlog.get_logger(__name__)


def status_code_for(exc: BillsError) -> int:
    if isinstance(exc, BillNotFoundError):
        return 404
    if isinstance(exc, ClientError):
        return 400
    if isinstance(exc, ProcessingError):
        return 422
    return 500


def error_body(exc: BillsError) -> dict:
    return {"success": False, "message": exc.message, "error": type(exc).__name__}


async def bills_error_handler(request: Request, exc: BillsError) -> JSONResponse:
    status = status_code_for(exc)
    log = logger.warning if status < 500 else logger.error
    log("request_failed", path=request.url.path, status=status, error=exc.message,
        error_type=type(exc).__name__)
    return JSONResponse(status_code=status, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BillsError, bills_error_handler)
