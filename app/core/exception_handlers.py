import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from app.core.exceptions import StockLedgerError
from app.schemas.response import ErrorDetail, ErrorResponse

log = logging.getLogger(__name__)


def _error(status_code: int, code: str, message, details=None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details)).body()
    return JSONResponse(status_code=status_code, content=body)


# ----------- Exception Handlers (called by FastAPI) -----------

def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 400)."""
    return _error(exc.status_code, "http_error", exc.detail)


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors (422 Unprocessable Entity)."""
    return _error(422, "validation_error", "Invalid input data", jsonable_encoder(exc.errors()))


def stock_ledger_exception_handler(request: Request, exc: StockLedgerError):
    """Handles domain errors raised by the services (404, 409, 422, 500)."""
    if exc.status_code >= 500:
        log.error(f"{exc.error_code} on path {request.url.path}: {exc.message}")
    else:
        log.info(f"{exc.error_code} on path {request.url.path}: {exc.message}")
    return _error(exc.status_code, exc.error_code, exc.message, jsonable_encoder(exc.details) or None)


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.exception(f"Unhandled exception on path: {request.url.path}", exc_info=exc)
    return _error(500, "server_error", "Internal Server Error")


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StockLedgerError, stock_ledger_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
