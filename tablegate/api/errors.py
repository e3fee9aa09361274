from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import (
    BadRequestError,
    ConstraintViolationError,
    CounterError,
    MissingParameterError,
    StoreError,
    UnknownColumnError,
    UnknownTableError,
)

logger = logging.getLogger(__name__)

# 401 for a missing id keeps existing callers working; it does not signal
# an authentication failure.
MISSING_PARAMETER_STATUS = 401


def _store_error_kind(exc: StoreError) -> str:
    if isinstance(exc, ConstraintViolationError):
        return "constraint_violation"
    if isinstance(exc, UnknownTableError):
        return "unknown_table"
    if isinstance(exc, UnknownColumnError):
        return "unknown_column"
    return "store_error"


async def bad_request_handler(_: Request, exc: BadRequestError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def missing_parameter_handler(_: Request, exc: MissingParameterError) -> JSONResponse:
    return JSONResponse(status_code=MISSING_PARAMETER_STATUS, content={"detail": str(exc)})


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    # The cause was already logged at the statement boundary.
    logger.debug("%s %s -> 500 (%s)", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error", "kind": _store_error_kind(exc)},
    )


async def counter_error_handler(request: Request, exc: CounterError) -> JSONResponse:
    logger.error("Usage counter unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BadRequestError, bad_request_handler)
    app.add_exception_handler(MissingParameterError, missing_parameter_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(CounterError, counter_error_handler)
