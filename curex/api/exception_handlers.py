# FILE: curex/api/exception_handlers.py
from __future__ import annotations

import logging
from collections import defaultdict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from curex.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    FieldValidationError,
    NotFoundError,
)
from curex.utils.resp import err, debug_error

logger = logging.getLogger(__name__)


def _field_name(loc) -> str:
    # drop the "body"/"query"/"path" prefix pydantic puts on each location
    parts = [str(p) for p in loc if p not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def validation_errors(exc: RequestValidationError) -> dict:
    out = defaultdict(list)
    for e in exc.errors():
        msg = e.get("msg", "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        out[_field_name(e.get("loc", ()))].append(msg)
    return dict(out)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request,
                                     exc: StarletteHTTPException) -> JSONResponse:
        # exc.detail can be str/dict/list
        msg = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and msg == "Not Found":
            msg = "API endpoint not found"
        return err(msg=msg, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
            request: Request, exc: RequestValidationError) -> JSONResponse:
        return err(msg="Validation failed",
                   status_code=422,
                   errors=validation_errors(exc))

    @app.exception_handler(FieldValidationError)
    async def field_validation_handler(
            request: Request, exc: FieldValidationError) -> JSONResponse:
        return err(msg=exc.message, status_code=422, errors=exc.errors)

    @app.exception_handler(InsufficientStockError)
    @app.exception_handler(InvalidStateError)
    async def business_rule_handler(request: Request,
                                    exc: ValueError) -> JSONResponse:
        return err(msg=str(exc), status_code=400)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request,
                                exc: NotFoundError) -> JSONResponse:
        return err(msg=str(exc.args[0]) if exc.args else "Not found",
                   status_code=404)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request,
                                          exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method,
                         request.url.path)
        return err(msg="Internal server error",
                   status_code=500,
                   error=debug_error(exc))
