from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


def error_body(error: str, details: Any = None) -> dict:
    body: dict[str, Any] = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    return body


class ApiError(HTTPException):
    def __init__(self, status_code: int, error: str, details: Any = None) -> None:
        super().__init__(status_code=status_code, detail=error)
        self.details = details


def missing_fields_error(fields: list[str]) -> ApiError:
    return ApiError(400, "Missing required fields", {"fields": fields})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    error = detail if isinstance(detail, str) else "Request failed"
    details = getattr(exc, "details", None)
    if details is None and not isinstance(detail, str):
        details = detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error, details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in (err.get("loc") or ()) if p not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return JSONResponse(status_code=400, content=error_body("Invalid or missing fields", {"fields": fields}))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("api.integrity_error path=%s error=%s", request.url.path, str(exc.orig))
    return JSONResponse(status_code=409, content=error_body("Resource already exists"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api.unhandled_error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
