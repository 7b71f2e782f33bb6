"""
Error taxonomy and the JSON envelope used for every failure response.

Services raise these the same way they would raise ``HTTPException``; the
handlers registered by ``register_exception_handlers`` render them as
``{"success": false, "message": ..., **extra}``.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

log = structlog.get_logger()


class AppError(HTTPException):
    status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        super().__init__(status_code=self.status, detail=message or self.default_message)
        self.extra = extra


class ValidationError(AppError):
    status = 400
    default_message = "Invalid request"


class Unauthenticated(AppError):
    status = 401
    default_message = "Authentication required"


class InvalidSession(Unauthenticated):
    default_message = "Invalid session"


class Forbidden(AppError):
    status = 403
    default_message = "Access denied"


class NotFound(AppError):
    status = 404
    default_message = "Not found"


class UserNotFound(NotFound):
    default_message = "User not found"


class Conflict(AppError):
    status = 409
    default_message = "Conflict"


class UpstreamFailure(AppError):
    status = 500
    default_message = "Internal server error"


def error_body(message: str, **extra: Any) -> dict:
    body = {"success": False, "message": message}
    body.update(extra)
    return jsonable_encoder(body)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    msg = str(first.get("msg", "Invalid request"))
    if msg.startswith("Value error, "):
        return msg[len("Value error, "):]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {msg}" if field else msg


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        extra = getattr(exc, "extra", {})
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail), **extra),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content=error_body(_validation_message(exc)))

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception("request.unhandled_error", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content=error_body("Internal server error"))
