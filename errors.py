"""
Error taxonomy and the handlers that turn failures into structured responses.

Every error body has the shape {"error": {"kind": ..., "message": ...}} so
callers can tell "not permitted" from "malformed" from "no such resource".
"""
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or type(self).status_code, detail=message)
        self.message = message


class Unauthenticated(ApiError):
    kind = "unauthenticated"
    status_code = 401


class Forbidden(ApiError):
    kind = "forbidden"
    status_code = 403


class NotFound(ApiError):
    kind = "not_found"
    status_code = 404


class InvalidArgument(ApiError):
    kind = "invalid_argument"
    status_code = 400


class Conflict(ApiError):
    kind = "conflict"
    status_code = 409


class UpstreamFailure(ApiError):
    """The database or the payment processor failed."""
    kind = "upstream_failure"
    status_code = 502


class DatabaseUnavailable(UpstreamFailure):
    status_code = 503


def error_body(kind: str, message: str) -> dict:
    return {"error": {"kind": kind, "message": message}}


def _api_error(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.kind, exc.message))


def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return JSONResponse(status_code=400, content=error_body(InvalidArgument.kind, "; ".join(parts)))


def _database_error(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=DatabaseUnavailable.status_code,
        content=error_body(DatabaseUnavailable.kind, "Database unavailable"),
    )


def _duplicate_key(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.info("Duplicate key on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=Conflict.status_code, content=error_body(Conflict.kind, "Resource already exists"))


_FRAMEWORK_KINDS = {404: NotFound.kind, 405: InvalidArgument.kind}


def _framework_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # unknown routes and wrong methods are raised by the router itself
    kind = _FRAMEWORK_KINDS.get(exc.status_code, "internal")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(kind, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("internal", "Internal server error"))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error)
    app.add_exception_handler(StarletteHTTPException, _framework_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(DuplicateKeyError, _duplicate_key)
    app.add_exception_handler(PyMongoError, _database_error)
    app.add_exception_handler(Exception, _unhandled_error)
