"""Error taxonomy and the FastAPI handlers that turn it into HTTP responses.

Every error is answered with the same envelope::

    {"message": <text>, "detail": {"error": <code>, "message": <text>, "details": {...}}}

The top-level ``message`` is what the browser UI displays.
"""

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logger import logger


class ErrorCode:
    """Centralized error codes for API responses."""
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHORIZED = "UNAUTHORIZED"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    HTTP_ERROR = "HTTP_ERROR"


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    return {
        "message": message,
        "detail": {"error": code, "message": message, "details": details or {}},
    }


class AppError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500
    code = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_response(self) -> dict:
        return error_body(self.code, self.message, self.details)


class ValidationError(AppError):
    status_code = 400
    code = ErrorCode.INVALID_INPUT


class AuthError(AppError):
    """Missing, malformed, tampered or expired session."""
    status_code = 401
    code = ErrorCode.UNAUTHORIZED


class InvalidCredentialsError(AuthError):
    """Login failure. Same message for unknown email and wrong password."""
    status_code = 400
    code = ErrorCode.INVALID_CREDENTIALS


class ConflictError(AppError):
    status_code = 400
    code = ErrorCode.DUPLICATE_EMAIL


class NotFoundError(AppError):
    """Missing resource, or one owned by somebody else."""
    status_code = 404
    code = ErrorCode.NOT_FOUND


class UpstreamError(AppError):
    """Image host failure. Degraded by the inspiration operations, never surfaced."""
    status_code = 502
    code = ErrorCode.UPSTREAM_ERROR


class InternalError(AppError):
    status_code = 500
    code = ErrorCode.INTERNAL_ERROR


# ==================== Exception Handlers ====================

async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_response(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report body/query validation problems as 400 with the offending fields."""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())[1:]), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    return JSONResponse(
        status_code=400,
        content=error_body(ErrorCode.INVALID_INPUT, message, {"errors": errors}),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        # Structured detail (e.g. the /health report) is passed through as is
        message = detail.get("message") or HTTPStatus(exc.status_code).phrase
        content = {"message": message, "detail": detail}
    else:
        content = error_body(ErrorCode.HTTP_ERROR, str(detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, answer with a generic 500."""
    request_id = getattr(request.state, "request_id", "unknown")
    logger.error(
        f"[{request_id}] Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
    )
    details = {}
    context = getattr(request.app.state, "context", None)
    if context is not None and context.settings.APP_ENV == "dev":
        details["reason"] = str(exc)
    return JSONResponse(
        status_code=500,
        content=error_body(ErrorCode.INTERNAL_ERROR, "Something went wrong!", details),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
