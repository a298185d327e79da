"""
Exception Handlers
------------------
Renders every error leaving a route as ``{"error": {"code", "message"}}``.

- SmartRackError subclasses keep their own status and code
- request validation failures become 422 ``invalid_data`` with per-field issues
- anything else is a 500 ``internal_server_error`` without internal details
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from smartrack.core.errors import SmartRackError
from smartrack.models.response_models import ErrorBody, ErrorResponse

_STATUS_TO_CODE = {
    400: "bad_request",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    422: "invalid_data",
}

# Location prefixes FastAPI puts in front of validation error paths
_REQUEST_PARTS = {"body", "query", "path", "header", "cookie"}


def _error_response(
    status_code: int,
    code: str,
    message: str,
    issues: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, issues=issues))
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


def _validation_issues(exc: RequestValidationError) -> Dict[str, Any]:
    issues: Dict[str, Any] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _REQUEST_PARTS:
            loc = loc[1:]
        field = ".".join(loc) or "request"
        issues.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return issues


def register_exception_handlers(app: FastAPI) -> None:
    """Install the error envelope handlers on the application."""

    @app.exception_handler(SmartRackError)
    async def handle_smartrack_error(request: Request, exc: SmartRackError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            f"{request.method} {request.url.path} -> {exc.status_code} "
            f"{exc.code}: {exc.message}"
        )
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return _error_response(exc.status_code, exc.code, exc.message, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        issues = _validation_issues(exc)
        logger.warning(
            f"{request.method} {request.url.path} -> 422 invalid_data: "
            f"{', '.join(issues)}"
        )
        return _error_response(
            422,
            "invalid_data",
            "The request data is invalid. Please follow the endpoint's documentation.",
            issues=issues,
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        code = _STATUS_TO_CODE.get(exc.status_code, "http_error")
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}")
            code = "internal_server_error"
        return _error_response(
            exc.status_code, code, str(exc.detail), headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(Exception)
    async def handle_uncaught(request: Request, exc: Exception):
        logger.opt(exception=exc).error(
            f"{request.method} {request.url.path} -> 500 unhandled "
            f"{type(exc).__name__}: {exc}"
        )
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please, try again later.",
        )
