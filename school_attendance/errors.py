import logging
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log = logging.getLogger(__name__)


class ApiError(Exception):
    """An error that maps onto an HTTP status and a JSON error body."""

    status_code = 500
    code = "error"

    def __init__(self, message: str, status_code: Optional[int] = None, errors: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors

    @classmethod
    def bad_request(cls, message: str, errors: Any = None) -> "ApiError":
        return cls(message, 400, errors)

    @classmethod
    def unauthorized(cls, message: str = "Not authorized") -> "ApiError":
        return cls(message, 401)

    @classmethod
    def forbidden(cls, message: str = "Permission denied") -> "ApiError":
        return cls(message, 403)

    @classmethod
    def not_found(cls, message: str = "Resource not found") -> "ApiError":
        return cls(message, 404)


class ValidationError(ApiError):
    """A field is missing or holds a value outside its allowed set."""

    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, errors: Any = None):
        if errors is None and field is not None:
            errors = [{"field": field, "message": message}]
        super().__init__(message, errors=errors)
        self.field = field


class ConstraintViolation(ApiError):
    """A write collides with a uniqueness (or similar integrity) rule."""

    status_code = 409
    code = "constraint_violation"


def error_body(exc: ApiError) -> dict:
    return {
        "success": False,
        "code": exc.code,
        "message": exc.message,
        "errors": exc.errors,
    }


def _http_code(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "error"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=error_body(exc))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        # Routing errors (unknown path, wrong method) raised by the framework itself
        error = ApiError(str(exc.detail), exc.status_code)
        error.code = _http_code(exc.status_code)
        return JSONResponse(status_code=exc.status_code, content=error_body(error), headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg")}
            for err in exc.errors()
        ]
        body = error_body(ValidationError("Validation error", errors=errors))
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "code": "internal_error", "message": "Internal server error", "errors": None},
        )
