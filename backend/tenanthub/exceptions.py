import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError

from tenanthub.cache import apply_cache_headers

logger = logging.getLogger(__name__)


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = False
    message: str
    error: str
    status_code: int
    details: list[FieldError] | None = None


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    """Authenticated, but the role or ownership check failed."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Entity absent, or outside the caller's company."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Uniqueness violation such as a duplicate email."""

    status_code = status.HTTP_409_CONFLICT


class InputValidationError(AppError):
    """Malformed input detected outside of request-body parsing."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: list[FieldError] | None = None) -> None:
        self.details = details
        super().__init__(message)


def _error_response(
    request: Request,
    message: str,
    error: str,
    status_code: int,
    details: list[FieldError] | None = None,
) -> JSONResponse:
    content = ErrorResponse(
        message=message,
        error=error,
        status_code=status_code,
        details=details,
    ).model_dump(by_alias=True, exclude_none=True)
    response = JSONResponse(status_code=status_code, content=content)
    # Error replies carry the same cache headers the route chose for success.
    apply_cache_headers(request, response)
    return response


def _field_name(loc: tuple[Any, ...]) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front of the field path.
    parts = [str(part) for part in loc[1:]] if len(loc) > 1 else [str(part) for part in loc]
    return ".".join(parts)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    details = getattr(exc, "details", None)
    return _error_response(request, exc.message, type(exc).__name__, exc.status_code, details)


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [FieldError(field=_field_name(tuple(err["loc"])), message=err["msg"]) for err in exc.errors()]
    return _error_response(
        request,
        "Validation failed",
        "ValidationError",
        status.HTTP_400_BAD_REQUEST,
        details,
    )


async def _integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error_response(request, "Resource already exists", "ConflictError", status.HTTP_409_CONFLICT)


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(
        request,
        "Internal server error",
        "InternalServerError",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_exception_handler)
