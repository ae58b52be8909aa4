"""Error envelopes returned by the HTTP layer."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..domain.errors import (
    AuthenticationError,
    ConflictError,
    CredentialError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[CredentialError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_409_CONFLICT,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    StoreUnavailableError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def response_for(exc: CredentialError, *, unavailable_message: str) -> JSONResponse:
    """Map a domain error onto its status code; store outages get a generic message."""
    if isinstance(exc, StoreUnavailableError):
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, unavailable_message)
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return error_response(status_code, exc.message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "invalid request body") if errors else "invalid request body"
    return error_response(status.HTTP_400_BAD_REQUEST, detail)


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the JSON ``{"error": ...}`` handlers on ``app``."""
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
