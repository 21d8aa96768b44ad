# src/api/errors.py
"""HTTP error types and the JSON error envelope handlers.

Errors raised before a stream opens are answered with
``{success: false, message, error, timestamp}``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docreview.api.models import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """HTTP error carrying a user-facing message and a technical detail."""

    def __init__(self, status_code: int, message: str, error: str = "") -> None:
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.error = error


class InvalidRequestError(APIError):
    """Raised when the request input is missing or unusable."""

    def __init__(self, message: str, error: str = "") -> None:
        super().__init__(400, message, error)


class SessionNotFoundHTTPError(APIError):
    """Raised when the resumed session does not exist or has expired."""

    def __init__(self, session_id: str) -> None:
        super().__init__(404, "session not found", f"No live session with id {session_id}")


class SessionBusyHTTPError(APIError):
    """Raised when a run segment already holds the session."""

    def __init__(self, session_id: str) -> None:
        super().__init__(409, "session is busy", f"Session {session_id} is already being analyzed")


def error_response(status_code: int, message: str, error: str = "") -> JSONResponse:
    body = ErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.to_wire())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc, APIError):
        return error_response(exc.status_code, exc.message, exc.error)
    return error_response(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()) if p != 'body')}: {err.get('msg', '')}"
        for err in exc.errors()
    )
    logger.info("Rejected request to %s: %s", request.url.path, problems)
    return error_response(400, "Missing or invalid parameters", problems)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return error_response(500, "Internal server error", str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
