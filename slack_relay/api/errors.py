"""API error handling: every failure leaves as ``{"error": ..., "details"?: ...}``.

Status code mapping:
- ``RelayError`` subclasses carry their own status (400/401/500)
- request body or query validation failures become 400
- any other exception becomes 500 after being logged with its traceback
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from slack_relay.core.errors import RelayError
from slack_relay.schemas import ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _handle_relay_error(request: Request, exc: RelayError) -> JSONResponse:
    if exc.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error(
            "%s on %s %s: %s (%s)",
            type(exc).__name__,
            request.method,
            request.url.path,
            exc.message,
            exc.details,
            exc_info=exc,
        )
    else:
        logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.details)


async def _handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    )
    logger.info("Rejected malformed request on %s: %s", request.url.path, details)
    return _error_response(HTTPStatus.BAD_REQUEST, "Invalid request", details)


class CatchAllErrorMiddleware(BaseHTTPMiddleware):
    """Convert any unhandled exception into a 500 with the standard envelope."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error(
                "Unhandled exception on %s %s",
                request.method,
                request.url.path,
                exc_info=True,
            )
            return _error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Attach the exception handlers and the catch-all middleware."""
    app.add_exception_handler(RelayError, _handle_relay_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_request_validation)  # type: ignore[arg-type]
    app.add_middleware(CatchAllErrorMiddleware)


__all__ = ["register_error_handlers"]
