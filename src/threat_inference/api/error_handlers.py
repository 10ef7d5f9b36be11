"""
FastAPI exception handlers for structured error responses.

Inference and decode failures never reach this layer: the analysis facade
turns them into null results (503) or sentinel values. What is left is
the catch-all for unexpected errors, answered with a 500 JSON body that
does not leak internals.
"""

from datetime import datetime, timezone

import structlog
from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


def _error_body(error: str, message: str, details: dict | None = None) -> dict:
    body = {
        "error": error,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    return body


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unexpected errors: 500 without leaking internals."""
    logger.exception(
        "Unexpected error",
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("internal_error", "An unexpected error occurred"),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    Exception: generic_error_handler,
}
