"""Error taxonomy and FastAPI exception handlers.

Domain errors (``FxError`` and subclasses) never leave the rate resolver; they
are caught at the tier boundary and turned into fallback decisions. The HTTP
handlers below only cover routing / validation / unexpected failures.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status

logger = logging.getLogger("invoice_fx.errors")


class FxError(Exception):
    """Base class for exchange-rate subsystem failures."""


class ProviderError(FxError):
    """External rate source failed: bad status, malformed payload, timeout."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class StoreError(FxError):
    """Persistent rate store read/write failure."""


def not_found_handler(request: Request, exc):  # type: ignore
    status_code = getattr(exc, "status_code", status.HTTP_404_NOT_FOUND)
    if status_code == status.HTTP_404_NOT_FOUND:
        return JSONResponse(
            status_code=status_code,
            content={
                "error": "not_found",
                "detail": f"No route for {request.method} {request.url.path}",
            },
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": "http_error", "detail": getattr(exc, "detail", None)},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
