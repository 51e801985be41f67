"""Maps domain failures to HTTP responses."""

from __future__ import annotations

import logging
from typing import Tuple, Type

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...domain.errors import (
    AuthError,
    ConflictError,
    InvalidInputError,
    NotFoundError,
    StorageError,
    StorefrontError,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_FAMILY: Tuple[Tuple[Type[StorefrontError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (AuthError, status.HTTP_401_UNAUTHORIZED),
    (StorageError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: StorefrontError) -> int:
    for family, status_code in _STATUS_BY_FAMILY:
        if isinstance(exc, family):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def _handle_storefront_error(request: Request, exc: StorefrontError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = {"error": exc.code, "message": exc.message, **exc.details}
    headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # raw inputs may be uploaded bytes, keep only where and why
    issues = [
        {key: value for key, value in error.items() if key not in ("input", "ctx", "url")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": InvalidInputError.code,
            "message": "Request validation failed.",
            "issues": jsonable_encoder(issues),
        },
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "Internal server error."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, _handle_storefront_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)
