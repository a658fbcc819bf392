"""Exceptions raised by the Image API and the handlers that turn them into JSON envelopes."""

import logging
from typing import Any, Dict

import pydantic
from fastapi import (
    Request,
    status,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ImageApiError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ImageNotFoundError(ImageApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Image not found"


class InvalidImageError(ImageApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid image file"


class MissingImageFileError(ImageApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Image file is required"


class UnsupportedMediaTypeError(ImageApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid file type. Only images are allowed."


class ImageTooLargeError(ImageApiError):
    status_code = 413
    default_message = "File too large"


class InvalidCursorError(ImageApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid cursor"


class InvalidPageSizeError(ImageApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid limit"


class BlobNotFoundError(Exception):
    """Raised by blob storage when no blob exists for an id."""


def envelope(status_code: int, message: str, **extra: Any) -> Dict[str, Any]:
    """Build the `{returncode, message, ...}` body every image response uses."""
    return {"returncode": str(status_code), "message": message, **extra}


def _format_validation_errors(errors) -> str:
    messages = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = ".".join(loc)
        messages.append(f"{field}: {error['msg']}" if field else error["msg"])
    return "; ".join(messages)


async def handle_image_api_errors(request: Request, exc: ImageApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(exc.status_code, exc.message),
    )


async def handle_http_exceptions(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation_errors(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _format_validation_errors(exc.errors())
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=envelope(status.HTTP_400_BAD_REQUEST, message),
    )


async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    message = _format_validation_errors(exc.errors())
    logger.info(f"Rejected request to {request.url.path}: {message}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=envelope(status.HTTP_400_BAD_REQUEST, message),
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error"),
        )
