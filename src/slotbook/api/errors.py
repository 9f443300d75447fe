"""Translate scheduling errors and request validation failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..config import settings
from ..errors import HTTP_STATUS_BY_KIND, ErrorKind, SchedulingError, ValidationFailed

logger = logging.getLogger(__name__)

_PYDANTIC_VALUE_ERROR_PREFIX = "Value error, "


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=HTTP_STATUS_BY_KIND[exc.kind], detail=exc.to_dict())


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request")).removeprefix(_PYDANTIC_VALUE_ERROR_PREFIX)
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{field}: {message}" if field else message


def register_error_handlers(app: FastAPI) -> None:
    """Report malformed request bodies with the same ``kind``/``message`` shape as service errors."""

    bookings_path = f"{settings.api_prefix}/bookings"

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationFailed(_validation_message(exc))
        logger.warning(f"Rejected {request.method} {request.url.path}: {error.message}")
        status_code = HTTP_STATUS_BY_KIND[ErrorKind.VALIDATION]
        if request.url.path.startswith(bookings_path):
            content = {"success": False, "booking": None, "error": error.to_dict()}
        else:
            content = {"detail": error.to_dict()}
        return JSONResponse(status_code=status_code, content=content)
