"""Middleware and exception handlers for the FastAPI application.

Domain exceptions are mapped to HTTP responses of the form
``{"detail": <message>, "error": <kind>}``.
"""

import time
import traceback
import uuid
from typing import Union

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ostobilling.core.config import settings
from ostobilling.core.exceptions import (
    ConflictException,
    InvalidInputException,
    InvalidStateError,
    NotFoundException,
    OstoBillingException,
    StorageFailureException,
    unpack_validation_error,
)
from ostobilling.core.logging import logger

# Ordered most specific first; the first matching class wins
EXCEPTION_STATUS_CODES: list[tuple[type[OstoBillingException], int, str]] = [
    (NotFoundException, 404, "not_found"),
    (ConflictException, 409, "conflict"),
    (InvalidInputException, 400, "invalid_input"),
    (InvalidStateError, 409, "invalid_state"),
    (StorageFailureException, 503, "storage_failure"),
]


async def add_request_id(request: Request, call_next: callable) -> Response:
    """Middleware to generate and add a request ID to the request for tracing.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request, carrying an X-Request-ID header.

    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.with_context(request_id=getattr(request.state, "request_id", "")).info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        response_content = {"detail": "Internal Server Error", "error": "internal_error"}
        if settings.DEBUG:
            response_content["trace"] = traceback.format_exc()

        return JSONResponse(status_code=500, content=response_content)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """Exception handler for request validation errors.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (Union[RequestValidationError, ValidationError]): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 Unprocessable Entity response listing each invalid field,
            e.g. ``{"detail": "Validation error", "error": "validation_error",
            "errors": [{"body.currency": "Value error, Unsupported currency: XYZ"}]}``.

    """
    error_messages = unpack_validation_error(exc)
    logger.warning(f"Validation error on {request.method} {request.url.path}: {error_messages}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation error", "error": "validation_error", **error_messages},
    )


async def ostobilling_exception_handler(
    request: Request, exc: OstoBillingException
) -> JSONResponse:
    """Generic exception handler for all OstoBillingException types.

    Maps each exception type to an HTTP status code by its semantic meaning.
    Storage failures are logged with their cause; the client only sees the
    error kind and message.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (OstoBillingException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A response with the mapped status code and the error message.

    """
    for exc_type, status_code, kind in EXCEPTION_STATUS_CODES:
        if isinstance(exc, exc_type):
            break
    else:
        status_code, kind = 500, "internal_error"

    if isinstance(exc, StorageFailureException):
        logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}", exc_info=exc)

    message = getattr(exc, "message", None) or str(exc)
    return JSONResponse(status_code=status_code, content={"detail": message, "error": kind})
