"""
FastAPI exception handlers that map service-level exceptions to HTTP responses.

The mapping itself lives on the exception classes (`to_payload()` / `http_status()`);
these handlers only log and wrap. Register them with `register_exception_handlers(app)`.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
import logging
from usermgmt.exceptions.base import (
    ServiceError,
    InvalidInputError,
    DuplicateUsernameError,
    UserNotFoundError,
    StorageError,
    OperationFailedError,
)

logger = logging.getLogger(__name__)


def _respond(exc: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status(), content=exc.to_payload())


async def client_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    400 / 404 / 409: expected outcomes the client can fix.
    """
    logger.info(
        "%s for %s %s: fields=%s", type(exc).__name__, request.method, request.url.path, exc.fields
    )
    return _respond(exc)


async def server_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    500 / 503. The payload stays generic; the cause is only in the logs.
    """
    logger.error(
        "%s for %s %s: %s", type(exc).__name__, request.method, request.url.path, str(exc),
        exc_info=exc.__cause__ is not None,
    )
    return _respond(exc)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """
    Fallback for any other ServiceError subclass.
    """
    logger.warning("ServiceError for %s %s: %s", request.method, request.url.path, str(exc))
    return _respond(exc)


# Helper to register all handlers on an app (call this from the app factory)
def register_exception_handlers(app) -> None:
    for exc_cls in (InvalidInputError, UserNotFoundError, DuplicateUsernameError):
        app.add_exception_handler(exc_cls, client_error_handler)
    for exc_cls in (StorageError, OperationFailedError):
        app.add_exception_handler(exc_cls, server_error_handler)
    app.add_exception_handler(ServiceError, service_error_handler)
