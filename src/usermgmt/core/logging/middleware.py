"""
Request ID middleware for FastAPI / Starlette.

Each request is tagged with an identifier that is stored in the request-id
contextvar (picked up by `RequestIdFilter` for every log line emitted while the
request is handled) and echoed back in the `X-Request-ID` response header.

An incoming `X-Request-ID` is reused when it is short and printable, so ids
coming from a proxy or client keep correlating; anything else is replaced by a
fresh UUID4 to keep newlines and oversized values out of the logs.
"""

import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from .filters import set_request_id, reset_request_id

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def _usable_request_id(value: str | None) -> bool:
    return bool(value) and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable()


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(REQUEST_ID_HEADER)
        rid = incoming if _usable_request_id(incoming) else str(uuid.uuid4())

        token = set_request_id(rid)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            # Clear the id so nothing logged after the request inherits it
            reset_request_id(token)
