"""Request ID tracing.

HTTP requests take their ID from the X-Request-ID header or get a fresh one;
CLI runs bind one per invocation. Fan-out tasks inherit the contextvar, so
every log line of a batch scrape carries the ID of the call that started it.
"""

import contextvars
import uuid
from contextlib import contextmanager

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "deepcite_request_id", default=""
)


def new_request_id() -> str:
    return uuid.uuid4().hex[:16]


@contextmanager
def bound_request_id(rid: str | None = None):
    """Bind `rid` (or a fresh ID) for the duration of the block."""
    token = _request_id.set(rid or new_request_id())
    try:
        yield _request_id.get()
    finally:
        _request_id.reset(token)


def get_request_id() -> str:
    return _request_id.get()


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        with bound_request_id(request.headers.get(REQUEST_ID_HEADER)) as rid:
            response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
