from fastapi import Request
from fastapi.responses import JSONResponse


class DeepCiteError(Exception):
    """Base class for errors raised inside the extraction pipeline."""


class InvalidURLError(DeepCiteError):
    MESSAGE = "Invalid URL format"

    def __init__(self, url: str):
        self.url = url
        super().__init__(self.MESSAGE)


class FetchError(DeepCiteError):
    """Static fetch failed after exhausting its retries."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)


class BadRequestError(DeepCiteError):
    """Client error surfaced by the HTTP layer as a 400."""

    def __init__(self, message: str, detail: dict | None = None):
        self.message = message
        self.detail = detail or {}
        super().__init__(message)


async def bad_request_handler(request: Request, exc: BadRequestError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": exc.message, **exc.detail},
    )
