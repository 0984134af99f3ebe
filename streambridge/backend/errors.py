"""
Error taxonomy for the streaming bridge and its FastAPI rendering.

- ClientError: bad input, message is safe to show (4xx)
- ResourceTimeoutError: swarm did not become ready in time (5xx, retry hint)
- BackendFailureError: engine error, remote fetch failure, stream I/O error
  (5xx, generic message; the cause is logged, not surfaced)
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class StreamBridgeError(Exception):
    status_code = 500

    def __init__(self, message: str, *, headers: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class ClientError(StreamBridgeError):
    status_code = 400


class MediaNotFoundError(ClientError):
    """The swarm resource holds no file matching the media suffix."""


class StreamFileNotFoundError(ClientError):
    status_code = 404


class RangeNotSatisfiableError(ClientError):
    status_code = 416

    def __init__(self, message: str, *, file_length: int) -> None:
        super().__init__(message, headers={"Content-Range": f"bytes */{file_length}"})
        self.file_length = file_length


class ResourceTimeoutError(StreamBridgeError):
    status_code = 500


class BackendFailureError(StreamBridgeError):
    status_code = 500

    def __init__(self, message: str, *, cause: Optional[str] = None) -> None:
        super().__init__(message)
        self.cause = cause


def error_response(exc: StreamBridgeError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=exc.headers,
    )


async def _handle_bridge_error(request: Request, exc: StreamBridgeError) -> JSONResponse:
    if isinstance(exc, BackendFailureError) and exc.cause:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.cause)
    return error_response(exc)


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "A valid link is required"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StreamBridgeError, _handle_bridge_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
