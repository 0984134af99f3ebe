"""
Google Drive pass-through.

Turns a Drive file id into the direct download URL, fetches it as a stream
and relays the body with `Content-Disposition: inline` so browsers play it
instead of saving it. No range support on this path.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator
from urllib.parse import urlencode

import httpx
from fastapi.responses import StreamingResponse

from ..errors import BackendFailureError

DRIVE_DOWNLOAD_BASE = "https://drive.google.com/uc"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
FETCH_FAILURE_MESSAGE = "Failed to stream the file."

logger = logging.getLogger(__name__)


def build_direct_url(file_id: str) -> str:
    return f"{DRIVE_DOWNLOAD_BASE}?{urlencode({'id': file_id, 'export': 'download'})}"


class DriveProxy:
    def __init__(self, *, client: httpx.AsyncClient) -> None:
        self._client = client

    async def open(self, file_id: str) -> StreamingResponse:
        """
        Start relaying the Drive file `file_id`.

        Raises:
            BackendFailureError: the remote fetch failed or answered >= 400.
        """
        url = build_direct_url(file_id)
        request = self._client.build_request("GET", url)
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise BackendFailureError(FETCH_FAILURE_MESSAGE, cause=f"{url}: {exc}") from exc

        if response.status_code >= 400:
            await response.aclose()
            raise BackendFailureError(FETCH_FAILURE_MESSAGE, cause=f"{url}: HTTP {response.status_code}")

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        logger.info("Proxying Drive file %s (%s)", file_id, content_type)
        return StreamingResponse(
            self._relay(response, file_id),
            headers={"Content-Disposition": "inline"},
            media_type=content_type,
        )

    @staticmethod
    async def _relay(response: httpx.Response, file_id: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            logger.error("Drive stream for %s broke off: %s", file_id, exc)
        finally:
            await response.aclose()
