"""
Serve a swarm file over HTTP with byte-range support.

- No Range header: 200 with the whole file
- Range header: 206 with Content-Range for the requested slice
- Bad range: 416 (see range.py)

The first chunk is read before the response is returned, so a read error
at that point still becomes a 500. Later errors are logged and the stream is
dropped without writing anything else. The read stream is destroyed when the
body ends for any reason, including the client going away.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator, Optional

from fastapi.responses import Response, StreamingResponse

from ..errors import BackendFailureError
from ..swarm.engine import FileReadStream, SwarmFile
from .range import parse_range_header

VIDEO_MP4 = "video/mp4"
DEFAULT_CHUNK_SIZE = 256 * 1024
STREAM_FAILURE_MESSAGE = "Failed to stream the file."

logger = logging.getLogger(__name__)


def _split(chunk: bytes, chunk_size: int) -> list[bytes]:
    if len(chunk) <= chunk_size:
        return [chunk]
    return [chunk[i : i + chunk_size] for i in range(0, len(chunk), chunk_size)]


async def _pipe(stream: FileReadStream, first: bytes, *, chunk_size: int, label: str) -> AsyncIterator[bytes]:
    outcome = "disconnected"
    try:
        for part in _split(first, chunk_size):
            yield part
        async for chunk in stream:
            for part in _split(chunk, chunk_size):
                yield part
        outcome = "completed"
    except Exception as exc:  # noqa: BLE001 - headers are out, nothing left to send
        outcome = "failed"
        logger.error("Streaming error for %s: %s", label, exc)
    finally:
        stream.destroy()
        if outcome == "disconnected":
            logger.info("Client disconnected, stream destroyed: %s", label)


async def stream_swarm_file(
    file: SwarmFile,
    range_header: Optional[str],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    media_type: str = VIDEO_MP4,
) -> Response:
    """
    Build the HTTP response for `file`, honoring `range_header`.

    Raises:
        RangeNotSatisfiableError: malformed or unsatisfiable range (416).
        BackendFailureError: the stream failed before any byte was sent (500).
    """
    file_length = file.length
    byte_range = parse_range_header(range_header, file_length)

    headers = {"Accept-Ranges": "bytes"}
    if byte_range is None:
        status_code = 200
        start, end = 0, file_length - 1
        headers["Content-Length"] = str(file_length)
    else:
        status_code = 206
        start, end = byte_range.start, byte_range.end
        headers["Content-Range"] = byte_range.content_range(file_length)
        headers["Content-Length"] = str(byte_range.length)

    if file_length == 0:
        return Response(content=b"", status_code=status_code, headers=headers, media_type=media_type)

    stream: Optional[FileReadStream] = None
    try:
        stream = file.create_read_stream(start, end)
        first = await stream.__anext__()
    except StopAsyncIteration:
        stream.destroy()
        raise BackendFailureError(STREAM_FAILURE_MESSAGE, cause=f"{file.name}: stream ended before any data")
    except Exception as exc:  # noqa: BLE001 - nothing sent yet, answer with 500
        if stream is not None:
            stream.destroy()
        raise BackendFailureError(STREAM_FAILURE_MESSAGE, cause=f"{file.name}: {exc}") from exc

    logger.info("Streaming %s bytes %d-%d/%d (%d)", file.name, start, end, file_length, status_code)
    return StreamingResponse(
        _pipe(stream, first, chunk_size=chunk_size, label=file.name),
        status_code=status_code,
        headers=headers,
        media_type=media_type,
    )
