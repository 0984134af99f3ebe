from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from streambridge.shared.validators.stream_link import ERROR_UNSUPPORTED_LINK, LinkKind, classify_link

from ..cloud.drive_proxy import DriveProxy
from ..errors import (
    BackendFailureError,
    ClientError,
    MediaNotFoundError,
    ResourceTimeoutError,
    StreamFileNotFoundError,
)
from ..swarm.engine import SwarmFile
from ..swarm.lifecycle import JobLifecycleManager
from ..swarm.models import FailedOutcome, TimedOutOutcome
from ..swarm.resolver import resolve_media_file
from .responder import stream_swarm_file

TIMEOUT_MESSAGE = "Torrent loading timed out. Please try again."
SWARM_FAILURE_MESSAGE = "Failed to process the torrent."

logger = logging.getLogger(__name__)


class StreamRequestIn(BaseModel):
    link: Optional[str] = None


class StreamUrlOut(BaseModel):
    stream_url: str = Field(serialization_alias="streamUrl")


def _base_url(request: Request, public_base_url: Optional[str]) -> str:
    return (public_base_url or str(request.base_url)).rstrip("/")


async def resolve_swarm_media(
    lifecycle: JobLifecycleManager,
    identifier: str,
    *,
    media_suffix: str,
) -> SwarmFile:
    """
    Attach to (or start) the job for `identifier`, wait for it and pick the
    media file.

    Raises:
        ResourceTimeoutError, BackendFailureError, MediaNotFoundError
    """
    job = lifecycle.ensure_job(identifier)
    outcome = await lifecycle.await_ready(job)

    if isinstance(outcome, TimedOutOutcome):
        raise ResourceTimeoutError(TIMEOUT_MESSAGE)
    if isinstance(outcome, FailedOutcome):
        raise BackendFailureError(SWARM_FAILURE_MESSAGE, cause=outcome.reason)

    media = resolve_media_file(outcome.files, media_suffix)
    if media is None:
        label = media_suffix.lstrip(".").upper() or "media"
        logger.error("No %s file found in %s", label, outcome.display_name or identifier)
        raise MediaNotFoundError(f"No {label} file found in the torrent")

    logger.info("Found %s file: %s", media_suffix, media.name)
    return media


def create_stream_router(
    *,
    lifecycle: JobLifecycleManager,
    drive_proxy: DriveProxy,
    media_suffix: str,
    chunk_size: int,
    public_base_url: Optional[str] = None,
) -> APIRouter:
    router = APIRouter(tags=["stream"])

    @router.post("/stream", response_model=StreamUrlOut)
    async def create_stream(body: StreamRequestIn, request: Request) -> StreamUrlOut:
        result = classify_link(body.link)
        base = _base_url(request, public_base_url)

        if result.kind == LinkKind.SWARM:
            logger.info("Detected torrent magnet link")
            media = await resolve_swarm_media(lifecycle, result.link, media_suffix=media_suffix)
            return StreamUrlOut(stream_url=f"{base}/stream/torrent/{quote(media.name, safe='')}")

        if result.kind == LinkKind.CLOUD_FILE:
            logger.info("Detected Google Drive link: %s", result.file_id)
            return StreamUrlOut(stream_url=f"{base}/stream?{urlencode({'link': result.link})}")

        raise ClientError(result.error or ERROR_UNSUPPORTED_LINK)

    @router.get("/stream")
    async def proxy_cloud_stream(link: Optional[str] = None) -> Response:
        result = classify_link(link)
        if result.kind == LinkKind.SWARM:
            raise ClientError(ERROR_UNSUPPORTED_LINK)
        if result.kind != LinkKind.CLOUD_FILE or not result.file_id:
            raise ClientError(result.error or ERROR_UNSUPPORTED_LINK)
        return await drive_proxy.open(result.file_id)

    @router.get("/stream/torrent/{filename:path}")
    async def stream_torrent_file(filename: str, request: Request) -> Response:
        found = lifecycle.registry.find_file(filename)
        if found is None:
            raise StreamFileNotFoundError("File not found.")

        _, media = found
        return await stream_swarm_file(media, request.headers.get("range"), chunk_size=chunk_size)

    return router
