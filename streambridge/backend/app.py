from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .cloud.drive_proxy import DriveProxy
from .errors import register_error_handlers
from .settings.models import BridgeSettings
from .settings.store import SettingsStore
from .streaming.api import create_stream_router
from .swarm import create_libtorrent_engine
from .swarm.api import create_jobs_router
from .swarm.engine import SwarmEngine
from .swarm.lifecycle import JobLifecycleManager
from .swarm.registry import JobRegistry

logger = logging.getLogger(__name__)


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def load_settings() -> BridgeSettings:
    return SettingsStore(path=_repo_root() / "data" / "config.json").load()


def _create_http_client(settings: BridgeSettings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(settings.cloud_timeout_s, read=None),
        proxy=settings.proxy_url,
    )


def create_app(
    *,
    settings: Optional[BridgeSettings] = None,
    engine: Optional[SwarmEngine] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    settings = settings or load_settings()

    if engine is None:
        download_dir = Path(settings.download_dir)
        if not download_dir.is_absolute():
            download_dir = _repo_root() / download_dir
        engine = create_libtorrent_engine(save_path=download_dir)

    owns_client = http_client is None
    client = http_client or _create_http_client(settings)

    registry = JobRegistry()
    lifecycle = JobLifecycleManager(
        registry=registry,
        engine=engine,
        ready_timeout_s=settings.ready_timeout_s,
    )
    drive_proxy = DriveProxy(client=client)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Unified streaming server is running on port %d", settings.port)
        try:
            yield
        finally:
            await lifecycle.shutdown()
            if owns_client:
                await client.aclose()

    app = FastAPI(title="streambridge", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )
    register_error_handlers(app)

    app.include_router(
        create_stream_router(
            lifecycle=lifecycle,
            drive_proxy=drive_proxy,
            media_suffix=settings.media_suffix,
            chunk_size=settings.chunk_size,
            public_base_url=settings.public_base_url,
        )
    )
    app.include_router(create_jobs_router(lifecycle=lifecycle))

    app.state.settings = settings
    app.state.registry = registry
    app.state.lifecycle = lifecycle
    app.state.drive_proxy = drive_proxy
    return app
