from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from .lifecycle import JobLifecycleManager


class SwarmFileOut(BaseModel):
    name: str
    length: int


class SwarmJobOut(BaseModel):
    identifier: str
    state: str
    display_name: Optional[str] = None
    files: list[SwarmFileOut]
    waiters: int
    error: Optional[str] = None
    created_at: str
    updated_at: str


class SwarmJobsSnapshotOut(BaseModel):
    ready_timeout_s: float
    job_count: int
    jobs: list[SwarmJobOut]


def create_jobs_router(*, lifecycle: JobLifecycleManager) -> APIRouter:
    router = APIRouter(prefix="/api/jobs", tags=["jobs"])

    @router.get("", response_model=SwarmJobsSnapshotOut)
    async def get_jobs() -> dict[str, Any]:
        return lifecycle.snapshot()

    return router
