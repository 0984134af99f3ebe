"""
Swarm-backed media jobs.

Provides:
- Engine contract (engine.py) and the libtorrent adapter (libtorrent_engine.py)
- Job registry with per-identifier dedup (registry.py)
- Job lifecycle and readiness waiting (lifecycle.py)
- Media file selection (resolver.py)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from .engine import FileReadStream, SwarmEngine, SwarmEngineError, SwarmFile, SwarmHandle
from .lifecycle import JobLifecycleManager
from .models import FailedOutcome, JobOutcome, ReadyOutcome, SwarmJob, TimedOutOutcome
from .registry import JobRegistry
from .resolver import resolve_media_file

if TYPE_CHECKING:
    from .libtorrent_engine import LibtorrentEngine  # pragma: no cover


def create_libtorrent_engine(*, save_path: Path) -> "LibtorrentEngine":
    """
    Lazily import libtorrent so the rest of the package works without it.
    """
    from .libtorrent_engine import LibtorrentEngine

    return LibtorrentEngine(save_path=save_path)


__all__ = [
    "FileReadStream",
    "SwarmEngine",
    "SwarmEngineError",
    "SwarmFile",
    "SwarmHandle",
    "JobLifecycleManager",
    "FailedOutcome",
    "JobOutcome",
    "ReadyOutcome",
    "SwarmJob",
    "TimedOutOutcome",
    "JobRegistry",
    "resolve_media_file",
    "create_libtorrent_engine",
]
