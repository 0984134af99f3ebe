from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from streambridge.shared.job_state import JobState

from .engine import SwarmFile, SwarmHandle


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_utc_z(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class SwarmJob:
    """
    Server-side record of one swarm download.

    `waiters` holds one future per suspended caller; each future is resolved
    at most once with an outcome (see lifecycle.JobOutcome).
    """

    identifier: str
    state: JobState = JobState.PENDING
    handle: Optional[SwarmHandle] = None
    display_name: Optional[str] = None
    files: tuple[SwarmFile, ...] = ()
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    waiters: set[asyncio.Future] = field(default_factory=set, repr=False)

    def transition(self, state: JobState, *, error: Optional[str] = None) -> None:
        self.state = state
        if error is not None:
            self.error = error
        self.updated_at = utc_now()

    def find_file(self, name: str) -> Optional[SwarmFile]:
        for f in self.files:
            if f.name == name:
                return f
        return None

    def to_public_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "state": self.state.value,
            "display_name": self.display_name,
            "files": [{"name": f.name, "length": f.length} for f in self.files],
            "waiters": len(self.waiters),
            "error": self.error,
            "created_at": format_utc_z(self.created_at),
            "updated_at": format_utc_z(self.updated_at),
        }


@dataclass(frozen=True)
class ReadyOutcome:
    files: tuple[SwarmFile, ...]
    display_name: Optional[str] = None


@dataclass(frozen=True)
class FailedOutcome:
    reason: str


@dataclass(frozen=True)
class TimedOutOutcome:
    timeout_s: float


JobOutcome = Union[ReadyOutcome, FailedOutcome, TimedOutOutcome]
