"""
Swarm job states shared across backend modules and tests.

Pending / Ready / Failed / TimedOut / Removed
"""

from __future__ import annotations

from enum import Enum


class JobState(str, Enum):
    PENDING = "Pending"
    READY = "Ready"
    FAILED = "Failed"
    TIMED_OUT = "TimedOut"
    REMOVED = "Removed"

    def is_terminal(self) -> bool:
        return self in (JobState.FAILED, JobState.TIMED_OUT, JobState.REMOVED)
