"""
Process-wide table of swarm jobs keyed by swarm identifier.

All methods are synchronous: callers on the event loop never yield between
the lookup and the insert/remove, which is what keeps "one job per
identifier" true under interleaved requests.

Usage:
    registry = JobRegistry()

    job, created = registry.get_or_create(magnet, SwarmJob)
    if created:
        job.handle = engine.add(magnet)

    registry.remove(magnet)   # safe to repeat
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional

from streambridge.shared.job_state import JobState

from .engine import SwarmFile
from .models import SwarmJob

JobFactory = Callable[[str], SwarmJob]


class JobRegistry:
    def __init__(self) -> None:
        # insertion order doubles as the lookup order for find_file
        self._jobs: dict[str, SwarmJob] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._jobs

    def jobs(self) -> Iterator[SwarmJob]:
        return iter(list(self._jobs.values()))

    def find(self, identifier: str) -> Optional[SwarmJob]:
        return self._jobs.get(identifier)

    def get_or_create(self, identifier: str, factory: JobFactory = SwarmJob) -> tuple[SwarmJob, bool]:
        """
        Return the job for `identifier`, creating it if absent.

        Returns:
            (job, created) where `created` is True only for the call that
            inserted the job.
        """
        job = self._jobs.get(identifier)
        if job is not None:
            return job, False

        job = factory(identifier)
        self._jobs[identifier] = job
        return job, True

    def remove(self, identifier: str, job: Optional[SwarmJob] = None) -> bool:
        """
        Remove the entry for `identifier`. Repeated calls are no-ops.

        When `job` is given, the entry is only removed if it still refers to
        that job, so a stale job can never evict a newer one.

        Returns:
            True if an entry was removed.
        """
        current = self._jobs.get(identifier)
        if current is None:
            return False
        if job is not None and current is not job:
            return False
        del self._jobs[identifier]
        return True

    def find_file(self, name: str) -> Optional[tuple[SwarmJob, SwarmFile]]:
        """Find the first Ready job holding a file named exactly `name`."""
        for job in self._jobs.values():
            if job.state != JobState.READY:
                continue
            f = job.find_file(name)
            if f is not None:
                return job, f
        return None

    def clear(self) -> list[SwarmJob]:
        jobs = list(self._jobs.values())
        self._jobs.clear()
        return jobs
