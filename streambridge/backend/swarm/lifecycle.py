"""
Swarm job lifecycle: Pending -> Ready | Failed | TimedOut.

Bridges the engine's asynchronous ready/error signals to HTTP requests that
need a synchronous answer to "is it ready, and which files does it hold".

- One engine `add` per identifier (the registry deduplicates)
- Each waiting request owns a future that is resolved at most once
- Timeouts are per call: the caller that times out drops the job from the
  registry, other waiters keep their own timers
- The engine handle is destroyed on error, or when the last waiter of a job
  that never became ready departs
- Ready signals for jobs that already left Pending are ignored
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from streambridge.shared.job_state import JobState

from .engine import SwarmEngine
from .models import FailedOutcome, JobOutcome, ReadyOutcome, SwarmJob, TimedOutOutcome
from .registry import JobRegistry

DEFAULT_READY_TIMEOUT_S = 30.0

logger = logging.getLogger(__name__)


class JobLifecycleManager:
    def __init__(
        self,
        *,
        registry: JobRegistry,
        engine: SwarmEngine,
        ready_timeout_s: float = DEFAULT_READY_TIMEOUT_S,
    ) -> None:
        self._registry = registry
        self._engine = engine
        self._ready_timeout_s = ready_timeout_s

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def ready_timeout_s(self) -> float:
        return self._ready_timeout_s

    # ---------------------------------------------------------------------
    # Public API
    # ---------------------------------------------------------------------

    def ensure_job(self, identifier: str) -> SwarmJob:
        """
        Return the registered job for `identifier`, starting a swarm download
        if none exists. Never suspends.
        """
        job, created = self._registry.get_or_create(identifier)
        if not created:
            return job

        logger.info("Adding swarm job: %s", identifier)
        try:
            handle = self._engine.add(identifier)
        except Exception as exc:  # noqa: BLE001
            logger.error("Swarm engine rejected %s: %s", identifier, exc)
            self._on_error(job, exc)
            return job

        job.handle = handle
        handle.on_ready(lambda: self._on_ready(job))
        handle.on_error(lambda exc: self._on_error(job, exc))
        handle.on_done(lambda: self._on_done(job))

        if handle.ready:
            self._on_ready(job)
        return job

    async def await_ready(self, job: SwarmJob, timeout_s: Optional[float] = None) -> JobOutcome:
        """
        Wait until `job` leaves Pending or `timeout_s` elapses.

        Returns exactly one of ReadyOutcome, FailedOutcome, TimedOutOutcome.
        """
        timeout = self._ready_timeout_s if timeout_s is None else timeout_s

        if job.state == JobState.READY:
            return self._ready_outcome(job)
        if job.state.is_terminal():
            return FailedOutcome(reason=job.error or f"swarm job {job.state.value}")

        waiter: asyncio.Future = asyncio.get_running_loop().create_future()
        job.waiters.add(waiter)
        try:
            await asyncio.wait({waiter}, timeout=timeout)
        except asyncio.CancelledError:
            # Caller went away while suspended.
            waiter.cancel()
            self._depart(job, waiter)
            raise

        if waiter.done() and not waiter.cancelled():
            job.waiters.discard(waiter)
            return waiter.result()

        waiter.cancel()
        self._on_waiter_timeout(job, waiter, timeout)
        return TimedOutOutcome(timeout_s=timeout)

    async def shutdown(self) -> None:
        jobs = self._registry.clear()
        for job in jobs:
            if not job.state.is_terminal():
                job.transition(JobState.REMOVED, error="server shutting down")
            self._resolve_waiters(job, FailedOutcome(reason="server shutting down"))
            self._release(job)
        await self._engine.close()
        logger.info("Swarm jobs released: %d", len(jobs))

    def snapshot(self) -> dict[str, Any]:
        jobs = [job.to_public_dict() for job in self._registry.jobs()]
        return {
            "ready_timeout_s": self._ready_timeout_s,
            "job_count": len(jobs),
            "jobs": jobs,
        }

    # ---------------------------------------------------------------------
    # Engine signals
    # ---------------------------------------------------------------------

    def _on_ready(self, job: SwarmJob) -> None:
        if job.state != JobState.PENDING:
            logger.info("Ignoring ready signal for %s job: %s", job.state.value, job.identifier)
            return

        handle = job.handle
        if handle is None:
            return

        job.files = tuple(handle.files)
        job.display_name = handle.name
        job.transition(JobState.READY)
        logger.info("Swarm job ready: %s (%d files)", job.display_name or job.identifier, len(job.files))

        self._resolve_waiters(job, self._ready_outcome(job))

    def _on_error(self, job: SwarmJob, exc: BaseException) -> None:
        reason = str(exc) or exc.__class__.__name__
        previous = job.state

        if previous == JobState.PENDING:
            job.transition(JobState.FAILED, error=reason)
        elif previous == JobState.READY:
            job.transition(JobState.REMOVED, error=reason)
        else:
            job.error = reason

        logger.error("Swarm job error (%s): %s: %s", previous.value, job.identifier, reason)
        self._registry.remove(job.identifier, job)
        self._resolve_waiters(job, FailedOutcome(reason=reason))
        self._release(job)

    def _on_done(self, job: SwarmJob) -> None:
        logger.info("Swarm download finished: %s", job.display_name or job.identifier)

    # ---------------------------------------------------------------------
    # Internals (never suspend)
    # ---------------------------------------------------------------------

    @staticmethod
    def _ready_outcome(job: SwarmJob) -> ReadyOutcome:
        return ReadyOutcome(files=job.files, display_name=job.display_name)

    @staticmethod
    def _resolve_waiters(job: SwarmJob, outcome: JobOutcome) -> None:
        waiters = list(job.waiters)
        job.waiters.clear()
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(outcome)

    def _on_waiter_timeout(self, job: SwarmJob, waiter: asyncio.Future, timeout: float) -> None:
        job.waiters.discard(waiter)
        if job.state == JobState.PENDING:
            job.transition(JobState.TIMED_OUT, error=f"not ready within {timeout:g}s")
        logger.warning("Swarm job timed out after %.1fs: %s", timeout, job.identifier)

        self._registry.remove(job.identifier, job)
        if not job.waiters:
            self._release(job)

    def _depart(self, job: SwarmJob, waiter: asyncio.Future) -> None:
        job.waiters.discard(waiter)
        if job.waiters or job.state == JobState.READY:
            return

        if job.state == JobState.PENDING:
            job.transition(JobState.REMOVED, error="abandoned by all waiters")
            logger.info("Swarm job abandoned before ready: %s", job.identifier)
        self._registry.remove(job.identifier, job)
        self._release(job)

    @staticmethod
    def _release(job: SwarmJob) -> None:
        handle = job.handle
        if handle is None:
            return
        job.handle = None
        try:
            handle.destroy()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to destroy swarm handle for %s: %s", job.identifier, exc)
