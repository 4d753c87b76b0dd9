"""Queue worker that pulls stage jobs and hands them to the executor."""

from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from .context import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from graphwright.domain.ports.queue import JobQueue

    from .executor import ExecutionOutcome, StageExecutor

log = logging.getLogger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}-{uuid4().hex[:8]}"


@dataclass(slots=True)
class Worker:
    queue: JobQueue
    executor: StageExecutor
    worker_id: str = field(default_factory=default_worker_id)
    clock: Callable[[], datetime] = utcnow

    def run_once(self) -> ExecutionOutcome | None:
        """Claim and execute one available job. Returns ``None`` when the queue is idle."""

        job = self.queue.claim_next(self.worker_id, now=self.clock())
        if job is None:
            return None
        log.debug("[Worker %s] claimed job %s (%s)", self.worker_id, job.id, job.stage)
        return self.executor.execute(job.run_id, job.stage, job_id=job.id)

    def drain(self, max_jobs: int | None = None) -> list[ExecutionOutcome]:
        """Execute available jobs until the queue is idle or ``max_jobs`` ran."""

        outcomes: list[ExecutionOutcome] = []
        while max_jobs is None or len(outcomes) < max_jobs:
            outcome = self.run_once()
            if outcome is None:
                break
            outcomes.append(outcome)
        return outcomes

    def run_forever(
        self,
        *,
        poll_seconds: float = 1.0,
        stop: threading.Event | None = None,
    ) -> None:
        stop_event = stop or threading.Event()
        log.info("[Worker %s] started", self.worker_id)
        while not stop_event.is_set():
            try:
                outcome = self.run_once()
            except Exception:
                log.exception("[Worker %s] job loop error", self.worker_id)
                outcome = None
            if outcome is None:
                stop_event.wait(poll_seconds)
        log.info("[Worker %s] stopped", self.worker_id)
