"""Durable stage-job queue port."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from graphwright.domain.model import ClaimStatus, JobStatus, Stage


@dataclass(frozen=True, slots=True)
class StageJob:
    id: UUID
    run_id: UUID
    stage: Stage
    status: JobStatus
    enqueued_at: datetime
    available_at: datetime
    claimed_at: datetime | None = None
    claimed_by: str | None = None
    attempts: int = 0


@runtime_checkable
class JobQueue(Protocol):
    """At most one open (queued or claimed) job exists per run and stage."""

    def enqueue(
        self, stage: Stage, run_id: UUID, *, not_before: datetime | None = None
    ) -> StageJob | None:
        """Queue a job; returns ``None`` when an open job for run+stage already exists."""
        ...

    def claim_status(self, stage: Stage, run_id: UUID) -> ClaimStatus: ...

    def claim_next(self, worker_id: str, *, now: datetime | None = None) -> StageJob | None:
        """Atomically claim the oldest available job, or return ``None``."""
        ...

    def complete(self, job_id: UUID) -> None: ...

    def discard(self, job_id: UUID) -> None: ...

    def reap_stale_claims(self, *, claimed_before: datetime) -> int:
        """Abandon claims older than ``claimed_before``; returns how many were released."""
        ...
