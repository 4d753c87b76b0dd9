"""Durable stage-job queue stored in the ``stage_job`` table."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError

from graphwright.adapters.sqlalchemy.mappings import stage_job_table
from graphwright.domain.model import ClaimStatus, JobStatus
from graphwright.domain.ports.queue import StageJob

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from sqlalchemy import Row
    from sqlalchemy.engine import Engine

    from graphwright.domain.model import Stage

log = logging.getLogger(__name__)

OPEN_STATUSES: tuple[JobStatus, ...] = (JobStatus.QUEUED, JobStatus.CLAIMED)
# A lost claim race is retried against the next candidate at most this often.
MAX_CLAIM_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class SqlAlchemyJobQueue:
    """Job queue whose claims are compare-and-set updates on the job status."""

    def __init__(self, engine: Engine, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._engine = engine
        self._clock = clock

    def enqueue(
        self, stage: Stage, run_id: UUID, *, not_before: datetime | None = None
    ) -> StageJob | None:
        table = stage_job_table
        now = self._clock()
        job = StageJob(
            id=uuid.uuid4(),
            run_id=run_id,
            stage=stage,
            status=JobStatus.QUEUED,
            enqueued_at=now,
            available_at=max(now, not_before) if not_before is not None else now,
        )
        try:
            with self._engine.begin() as conn:
                open_job = conn.execute(
                    select(table.c.id)
                    .where(table.c.run_id == run_id)
                    .where(table.c.stage == stage)
                    .where(table.c.status.in_(OPEN_STATUSES))
                ).first()
                if open_job is not None:
                    log.debug("[run %s][%s] job already open", run_id, stage)
                    return None
                conn.execute(
                    insert(table).values(
                        id=job.id,
                        run_id=job.run_id,
                        stage=job.stage,
                        status=job.status,
                        enqueued_at=job.enqueued_at,
                        available_at=job.available_at,
                        attempts=0,
                    )
                )
        except IntegrityError:
            log.debug("[run %s][%s] concurrent enqueue lost to an open job", run_id, stage)
            return None
        log.info("[run %s][%s] job %s queued", run_id, stage, job.id)
        return job

    def claim_status(self, stage: Stage, run_id: UUID) -> ClaimStatus:
        table = stage_job_table
        with self._engine.connect() as conn:
            status = conn.execute(
                select(table.c.status)
                .where(table.c.run_id == run_id)
                .where(table.c.stage == stage)
                .where(table.c.status.in_(OPEN_STATUSES))
            ).scalar_one_or_none()
        if status is None:
            return ClaimStatus.NONE
        return ClaimStatus.CLAIMED if status is JobStatus.CLAIMED else ClaimStatus.QUEUED

    def claim_next(self, worker_id: str, *, now: datetime | None = None) -> StageJob | None:
        table = stage_job_table
        moment = now or self._clock()
        for _ in range(MAX_CLAIM_ATTEMPTS):
            with self._engine.begin() as conn:
                row = conn.execute(
                    select(table)
                    .where(table.c.status == JobStatus.QUEUED)
                    .where(table.c.available_at <= moment)
                    .order_by(table.c.available_at, table.c.enqueued_at)
                    .limit(1)
                ).first()
                if row is None:
                    return None
                result = conn.execute(
                    update(table)
                    .where(table.c.id == row.id)
                    .where(table.c.status == JobStatus.QUEUED)
                    .values(
                        status=JobStatus.CLAIMED,
                        claimed_at=moment,
                        claimed_by=worker_id,
                        attempts=table.c.attempts + 1,
                    )
                )
            if result.rowcount == 1:
                job = _job_from_row(row)
                log.debug("Worker %s claimed job %s", worker_id, job.id)
                return StageJob(
                    id=job.id,
                    run_id=job.run_id,
                    stage=job.stage,
                    status=JobStatus.CLAIMED,
                    enqueued_at=job.enqueued_at,
                    available_at=job.available_at,
                    claimed_at=moment,
                    claimed_by=worker_id,
                    attempts=job.attempts + 1,
                )
        return None

    def complete(self, job_id: UUID) -> None:
        self._finish(job_id, JobStatus.DONE)

    def discard(self, job_id: UUID) -> None:
        self._finish(job_id, JobStatus.DISCARDED)

    def reap_stale_claims(self, *, claimed_before: datetime) -> int:
        table = stage_job_table
        with self._engine.begin() as conn:
            result = conn.execute(
                update(table)
                .where(table.c.status == JobStatus.CLAIMED)
                .where(table.c.claimed_at < claimed_before)
                .values(status=JobStatus.ABANDONED, finished_at=self._clock())
            )
        if result.rowcount:
            log.warning("Abandoned %s stale job claim(s)", result.rowcount)
        return result.rowcount

    def get(self, job_id: UUID) -> StageJob | None:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(stage_job_table).where(stage_job_table.c.id == job_id)
            ).first()
        return _job_from_row(row) if row is not None else None

    def _finish(self, job_id: UUID, status: JobStatus) -> None:
        table = stage_job_table
        with self._engine.begin() as conn:
            conn.execute(
                update(table)
                .where(table.c.id == job_id)
                .where(table.c.status.in_(OPEN_STATUSES))
                .values(status=status, finished_at=self._clock())
            )


def _job_from_row(row: Row[tuple[object, ...]]) -> StageJob:
    mapping = row._mapping  # noqa: SLF001
    return StageJob(
        id=mapping["id"],
        run_id=mapping["run_id"],
        stage=mapping["stage"],
        status=mapping["status"],
        enqueued_at=mapping["enqueued_at"],
        available_at=mapping["available_at"],
        claimed_at=mapping["claimed_at"],
        claimed_by=mapping["claimed_by"],
        attempts=mapping["attempts"],
    )


if TYPE_CHECKING:
    from graphwright.domain.ports.queue import JobQueue

    _queue_check: type[JobQueue] = SqlAlchemyJobQueue
