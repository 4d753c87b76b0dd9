"""Create pipeline runs and dispatch their stage jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from graphwright.domain.errors import InvalidDataError, RunNotFoundError
from graphwright.domain.model import ACTIVE_STATUSES, PipelineRun, RunOptions, SourceItem

from .context import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from datetime import datetime
    from uuid import UUID

    from graphwright.domain.model import SourceInput, Stage
    from graphwright.domain.ports.queue import JobQueue, StageJob
    from graphwright.domain.ports.unit_of_work import PipelineUnitOfWork

    from .context import UnitOfWorkFactory

log = logging.getLogger(__name__)


@dataclass(slots=True)
class Orchestrator:
    """Entry point for operators: start, pause, resume and abort runs.

    Every method commits its run change before touching the job queue, so a
    worker that picks up the job always sees the new status.
    """

    unit_of_work_factory: UnitOfWorkFactory
    queue: JobQueue
    clock: Callable[[], datetime] = utcnow

    def create_run(
        self,
        sources: Iterable[SourceInput],
        options: RunOptions | None = None,
    ) -> PipelineRun:
        options = options or RunOptions()
        now = self.clock()
        run = PipelineRun(
            knowledge_base=options.knowledge_base,
            options=options.to_payload(),
            created_at=now,
            updated_at=now,
        )
        items = [
            SourceItem(
                run_id=run.id,
                uri=source.uri,
                content=source.content,
                source_metadata=dict(source.metadata),
                created_at=now,
            )
            for source in sources
        ]
        if not items:
            raise InvalidDataError("A pipeline run needs at least one source item")

        with self.unit_of_work_factory() as uow:
            uow.repositories.runs.add(run)
            for item in items:
                uow.repositories.items.add(item)
            uow.commit()
            stage = run.stage
            run_id = run.id

        log.info(
            "Created run %s for knowledge base %r with %s item(s)",
            run_id,
            options.knowledge_base,
            len(items),
        )
        self.dispatch(stage, run_id)
        return run

    def dispatch(self, stage: Stage, run_id: UUID) -> StageJob | None:
        job = self.queue.enqueue(stage, run_id)
        if job is None:
            log.info("[run %s][%s] job already open, not dispatching again", run_id, stage)
        else:
            log.info("[run %s][%s] dispatched job %s", run_id, stage, job.id)
        return job

    def resume(self, run_id: UUID) -> PipelineRun:
        """Re-validate a paused or failed run and re-dispatch its current stage."""

        with self.unit_of_work_factory() as uow:
            run = self._get(uow, run_id)
            previous = run.status
            run.resume(now=self.clock())
            uow.commit()
            stage = run.stage
        log.info("[run %s][%s] resumed from %s", run_id, stage, previous)
        self.dispatch(stage, run_id)
        return run

    def pause(self, run_id: UUID) -> PipelineRun:
        """Request a pause; it takes effect when the current stage completes."""

        with self.unit_of_work_factory() as uow:
            run = self._get(uow, run_id)
            run.request_pause(now=self.clock())
            uow.commit()
            log.info("[run %s][%s] pause requested", run_id, run.stage)
        return run

    def abort(self, run_id: UUID, reason: str) -> PipelineRun:
        with self.unit_of_work_factory() as uow:
            run = self._get(uow, run_id)
            run.abort(reason, now=self.clock())
            uow.commit()
            log.warning("[run %s][%s] aborted: %s", run_id, run.stage, reason)
        return run

    def get(self, run_id: UUID) -> PipelineRun:
        with self.unit_of_work_factory() as uow:
            return self._get(uow, run_id)

    def active_runs(self) -> list[PipelineRun]:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.runs.list_by_status(ACTIVE_STATUSES)

    @staticmethod
    def _get(uow: PipelineUnitOfWork, run_id: UUID) -> PipelineRun:
        run = uow.repositories.runs.get(run_id)
        if run is None:
            raise RunNotFoundError(f"Pipeline run {run_id} does not exist")
        return run
