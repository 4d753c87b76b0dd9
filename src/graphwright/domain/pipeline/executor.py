"""Stage executor: lifecycle, metrics validation and retry policy around a stage."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from graphwright.domain.errors import (
    ConcurrentUpdateError,
    IllegalTransitionError,
    InvalidDataError,
    PipelineAbortError,
    RunNotFoundError,
    TransientError,
)
from graphwright.domain.model import ErrorKind, RunStatus
from graphwright.domain.model.run import CLAIMABLE_STATUSES

from .context import RunContext
from .stages import ITEMS_COMPLETED, ITEMS_PROCESSED

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from graphwright.domain.model import Stage
    from graphwright.domain.ports.queue import JobQueue

    from .context import StageServices
    from .stages import StageHandler

log = logging.getLogger(__name__)


class ExecutionOutcome(StrEnum):
    ADVANCED = "advanced"
    COMPLETED = "completed"
    PAUSED = "paused"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    SKIPPED = "skipped"


def validate_metrics(
    stage: Stage,
    metrics: Mapping[str, float],
    *,
    expected_items: int,
    required: tuple[str, ...],
) -> None:
    """Reject metrics that cannot describe a successful stage."""

    missing = [name for name in required if name not in metrics]
    if missing:
        raise InvalidDataError(
            f"Stage {stage} did not report required metrics: {', '.join(missing)}",
            details={"stage": stage.value, "missing": missing},
        )
    negative = {name: value for name, value in metrics.items() if value < 0}
    if negative:
        raise InvalidDataError(
            f"Stage {stage} reported negative metrics: {negative}",
            details={"stage": stage.value, "negative": negative},
        )
    processed = metrics.get(ITEMS_PROCESSED, 0)
    completed = metrics.get(ITEMS_COMPLETED, 0)
    if expected_items > 0 and processed == 0 and completed == 0:
        raise InvalidDataError(
            f"Stage {stage} processed 0 of {expected_items} eligible items",
            details={"stage": stage.value, "expected_items": expected_items},
        )


@dataclass(slots=True)
class StageExecutor:
    """Run one stage of one pipeline run and record the result on the run.

    Status changes are committed through the unit of work, whose optimistic lock
    makes concurrent claims of the same run lose with ``ConcurrentUpdateError``.
    Queue operations always happen after the run transaction has been closed.
    """

    handlers: Mapping[Stage, StageHandler]
    services: StageServices
    queue: JobQueue

    def execute(
        self, run_id: UUID, stage: Stage, *, job_id: UUID | None = None
    ) -> ExecutionOutcome:
        context = self._claim(run_id, stage)
        if context is None:
            if job_id is not None:
                self.queue.discard(job_id)
            return ExecutionOutcome.SKIPPED

        handler = self.handlers[stage]
        log.info("%s starting (attempt %s)", context.prefix, context.attempt)
        started = time.monotonic()
        try:
            expected = handler.expected_items(context)
            metrics = dict(handler.run(context))
            validate_metrics(
                stage, metrics, expected_items=expected, required=handler.required_metrics
            )
        except PipelineAbortError as exc:
            log.error("%s aborted: %s", context.prefix, exc)
            outcome = self._fail(run_id, ErrorKind.ABORTED, exc, job_id=job_id)
        except InvalidDataError as exc:
            log.error("%s invalid data, not retrying: %s", context.prefix, exc)
            outcome = self._fail(run_id, ErrorKind.INVALID_DATA, exc, job_id=job_id)
        except TransientError as exc:
            log.warning("%s transient failure: %s", context.prefix, exc)
            outcome = self._retry(run_id, ErrorKind.TRANSIENT, exc, job_id=job_id)
        except Exception as exc:
            log.exception("%s unexpected failure", context.prefix)
            outcome = self._retry(run_id, ErrorKind.UNEXPECTED, exc, job_id=job_id)
        else:
            metrics["duration_seconds"] = round(time.monotonic() - started, 3)
            outcome = self._complete(run_id, stage, metrics, job_id=job_id)
            log.info("%s finished: %s %s", context.prefix, outcome, metrics)
        return outcome

    def _claim(self, run_id: UUID, stage: Stage) -> RunContext | None:
        now = self.services.clock()
        with self.services.unit_of_work_factory() as uow:
            run = uow.repositories.runs.get(run_id)
            if run is None:
                raise RunNotFoundError(f"Pipeline run {run_id} does not exist")
            if run.stage is not stage or run.status not in CLAIMABLE_STATUSES:
                log.info(
                    "[run %s][%s] discarding stale job (run is %s at %s)",
                    run_id,
                    stage,
                    run.status,
                    run.stage,
                )
                return None
            run.begin_stage(now=now)
            try:
                uow.commit()
            except ConcurrentUpdateError:
                log.info("[run %s][%s] another worker claimed the run first", run_id, stage)
                return None
            return RunContext(
                run_id=run.id,
                stage=stage,
                knowledge_base=run.knowledge_base,
                attempt=run.retry_count + 1,
                options=run.run_options,
                services=self.services,
            )

    def _complete(
        self,
        run_id: UUID,
        stage: Stage,
        metrics: Mapping[str, float],
        *,
        job_id: UUID | None,
    ) -> ExecutionOutcome:
        with self.services.unit_of_work_factory() as uow:
            run = uow.repositories.runs.get(run_id)
            if run is None:
                raise RunNotFoundError(f"Pipeline run {run_id} does not exist")
            if run.stage is not stage or run.status is not RunStatus.RUNNING:
                # a duplicate execution already advanced (or an operator aborted) the run
                log.info("[run %s][%s] result superseded (run is %s)", run_id, stage, run.status)
                outcome = ExecutionOutcome.SKIPPED
                next_stage = None
            else:
                next_stage = run.complete_stage(metrics, now=self.services.clock())
                try:
                    uow.commit()
                except ConcurrentUpdateError:
                    log.info("[run %s][%s] result lost a concurrent update", run_id, stage)
                    outcome = ExecutionOutcome.SKIPPED
                    next_stage = None
                else:
                    outcome = _outcome_for(run.status)

        if job_id is not None:
            self.queue.complete(job_id)
        if next_stage is not None:
            self.queue.enqueue(next_stage, run_id)
        return outcome

    def _retry(
        self,
        run_id: UUID,
        kind: ErrorKind,
        error: BaseException,
        *,
        job_id: UUID | None,
    ) -> ExecutionOutcome:
        config = self.services.config
        now = self.services.clock()
        with self.services.unit_of_work_factory() as uow:
            run = uow.repositories.runs.get(run_id)
            if run is None:
                raise RunNotFoundError(f"Pipeline run {run_id} does not exist")
            if run.status is not RunStatus.RUNNING:
                log.info("[run %s] failure ignored, run is already %s", run_id, run.status)
                scheduled = None
            else:
                scheduled = run.schedule_retry(
                    error, kind=kind, max_retries=config.max_retries, now=now
                )
                try:
                    uow.commit()
                except ConcurrentUpdateError:
                    log.info("[run %s] failure superseded by a concurrent update", run_id)
                    scheduled = None
            stage = run.stage
            retry_count = run.retry_count

        if job_id is not None:
            self.queue.complete(job_id)
        if scheduled is None:
            return ExecutionOutcome.SKIPPED
        if not scheduled:
            log.error(
                "[run %s][%s] failed after %s retries: %s", run_id, stage, retry_count, error
            )
            return ExecutionOutcome.FAILED
        delay = config.backoff_delay(retry_count)
        self.queue.enqueue(stage, run_id, not_before=now + delay)
        log.info(
            "[run %s][%s] retry %s/%s scheduled in %.1fs",
            run_id,
            stage,
            retry_count,
            config.max_retries,
            delay.total_seconds(),
        )
        return ExecutionOutcome.RETRY_SCHEDULED

    def _fail(
        self,
        run_id: UUID,
        kind: ErrorKind,
        error: BaseException,
        *,
        job_id: UUID | None,
    ) -> ExecutionOutcome:
        details = getattr(error, "details", None)
        failed = True
        with self.services.unit_of_work_factory() as uow:
            run = uow.repositories.runs.get(run_id)
            if run is None:
                raise RunNotFoundError(f"Pipeline run {run_id} does not exist")
            try:
                run.fail(kind, str(error), details=details, now=self.services.clock())
            except IllegalTransitionError:
                log.info("[run %s] failure ignored, run is already %s", run_id, run.status)
                failed = False
            else:
                try:
                    uow.commit()
                except ConcurrentUpdateError:
                    log.info("[run %s] failure superseded by a concurrent update", run_id)
                    failed = False
        if job_id is not None:
            self.queue.complete(job_id)
        return ExecutionOutcome.FAILED if failed else ExecutionOutcome.SKIPPED


def _outcome_for(status: RunStatus) -> ExecutionOutcome:
    if status is RunStatus.COMPLETED:
        return ExecutionOutcome.COMPLETED
    if status is RunStatus.PAUSED:
        return ExecutionOutcome.PAUSED
    return ExecutionOutcome.ADVANCED
