"""Supervisory poller that recovers stuck, missed and failed runs."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from graphwright.domain.errors import ConcurrentUpdateError, IllegalTransitionError
from graphwright.domain.model import ClaimStatus, RunStatus

from .context import utcnow

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime
    from uuid import UUID

    from graphwright.config.pipeline import PipelineConfig
    from graphwright.domain.model import PipelineRun

    from .acceptance import AcceptanceGateRunner
    from .orchestrator import Orchestrator

log = logging.getLogger(__name__)

_WATCHED_STATUSES = frozenset(
    {
        RunStatus.PENDING,
        RunStatus.RUNNING,
        RunStatus.RETRYING,
        RunStatus.PAUSED,
        RunStatus.FAILED,
    }
)


class WatchdogAction(StrEnum):
    NONE = "none"
    OBSERVED = "observed"
    ACCEPTANCE_RECORDED = "acceptance_recorded"
    RESUMED = "resumed"
    MANUAL_INTERVENTION = "manual_intervention"
    DISPATCHED = "dispatched"
    REDISPATCHED = "redispatched"
    GUARDED = "guarded"


_ACTIONS_TAKEN = frozenset(
    {
        WatchdogAction.ACCEPTANCE_RECORDED,
        WatchdogAction.RESUMED,
        WatchdogAction.DISPATCHED,
        WatchdogAction.REDISPATCHED,
    }
)


@dataclass(frozen=True, slots=True)
class WatchdogDecision:
    run_id: UUID
    status: RunStatus
    action: WatchdogAction
    detail: str = ""


@dataclass(slots=True)
class Watchdog:
    """Poll every unfinished run and drive it forward.

    All dispatches go through the job queue's claim-status guard, so the watchdog
    never adds a second open job for a run and stage that already has one.
    """

    orchestrator: Orchestrator
    acceptance: AcceptanceGateRunner
    config: PipelineConfig
    clock: Callable[[], datetime] = utcnow
    name: str = "watchdog"
    _reported_failures: set[UUID] = field(default_factory=set, init=False, repr=False)

    def poll_once(self) -> list[WatchdogDecision]:
        with self.orchestrator.unit_of_work_factory() as uow:
            runs = uow.repositories.runs.list_by_status(_WATCHED_STATUSES)
            runs += uow.repositories.runs.needing_acceptance()

        decisions = [self.inspect(run) for run in runs]
        acted = sum(1 for decision in decisions if decision.action in _ACTIONS_TAKEN)
        log.debug("[Watchdog %s] polled %s run(s), acted on %s", self.name, len(runs), acted)
        return decisions

    def inspect(self, run: PipelineRun) -> WatchdogDecision:
        match run.status:
            case RunStatus.COMPLETED:
                return self._accept(run)
            case RunStatus.FAILED:
                return self._recover_failed(run)
            case RunStatus.RUNNING | RunStatus.RETRYING:
                return self._check_stuck(run)
            case RunStatus.PENDING:
                return self._check_dispatched(run)
            case _:
                log.debug("[Watchdog %s] run %s is paused at %s", self.name, run.id, run.stage)
                return WatchdogDecision(run.id, run.status, WatchdogAction.OBSERVED)

    def run_forever(
        self,
        *,
        max_polls: int | None = None,
        stop: threading.Event | None = None,
    ) -> None:
        stop_event = stop or threading.Event()
        polls = 0
        log.info(
            "[Watchdog %s] started (poll every %ss, stuck after %s)",
            self.name,
            self.config.watchdog_poll_seconds,
            self.config.stuck_threshold,
        )
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                log.exception("[Watchdog %s] poll failed", self.name)
            polls += 1
            if max_polls is not None and polls >= max_polls:
                break
            stop_event.wait(self.config.watchdog_poll_seconds)
        log.info("[Watchdog %s] stopped after %s poll(s)", self.name, polls)

    def _accept(self, run: PipelineRun) -> WatchdogDecision:
        if run.acceptance is not None:
            return WatchdogDecision(run.id, run.status, WatchdogAction.NONE)
        with self.orchestrator.unit_of_work_factory() as uow:
            items = uow.repositories.items.for_run(run.id)
        report = self.acceptance.evaluate(run, items)

        with self.orchestrator.unit_of_work_factory() as uow:
            current = uow.repositories.runs.get(run.id)
            if current is None or current.acceptance is not None:
                return WatchdogDecision(run.id, run.status, WatchdogAction.NONE)
            current.record_acceptance(report.to_payload(), now=self.clock())
            try:
                uow.commit()
            except ConcurrentUpdateError:
                log.info(
                    "[Watchdog %s] acceptance for run %s recorded elsewhere", self.name, run.id
                )
                return WatchdogDecision(run.id, run.status, WatchdogAction.NONE)
        return WatchdogDecision(
            run.id, run.status, WatchdogAction.ACCEPTANCE_RECORDED, report.summary
        )

    def _recover_failed(self, run: PipelineRun) -> WatchdogDecision:
        kind = run.error_kind
        budget_left = run.resume_count < self.config.max_auto_resumes
        if kind is not None and kind.auto_resumable and budget_left:
            log.warning(
                "[Watchdog %s] run %s failed at %s (%s); auto-resuming (%s/%s)",
                self.name,
                run.id,
                run.stage,
                run.last_error,
                run.resume_count + 1,
                self.config.max_auto_resumes,
            )
            try:
                self.orchestrator.resume(run.id)
            except (ConcurrentUpdateError, IllegalTransitionError) as exc:
                log.info("[Watchdog %s] run %s changed before resume: %s", self.name, run.id, exc)
                return WatchdogDecision(run.id, run.status, WatchdogAction.NONE)
            self._reported_failures.discard(run.id)
            return WatchdogDecision(run.id, run.status, WatchdogAction.RESUMED)

        if run.id not in self._reported_failures:
            self._reported_failures.add(run.id)
            log.error(
                "[Watchdog %s] run %s failed at %s and needs manual intervention "
                "(kind=%s, retries=%s, resumes=%s): %s",
                self.name,
                run.id,
                run.stage,
                kind,
                run.retry_count,
                run.resume_count,
                run.last_error,
            )
        return WatchdogDecision(run.id, run.status, WatchdogAction.MANUAL_INTERVENTION)

    def _check_stuck(self, run: PipelineRun) -> WatchdogDecision:
        now = self.clock()
        threshold = self.config.stuck_threshold
        since = run.stage_started_at if run.status is RunStatus.RUNNING else run.updated_at
        since = since or run.updated_at
        if now - since < threshold:
            return WatchdogDecision(run.id, run.status, WatchdogAction.NONE)

        queue = self.orchestrator.queue
        reaped = queue.reap_stale_claims(claimed_before=now - threshold)
        if reaped:
            log.warning("[Watchdog %s] released %s stale claim(s)", self.name, reaped)
        claim = queue.claim_status(run.stage, run.id)
        if claim is not ClaimStatus.NONE:
            return WatchdogDecision(run.id, run.status, WatchdogAction.GUARDED, claim.value)

        log.warning(
            "[Watchdog %s] run %s %s at %s for %s without a job; re-dispatching",
            self.name,
            run.id,
            run.status,
            run.stage,
            now - since,
        )
        job = self.orchestrator.dispatch(run.stage, run.id)
        if job is None:
            return WatchdogDecision(run.id, run.status, WatchdogAction.GUARDED)
        return WatchdogDecision(run.id, run.status, WatchdogAction.REDISPATCHED, str(job.id))

    def _check_dispatched(self, run: PipelineRun) -> WatchdogDecision:
        claim = self.orchestrator.queue.claim_status(run.stage, run.id)
        if claim is not ClaimStatus.NONE:
            return WatchdogDecision(run.id, run.status, WatchdogAction.NONE, claim.value)
        log.warning(
            "[Watchdog %s] run %s pending at %s without a job; dispatching",
            self.name,
            run.id,
            run.stage,
        )
        job = self.orchestrator.dispatch(run.stage, run.id)
        if job is None:
            return WatchdogDecision(run.id, run.status, WatchdogAction.GUARDED)
        return WatchdogDecision(run.id, run.status, WatchdogAction.DISPATCHED, str(job.id))
