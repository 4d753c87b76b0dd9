"""The pipeline run aggregate and its status state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast
from uuid import UUID, uuid4

from graphwright.domain.errors import IllegalTransitionError

from .enums import ErrorKind, RunStatus, Stage
from .rights import RightsTerms

if TYPE_CHECKING:
    from collections.abc import Mapping

type StageMetrics = dict[str, float]

DEFAULT_KNOWLEDGE_BASE = "default"

_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.PENDING: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.RUNNING: frozenset(
        {
            RunStatus.RUNNING,
            RunStatus.PENDING,
            RunStatus.RETRYING,
            RunStatus.PAUSED,
            RunStatus.FAILED,
            RunStatus.COMPLETED,
        }
    ),
    RunStatus.RETRYING: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.PAUSED: frozenset({RunStatus.RUNNING, RunStatus.FAILED}),
    RunStatus.FAILED: frozenset({RunStatus.RETRYING}),
    RunStatus.COMPLETED: frozenset(),
}

# Statuses from which a worker may start (or restart) executing the current stage.
CLAIMABLE_STATUSES: frozenset[RunStatus] = frozenset(
    {RunStatus.PENDING, RunStatus.RETRYING, RunStatus.RUNNING}
)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True, slots=True)
class RunOptions:
    knowledge_base: str = DEFAULT_KNOWLEDGE_BASE
    auto_advance: bool = True
    skip_failed_items: bool = False
    declared_rights: RightsTerms | None = None
    started_by: str | None = None

    def to_payload(self) -> dict[str, object]:
        return {
            "knowledge_base": self.knowledge_base,
            "auto_advance": self.auto_advance,
            "skip_failed_items": self.skip_failed_items,
            "declared_rights": self.declared_rights.to_payload() if self.declared_rights else None,
            "started_by": self.started_by,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> RunOptions:
        declared = payload.get("declared_rights")
        started_by = payload.get("started_by")
        return cls(
            knowledge_base=str(payload.get("knowledge_base", DEFAULT_KNOWLEDGE_BASE)),
            auto_advance=bool(payload.get("auto_advance", True)),
            skip_failed_items=bool(payload.get("skip_failed_items", False)),
            declared_rights=(
                RightsTerms.from_payload(cast("Mapping[str, object]", declared))
                if isinstance(declared, dict)
                else None
            ),
            started_by=str(started_by) if started_by is not None else None,
        )


@dataclass(eq=False, kw_only=True)
class PipelineRun:
    """Progress of one ingestion through the ordered stages.

    Status changes go through the methods below, which enforce the state machine.
    Persistence adds optimistic locking on ``version`` so that two workers racing
    on the same run cannot both commit a transition.
    """

    id: UUID = field(default_factory=uuid4)
    knowledge_base: str = DEFAULT_KNOWLEDGE_BASE
    stage: Stage = Stage.INTAKE
    status: RunStatus = RunStatus.PENDING
    options: dict[str, object] = field(default_factory=dict)
    stage_started_at: datetime | None = None
    retry_count: int = 0
    resume_count: int = 0
    pause_requested: bool = False
    metrics: dict[str, StageMetrics] = field(default_factory=dict)
    error_kind: ErrorKind | None = None
    last_error: str | None = None
    error_details: dict[str, object] | None = None
    acceptance: dict[str, object] | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_retry_at: datetime | None = None
    version: int | None = None

    @property
    def run_options(self) -> RunOptions:
        return RunOptions.from_payload(self.options)

    @property
    def is_terminal(self) -> bool:
        return self.status is RunStatus.COMPLETED

    def can_retry(self, max_retries: int) -> bool:
        return self.retry_count < max_retries

    def _transition(self, target: RunStatus, *, now: datetime) -> None:
        if target not in _TRANSITIONS[self.status]:
            raise IllegalTransitionError(
                f"Run {self.id} cannot move from {self.status} to {target}",
                details={"run_id": str(self.id), "from": self.status, "to": target},
            )
        self.status = target
        self.updated_at = now

    def begin_stage(self, *, now: datetime | None = None) -> None:
        """Mark the current stage as executing (also used for re-dispatched stages)."""

        moment = now or _utcnow()
        if self.status not in CLAIMABLE_STATUSES:
            raise IllegalTransitionError(
                f"Run {self.id} is {self.status}; stage {self.stage} cannot start",
                details={"run_id": str(self.id), "status": self.status},
            )
        self._transition(RunStatus.RUNNING, now=moment)
        self.stage_started_at = moment
        if self.started_at is None:
            self.started_at = moment

    def complete_stage(
        self, metrics: Mapping[str, float], *, now: datetime | None = None
    ) -> Stage | None:
        """Record ``metrics`` for the current stage and advance.

        Returns the stage that should be dispatched next, or ``None`` when the run
        completed or paused at this boundary.
        """

        moment = now or _utcnow()
        if self.status is not RunStatus.RUNNING:
            raise IllegalTransitionError(
                f"Run {self.id} is {self.status}; cannot complete stage {self.stage}",
                details={"run_id": str(self.id), "status": self.status},
            )
        if self.stage.value in self.metrics:
            raise IllegalTransitionError(
                f"Metrics for stage {self.stage} of run {self.id} were already recorded",
                details={"run_id": str(self.id), "stage": self.stage},
            )
        # reassign so the JSON column notices the change
        self.metrics = {**self.metrics, self.stage.value: dict(metrics)}
        self.error_kind = None

        next_stage = self.stage.next
        if next_stage is None:
            self._transition(RunStatus.COMPLETED, now=moment)
            self.completed_at = moment
            return None

        self.stage = next_stage
        self.stage_started_at = moment
        if self.pause_requested or not self.run_options.auto_advance:
            self.pause_requested = False
            self._transition(RunStatus.PAUSED, now=moment)
            return None
        self._transition(RunStatus.PENDING, now=moment)
        return next_stage

    def schedule_retry(
        self,
        error: BaseException,
        *,
        kind: ErrorKind,
        max_retries: int,
        now: datetime | None = None,
    ) -> bool:
        """Move into ``retrying`` if budget remains, else fail. Returns whether a retry is due."""

        moment = now or _utcnow()
        if not self.can_retry(max_retries):
            self.fail(
                kind,
                f"Retries exhausted after {self.retry_count} attempts: {error}",
                details={"exception": type(error).__name__},
                now=moment,
            )
            return False
        self._transition(RunStatus.RETRYING, now=moment)
        self.retry_count += 1
        self.last_retry_at = moment
        self.last_error = str(error)
        self.error_kind = kind
        return True

    def fail(
        self,
        kind: ErrorKind,
        message: str,
        *,
        details: Mapping[str, object] | None = None,
        now: datetime | None = None,
    ) -> None:
        moment = now or _utcnow()
        self._transition(RunStatus.FAILED, now=moment)
        self.error_kind = kind
        self.last_error = message
        self.error_details = {"stage": self.stage.value, **dict(details or {})}
        self.pause_requested = False

    def request_pause(self, *, now: datetime | None = None) -> None:
        if self.status is not RunStatus.RUNNING:
            raise IllegalTransitionError(
                f"Run {self.id} can only be paused while running (is {self.status})",
                details={"run_id": str(self.id), "status": self.status},
            )
        self.pause_requested = True
        self.updated_at = now or _utcnow()

    def resume(self, *, now: datetime | None = None) -> None:
        """Explicit operator (or watchdog) resumption of a paused or failed run."""

        moment = now or _utcnow()
        if self.status is RunStatus.PAUSED:
            self._transition(RunStatus.RUNNING, now=moment)
            self.stage_started_at = moment
            return
        if self.status is RunStatus.FAILED:
            self._transition(RunStatus.RETRYING, now=moment)
            self.resume_count += 1
            self.last_retry_at = moment
            self.stage_started_at = moment
            return
        raise IllegalTransitionError(
            f"Run {self.id} can only be resumed when paused or failed (is {self.status})",
            details={"run_id": str(self.id), "status": self.status},
        )

    def abort(self, reason: str, *, now: datetime | None = None) -> None:
        if self.status in {RunStatus.COMPLETED, RunStatus.FAILED}:
            raise IllegalTransitionError(
                f"Run {self.id} is already {self.status}",
                details={"run_id": str(self.id), "status": self.status},
            )
        self.fail(
            ErrorKind.ABORTED,
            f"Aborted: {reason}",
            details={"reason": reason},
            now=now,
        )

    def record_acceptance(
        self, report: Mapping[str, object], *, now: datetime | None = None
    ) -> None:
        if self.status is not RunStatus.COMPLETED:
            raise IllegalTransitionError(
                f"Acceptance gates only run for completed runs (run {self.id} is {self.status})"
            )
        if self.acceptance is not None:
            raise IllegalTransitionError(f"Acceptance gates already ran for run {self.id}")
        self.acceptance = dict(report)
        self.updated_at = now or _utcnow()
