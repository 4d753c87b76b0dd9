"""Operator-facing status summaries of pipeline runs."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from graphwright.domain.model import STAGE_ORDER, ErrorKind, RunStatus

if TYPE_CHECKING:
    from graphwright.domain.model import PipelineRun


class NextAction(StrEnum):
    RESUME = "resume"
    RETRY = "retry"
    INSPECT = "inspect"
    WAIT = "wait"
    NONE = "none"


def suggest_next_action(run: PipelineRun) -> NextAction:
    match run.status:
        case RunStatus.COMPLETED:
            return NextAction.NONE
        case RunStatus.PAUSED:
            return NextAction.RESUME
        case RunStatus.FAILED:
            if run.error_kind in {ErrorKind.INVALID_DATA, ErrorKind.ABORTED}:
                return NextAction.INSPECT
            return NextAction.RETRY
        case _:
            return NextAction.WAIT


def detailed_status(run: PipelineRun) -> dict[str, object]:
    """Summarise progress, per-stage state and what an operator should do next."""

    completed = [stage for stage in STAGE_ORDER if stage.value in run.metrics]
    stages: list[dict[str, object]] = []
    for stage in STAGE_ORDER:
        metrics = run.metrics.get(stage.value)
        if metrics is not None:
            state = "completed"
        elif stage is run.stage and run.status is not RunStatus.COMPLETED:
            state = "current"
        else:
            state = "pending"
        stages.append(
            {
                "stage": stage.value,
                "state": state,
                "duration_seconds": (metrics or {}).get("duration_seconds"),
            }
        )

    return {
        "run_id": str(run.id),
        "knowledge_base": run.knowledge_base,
        "stage": run.stage.value,
        "status": run.status.value,
        "progress_percent": round(100 * len(completed) / len(STAGE_ORDER)),
        "stages": stages,
        "stage_started_at": run.stage_started_at.isoformat() if run.stage_started_at else None,
        "retry_count": run.retry_count,
        "resume_count": run.resume_count,
        "pause_requested": run.pause_requested,
        "error_kind": run.error_kind.value if run.error_kind else None,
        "last_error": run.last_error,
        "acceptance": run.acceptance,
        "next_action": suggest_next_action(run).value,
    }
