from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import pytest

from graphwright.config import PipelineConfig
from graphwright.domain.errors import TransientError
from graphwright.domain.model import ClaimStatus, ErrorKind, RunStatus, Stage
from graphwright.domain.pipeline import ExecutionOutcome, Watchdog, WatchdogAction
from tests.support.fakes import declared_options, make_sources
from tests.support.pipeline import ScriptedHandler, scripted_worker

if TYPE_CHECKING:
    from uuid import UUID

    from graphwright.app import Runtime
    from graphwright.domain.pipeline import WatchdogDecision
    from tests.support.fakes import FrozenClock


def _action_for(decisions: list[WatchdogDecision], run_id: UUID) -> WatchdogAction:
    return next(decision.action for decision in decisions if decision.run_id == run_id)


def test_stuck_run_is_redispatched_once(runtime: Runtime, clock: FrozenClock) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())
    job = runtime.queue.claim_next("crashed-worker")
    assert job is not None
    with runtime.services.unit_of_work_factory() as uow:
        stored = uow.repositories.runs.get(run.id)
        assert stored is not None
        stored.begin_stage(now=clock())
        uow.commit()
    watchdog = runtime.watchdog()

    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.NONE

    clock.advance(minutes=30)
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.REDISPATCHED
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.GUARDED
    assert runtime.queue.claim_status(Stage.INTAKE, run.id) is ClaimStatus.QUEUED


def test_pending_run_without_a_job_is_dispatched(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())
    job = runtime.queue.claim_next("w")
    assert job is not None
    runtime.queue.discard(job.id)
    watchdog = runtime.watchdog()

    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.DISPATCHED
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.NONE


def test_unexpected_failure_is_auto_resumed_once(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())
    handler = ScriptedHandler(failures=[RuntimeError("boom"), RuntimeError("boom")])
    worker = scripted_worker(runtime, handler, config=PipelineConfig(max_retries=0))
    watchdog = runtime.watchdog()

    assert worker.drain() == [ExecutionOutcome.FAILED]
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.RESUMED
    assert runtime.orchestrator.get(run.id).status is RunStatus.RETRYING

    assert worker.drain() == [ExecutionOutcome.FAILED]
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.MANUAL_INTERVENTION
    assert _action_for(watchdog.poll_once(), run.id) is WatchdogAction.MANUAL_INTERVENTION
    stored = runtime.orchestrator.get(run.id)
    assert stored.status is RunStatus.FAILED
    assert stored.resume_count == 1


def test_invalid_data_is_left_for_an_operator(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options())
    worker = scripted_worker(runtime, ScriptedHandler(processed=0, expected=1))
    worker.drain()

    decisions = runtime.watchdog().poll_once()

    assert _action_for(decisions, run.id) is WatchdogAction.MANUAL_INTERVENTION
    assert runtime.orchestrator.get(run.id).error_kind is ErrorKind.INVALID_DATA


def test_paused_runs_are_only_observed(runtime: Runtime) -> None:
    run = runtime.orchestrator.create_run(make_sources(1), declared_options(auto_advance=False))
    scripted_worker(runtime, ScriptedHandler()).drain()

    assert _action_for(runtime.watchdog().poll_once(), run.id) is WatchdogAction.OBSERVED


def test_run_forever_keeps_polling_after_a_failed_poll(
    runtime: Runtime, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    watchdog = replace(runtime.watchdog(), config=PipelineConfig(watchdog_poll_seconds=0.0))
    polls: list[int] = []

    def failing_poll_once(self: Watchdog) -> list[WatchdogDecision]:
        _ = self
        polls.append(1)
        raise TransientError("job queue unavailable")

    monkeypatch.setattr(Watchdog, "poll_once", failing_poll_once)

    with caplog.at_level(logging.ERROR):
        watchdog.run_forever(max_polls=2)

    assert len(polls) == 2
    assert caplog.text.count("poll failed") == 2
