"""Pipeline orchestration: runs, stage execution, workers and the watchdog."""

from __future__ import annotations

from .acceptance import AcceptanceGateRunner, AcceptanceReport, GateResult
from .context import RunContext, StageServices
from .executor import ExecutionOutcome, StageExecutor, validate_metrics
from .handlers import build_default_handlers
from .literacy import LiteracyReport, compute_literacy
from .orchestrator import Orchestrator
from .stages import ITEMS_COMPLETED, ITEMS_PROCESSED, StageHandler
from .status import NextAction, detailed_status
from .watchdog import Watchdog, WatchdogAction, WatchdogDecision
from .worker import Worker

__all__ = [
    "ITEMS_COMPLETED",
    "ITEMS_PROCESSED",
    "AcceptanceGateRunner",
    "AcceptanceReport",
    "ExecutionOutcome",
    "GateResult",
    "LiteracyReport",
    "NextAction",
    "Orchestrator",
    "RunContext",
    "StageExecutor",
    "StageHandler",
    "StageServices",
    "Watchdog",
    "WatchdogAction",
    "WatchdogDecision",
    "Worker",
    "build_default_handlers",
    "compute_literacy",
    "detailed_status",
    "validate_metrics",
]
