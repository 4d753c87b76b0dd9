"""Contract between the stage executor and per-stage business logic."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from graphwright.domain.model import Stage

    from .context import RunContext

ITEMS_PROCESSED = "items_processed"
ITEMS_COMPLETED = "items_completed"


class StageHandler(Protocol):
    """Business logic of one pipeline stage.

    ``run`` must be idempotent for a given run: the watchdog may re-dispatch a
    stage whose earlier execution is still running or died half-way.
    """

    stage: Stage
    required_metrics: tuple[str, ...]

    def expected_items(self, context: RunContext) -> int:
        """How many input items this stage should process for the run."""
        ...

    def run(self, context: RunContext) -> Mapping[str, float]: ...
