"""Phase-based orchestrator for graph assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from .context import AssemblyContext, AssemblyInput, AssemblyResult
from .deduplication import Deduplicator
from .edges import EdgeLoader
from .integrity import IntegrityVerifier
from .nodes import NodeLoader
from .orphans import OrphanRemover
from .schema import SchemaSetup

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)


class AssemblyPhase(Protocol):
    """Contract implemented by each graph assembly phase.

    Every phase must be idempotent: running it again against the same input and
    store must leave the graph unchanged.
    """

    name: str

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> None: ...


def default_phases(*, orphan_grace_seconds: float = 3600.0) -> tuple[AssemblyPhase, ...]:
    return (
        SchemaSetup(),
        NodeLoader(),
        EdgeLoader(),
        Deduplicator(),
        OrphanRemover(grace_seconds=orphan_grace_seconds),
        IntegrityVerifier(),
    )


@dataclass(slots=True)
class GraphAssembler:
    """Compose and execute the ordered assembly phases.

    The default order is schema, nodes, edges, deduplication, orphan removal and
    the integrity check; edges can only be written once both endpoints exist, and
    orphan detection is only meaningful after duplicates have been folded.
    """

    phases: Sequence[AssemblyPhase] = field(default_factory=default_phases)

    def run(self, data: AssemblyInput, *, context: AssemblyContext) -> AssemblyResult:
        """Execute the configured phases in-order against ``context.store``."""

        for phase in self.phases:
            log.info("[run %s] graph assembly phase: %s", data.run_id, phase.name)
            phase.run(data, context=context)
        return AssemblyResult(
            run_id=data.run_id,
            stats=context.stats,
            merges=tuple(context.merges),
            removed_orphans=tuple(context.removed_orphans),
            integrity=context.integrity,
        )
